"""
Notification Service

Relays support requests from corporate users to the LogitX admin mailbox
through the EmailJS REST API. Tickets are never stored.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Tuple
import logging
import os
import re
import requests

from .errors import RelayError

logger = logging.getLogger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"

_EMAIL_PATTERN = re.compile(r'\S+@\S+\.\S+')


@dataclass
class SupportTicket:
    """Support request submitted from the dashboard"""
    name: str
    email: str
    subject: str
    message: str
    category: str
    other_category: str = ''

    @classmethod
    def from_dict(cls, data: Dict) -> 'SupportTicket':
        return cls(
            name=(data.get('name') or '').strip(),
            email=(data.get('email') or '').strip(),
            subject=(data.get('subject') or '').strip(),
            message=(data.get('message') or '').strip(),
            category=(data.get('category') or '').strip(),
            other_category=(data.get('otherCategory') or data.get('other_category') or '').strip(),
        )

    def validate(self) -> Dict[str, str]:
        errors = {}
        if not self.name:
            errors['name'] = "Name is required"
        if not self.email or not _EMAIL_PATTERN.search(self.email):
            errors['email'] = "Valid email required"
        if not self.subject:
            errors['subject'] = "Subject is required"
        if not self.message:
            errors['message'] = "Message is required"
        if not self.category:
            errors['category'] = "Select a category"
        if self.category == 'Other' and not self.other_category:
            errors['otherCategory'] = "Please specify other category"
        return errors

    @property
    def effective_category(self) -> str:
        return self.other_category if self.category == 'Other' else self.category

    def template_params(self) -> Dict[str, str]:
        return {
            'name': self.name,
            'email': self.email,
            'subject': self.subject,
            'message': self.message,
            'category': self.effective_category,
        }


class NotificationService:
    """Service class for outbound support messages"""

    REQUEST_TIMEOUT = 30

    def __init__(self, service_id: Optional[str] = None, template_id: Optional[str] = None,
                 public_key: Optional[str] = None):
        self.service_id = service_id or os.environ.get('EMAILJS_SERVICE_ID', '')
        self.template_id = template_id or os.environ.get('EMAILJS_TEMPLATE_ID', '')
        self.public_key = public_key or os.environ.get('EMAILJS_PUBLIC_KEY', '')

    def send_support_ticket(self, ticket: SupportTicket) -> Tuple[bool, Optional[str]]:
        """
        Send a support ticket through EmailJS.

        Args:
            ticket: Validated support ticket

        Returns:
            tuple: (success: bool, error_message: str)
        """
        if not (self.service_id and self.template_id and self.public_key):
            logger.error("EmailJS is not configured; support ticket not sent")
            return False, "Error sending message."

        payload = {
            'service_id': self.service_id,
            'template_id': self.template_id,
            'user_id': self.public_key,
            'template_params': ticket.template_params(),
        }

        try:
            response = requests.post(EMAILJS_SEND_URL, json=payload, timeout=self.REQUEST_TIMEOUT)
            if not response.ok:
                raise RelayError(f"EmailJS returned {response.status_code}: {response.text[:200]}")
        except (requests.RequestException, RelayError) as e:
            logger.error(f"Support ticket relay failed: {str(e)}")
            return False, "Error sending message."

        logger.info(f"Support ticket sent: category={ticket.effective_category}")
        return True, None
