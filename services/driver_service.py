"""
Driver Service

Handles driver registration, document uploads, approval workflows and
removal. Drivers are keyed by mobile number in the Drivers collection.
"""

from typing import Optional, Dict, Any, Tuple
import logging
import re

from timezone_utils import get_iso_timestamp
from .collection_service import (
    DRIVERS_COLLECTION, approval_status, driver_belongs_to_company, load_document
)
from .errors import UploadError, RecordNotFoundError, ForbiddenError, DuplicateRecordError
from .file_service import FileService
from .transaction_helper import TransactionHelper

logger = logging.getLogger(__name__)

MOBILE_PATTERN = re.compile(r'^\+91\d{10}$')
DEFAULT_APPROVER = 'Corporate Admin'
REQUIRED_DRIVER_FIELDS = ('firstName', 'lastName', 'mobileNumber', 'city', 'state', 'vehicleNumber')


class DriverService:
    """Service class for driver management operations"""

    def __init__(self, store, file_service: Optional[FileService] = None):
        self.store = store
        self.file_service = file_service or FileService()

    def _document(self, mobile_number: str):
        return self.store.collection(DRIVERS_COLLECTION).document(mobile_number)

    def validate(self, data: Dict[str, Any]) -> Dict[str, str]:
        """Field errors keyed by field name; empty when the driver is valid"""
        errors = {field: 'Required' for field in REQUIRED_DRIVER_FIELDS if not data.get(field)}
        mobile = data.get('mobileNumber')
        if mobile and not MOBILE_PATTERN.match(mobile):
            errors['mobileNumber'] = "Must be in format +91XXXXXXXXXX (10 digits)"
        return errors

    def _load(self, mobile_number: str) -> Dict[str, Any]:
        driver = load_document(self._document(mobile_number), f"driver {mobile_number}")
        if driver is None:
            raise RecordNotFoundError(f"Driver {mobile_number} not found")
        return driver

    @staticmethod
    def may_decide(driver: Dict[str, Any], context) -> bool:
        """Pending drivers are open to every company; others only to their own"""
        return approval_status(driver) == 'pending' or driver_belongs_to_company(driver, context)

    def owned_driver(self, context, mobile_number: str) -> Dict[str, Any]:
        """
        Load a driver registered to or approved by the caller's company.

        Raises:
            RecordNotFoundError: no driver under that mobile number
            ForbiddenError: the driver belongs to another company
        """
        driver = self._load(mobile_number)
        if not driver_belongs_to_company(driver, context):
            logger.warning(f"User {context.user_id} tried to change driver {mobile_number}")
            raise ForbiddenError(f"Driver {mobile_number} belongs to another company")
        return driver

    def reviewable_driver(self, context, mobile_number: str) -> Dict[str, Any]:
        driver = self._load(mobile_number)
        if not self.may_decide(driver, context):
            raise ForbiddenError(f"Driver {mobile_number} belongs to another company")
        return driver

    def save_driver(self, context, data: Dict[str, Any], files: Optional[Dict[str, Any]] = None,
                    original_mobile: Optional[str] = None) -> Tuple[bool, Optional[str]]:
        """
        Add or edit a driver registered by the caller's company.

        Selected documents are uploaded first and merged over the documents
        already on record. The driver document is then written in full. When
        an edit changes the mobile number the record moves to the new key.

        Args:
            context: CompanyContext of the caller
            data: Driver form fields
            files: Uploaded files keyed by document type
            original_mobile: Current key of the driver when editing

        Returns:
            tuple: (success: bool, error_message: str)

        Raises:
            RecordNotFoundError, ForbiddenError: the edited driver is missing
                or belongs to another company
            DuplicateRecordError: the mobile number is taken by another
                company's driver
        """
        errors = self.validate(data)
        if errors:
            field, message = next(iter(errors.items()))
            return False, f"{field}: {message}"

        mobile = data['mobileNumber']
        existing = {}
        if original_mobile:
            existing = self.owned_driver(context, original_mobile)
        if mobile != original_mobile:
            taken = load_document(self._document(mobile), f"driver {mobile}")
            if taken is not None and not self.may_decide(taken, context):
                raise DuplicateRecordError(f"A driver with mobile number {mobile} is already registered")

        try:
            uploaded = self.file_service.upload_driver_documents(files or {}, mobile)
        except UploadError as e:
            return False, f"Error saving driver: {e.message}"

        documents = dict(existing.get('documents') or {})
        documents.update(uploaded)

        now = get_iso_timestamp()
        is_new = not original_mobile
        driver = {
            'firstName': data['firstName'],
            'lastName': data['lastName'],
            'mobileNumber': mobile,
            'city': data['city'],
            'state': data['state'],
            'vehicleNumber': data['vehicleNumber'],
            'documents': documents,
            'userId': context.user_id,
            'approvalStatus': 'approved',
            'approvedBy': context.company_name or DEFAULT_APPROVER,
            'approvedDate': now if is_new else existing.get('approvedDate'),
            'registrationDate': now if is_new else existing.get('registrationDate'),
            'occupied': existing.get('occupied') or False,
            'current_order_id': existing.get('current_order_id') or None,
            'current_order_user_id': existing.get('current_order_user_id') or None,
            'rejectionReason': existing.get('rejectionReason') or None,
        }

        success, _, error = TransactionHelper.execute_mutation(
            self._document(mobile).set, driver, description=f"save driver {mobile}"
        )
        if not success:
            return False, f"Error saving driver: {error}"

        if original_mobile and original_mobile != mobile:
            moved, _, error = TransactionHelper.execute_mutation(
                self._document(original_mobile).delete,
                description=f"remove driver {original_mobile} after key change"
            )
            if not moved:
                return False, f"Driver saved under {mobile} but old record could not be removed: {error}"

        logger.info(f"Driver {mobile} {'added' if is_new else 'updated'} by {driver['approvedBy']}")
        return True, None

    def approve_driver(self, context, mobile_number: str) -> Tuple[bool, Optional[str]]:
        """
        Approve a driver for the company, overwriting any earlier decision.

        Returns:
            tuple: (success: bool, error_message: str)
        """
        self.reviewable_driver(context, mobile_number)
        update = {
            'approvalStatus': 'approved',
            'approvedBy': context.company_name or DEFAULT_APPROVER,
            'approvedDate': get_iso_timestamp(),
            'rejectionReason': None,
        }
        success, _, error = TransactionHelper.execute_mutation(
            self._document(mobile_number).set, update, merge=True,
            description=f"approve driver {mobile_number}"
        )
        if not success:
            return False, f"Error approving driver: {error}"
        return True, None

    def reject_driver(self, context, mobile_number: str,
                      reason: Optional[str] = None) -> Tuple[bool, Optional[str]]:
        """
        Reject a driver, overwriting any earlier decision.

        Returns:
            tuple: (success: bool, error_message: str)
        """
        self.reviewable_driver(context, mobile_number)
        update = {
            'approvalStatus': 'rejected',
            'rejectedBy': context.company_name or DEFAULT_APPROVER,
            'rejectedDate': get_iso_timestamp(),
            'rejectionReason': reason or 'No reason provided',
        }
        success, _, error = TransactionHelper.execute_mutation(
            self._document(mobile_number).set, update, merge=True,
            description=f"reject driver {mobile_number}"
        )
        if not success:
            return False, f"Error rejecting driver: {error}"
        return True, None

    def delete_driver(self, context, mobile_number: str) -> Tuple[bool, Optional[str]]:
        self.owned_driver(context, mobile_number)
        success, _, error = TransactionHelper.execute_mutation(
            self._document(mobile_number).delete, description=f"delete driver {mobile_number}"
        )
        if not success:
            return False, f"Error deleting: {error}"
        return True, None
