"""
Account Service

Registration and credential checks for the relational account mirror.
Firebase Authentication remains the primary identity source; this table lets
the API issue its own bearer tokens.
"""

from typing import Optional, Dict, Any
import logging
from werkzeug.security import generate_password_hash, check_password_hash

from app import db
from models import User, UserRole, KycStatus, default_kyc_documents
from .errors import ValidationError, DuplicateAccountError, AuthenticationError

logger = logging.getLogger(__name__)

REQUIRED_SIGNUP_FIELDS = ('email', 'password', 'companyName', 'phoneNumber')


class AccountService:
    """Service class for mirror account operations"""

    def register(self, data: Dict[str, Any]) -> User:
        """
        Create a mirror account.

        Args:
            data: Signup payload (email, password, companyName, phoneNumber,
                  optional address, firebaseUid, kycStatus)

        Returns:
            User: the persisted account

        Raises:
            ValidationError: a required field is missing
            DuplicateAccountError: the email is already registered
        """
        if any(not data.get(field) for field in REQUIRED_SIGNUP_FIELDS):
            raise ValidationError('Email, password, company name, and phone number are required')

        email = data['email'].strip().lower()
        if User.query.filter_by(email=email).first():
            raise DuplicateAccountError('Email already exists')

        user = User()
        user.email = email
        user.password_hash = generate_password_hash(data['password'])
        user.company_name = data['companyName']
        user.phone_number = data['phoneNumber']
        user.gstin = None
        user.address = data.get('address') or ''
        user.kyc_status = data.get('kycStatus') or KycStatus.NOT_SUBMITTED.value
        user.kyc_documents = default_kyc_documents()
        user.role = UserRole.CORPORATE
        user.is_active = True
        user.firebase_uid = data.get('firebaseUid') or None

        try:
            db.session.add(user)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Mirror account registered: {user.email}")
        return user

    def authenticate(self, email: Optional[str], password: Optional[str]) -> User:
        """
        Check credentials.

        Raises:
            AuthenticationError: unknown email or wrong password
        """
        normalized = (email or '').strip().lower()
        user = User.query.filter_by(email=normalized).first() if normalized else None
        if not user:
            raise AuthenticationError('User not found')

        if not password or not check_password_hash(user.password_hash, password):
            logger.warning(f"Failed sign-in for {normalized}")
            raise AuthenticationError('Invalid credentials')

        return user
