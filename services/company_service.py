"""
Company Service

Resolves the company that owns the signed-in user, registers new companies
and handles KYC submission and status reads.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple
from urllib.parse import urlparse
import logging
import re

from firebase_admin import auth as firebase_auth

from firebase_service import firestore_service, where_equals, SERVER_TIMESTAMP
from timezone_utils import get_iso_timestamp
from .errors import CompanyNotFoundError, ValidationError, UploadError, StoreError
from .file_service import FileService, KYC_DOCUMENT_FOLDERS
from .transaction_helper import TransactionHelper, describe_store_error

logger = logging.getLogger(__name__)

COMPANY_NOT_FOUND_MESSAGE = ("Company profile not found. Please ensure you completed "
                             "the signup process or contact support.")

SERVICE_FLAGS = (
    'multimodalServices',
    'multitemperatureService',
    'partialLoadingAndUnloading',
    'realtimeTracking',
)

SIGNUP_FIELDS = ('companyName', 'businessAddress', 'firstName', 'lastName', 'mobileNumber', 'email')

EMAIL_PATTERN = re.compile(r'\S+@\S+\.\S+')
MIN_DESCRIPTION_LENGTH = 20


@dataclass
class CompanyContext:
    """The signed-in user and the company they act for"""
    user_id: str
    company_name: str = ''

    @property
    def has_company(self) -> bool:
        return bool(self.company_name)


def is_valid_url(value: str) -> bool:
    try:
        parsed = urlparse((value or '').strip())
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def validate_password(password: str) -> bool:
    """6+ characters with at least one letter and one digit"""
    return (len(password or '') >= 6
            and re.search(r'[a-zA-Z]', password) is not None
            and re.search(r'[0-9]', password) is not None)


def normalize_kyc_status(status: Optional[str]) -> str:
    """Map stored KYC status onto the values the dashboard shows"""
    if status == 'approved':
        return 'completed'
    if status == 'pending':
        return 'pending'
    return 'not-submitted'


class CompanyService:
    """Service class for company lookup and onboarding"""

    def __init__(self, store, file_service: Optional[FileService] = None):
        self.store = store
        self.file_service = file_service or FileService()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _first_owned(self, collection: str, user_id: str):
        try:
            query = where_equals(self.store.collection(collection), 'userId', user_id)
            for snapshot in query.stream():
                return snapshot
        except Exception as e:
            logger.error(f"Error looking up {collection} for {user_id}: {str(e)}")
            raise StoreError(f"Error fetching company: {describe_store_error(e)}")
        return None

    def resolve(self, user_id: str) -> str:
        """
        Name of the company owned by ``user_id``.

        Looks in ``companies`` first and falls back to the legacy ``users``
        collection when no named company is found there. An empty string
        means the user has no company yet.

        Raises:
            StoreError: the lookup could not be read
        """
        if not user_id:
            return ''

        for collection in ('companies', 'users'):
            snapshot = self._first_owned(collection, user_id)
            if snapshot is None:
                continue
            data = snapshot.to_dict() or {}
            name = data.get('companyName') or data.get('company_name')
            if name:
                return name
        return ''

    def resolve_context(self, user_id: str) -> CompanyContext:
        company_name = self.resolve(user_id)
        if not company_name:
            logger.warning(f"No company linked to user {user_id}")
        return CompanyContext(user_id=user_id, company_name=company_name)

    def resolve_with_retry(self, user_id: str, retries: int = 3,
                           delay: float = 1.0) -> Tuple[str, Dict[str, Any]]:
        """
        Find the company document, retrying while a just-created record is
        not yet visible.

        Returns:
            tuple: (company_name, company_data); the name is the document id

        Raises:
            CompanyNotFoundError: nothing found after all retries
        """
        snapshot = TransactionHelper.retry_until_found(
            lambda: self._first_owned('companies', user_id),
            retries=retries, delay=delay, label=f"Company lookup for {user_id}"
        )
        if snapshot is None:
            logger.error(f"Company profile not found for user {user_id}")
            raise CompanyNotFoundError(COMPANY_NOT_FOUND_MESSAGE)
        return snapshot.id, snapshot.to_dict() or {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def validate_registration(self, form: Dict[str, Any]) -> Dict[str, str]:
        errors = {}
        if any(not (form.get(field) or '').strip() for field in SIGNUP_FIELDS):
            errors['form'] = "Please fill all mandatory fields."
            return errors

        if not EMAIL_PATTERN.search(form['email']):
            errors['email'] = "Enter a valid email address"
        if not validate_password(form.get('password') or ''):
            errors['password'] = "Password must be 6+ chars with letters & numbers"
        if form.get('password') != form.get('confirmPassword'):
            errors['confirmPassword'] = "Passwords do not match"
        return errors

    def register_company(self, form: Dict[str, Any],
                         account_service=None) -> Tuple[bool, Optional[Dict[str, Any]], Optional[str]]:
        """
        Register a company: auth user, company document and mirror account.

        Args:
            form: companyName, businessAddress, firstName, lastName,
                  mobileNumber, email, password, confirmPassword
            account_service: mirror account service; mirror failures are logged only

        Returns:
            tuple: (success: bool, result: dict, error_message: str)
        """
        errors = self.validate_registration(form)
        if errors:
            raise ValidationError(next(iter(errors.values())), errors)

        company_name = form['companyName'].strip()
        first_name = form['firstName'].strip()
        last_name = form['lastName'].strip()
        email = form['email'].strip()
        mobile_number = "+91" + re.sub(r'\D', '', form['mobileNumber'])

        try:
            uid = firestore_service.create_user(email, form['password'], f"{first_name} {last_name}")
        except firebase_auth.EmailAlreadyExistsError:
            return False, None, "This email is already registered."
        except Exception as e:
            logger.error(f"Registration error for {email}: {str(e)}")
            return False, None, "Registration failed. Please try again."

        company_doc = {
            'company_name': company_name,
            'businessAddress': form['businessAddress'].strip(),
            'primaryContact': {
                'firstName': first_name,
                'lastName': last_name,
                'email': email,
                'mobileNumber': mobile_number,
            },
            'userId': uid,
            'kycStatus': 'not-submitted',
            'documentUploadMethod': None,
            'kycSubmittedAt': None,
            'documents': {key: None for key in KYC_DOCUMENT_FOLDERS},
            'company_logo': None,
            'description': '',
            'createdAt': SERVER_TIMESTAMP,
        }
        company_doc.update({flag: False for flag in SERVICE_FLAGS})

        success, _, error = TransactionHelper.execute_mutation(
            self.store.collection('companies').document(company_name).set,
            company_doc, description=f"create company {company_name}"
        )
        if not success:
            return False, None, "Registration failed. Please try again."

        if account_service is not None:
            try:
                account_service.register({
                    'email': email,
                    'password': form['password'],
                    'companyName': company_name,
                    'phoneNumber': mobile_number,
                    'address': form['businessAddress'].strip(),
                    'firebaseUid': uid,
                    'kycStatus': 'not-submitted',
                })
            except Exception as e:
                logger.warning(f"Mirror account save failed, Firebase registration kept: {str(e)}")

        logger.info(f"Company registered: {company_name} (user {uid})")
        return True, {'uid': uid, 'companyName': company_name}, None

    # ------------------------------------------------------------------
    # KYC
    # ------------------------------------------------------------------

    def validate_kyc(self, submission: Dict[str, Any]) -> Dict[str, str]:
        errors = {}
        method = submission.get('uploadMethod', 'file')
        files = submission.get('files') or {}
        links = submission.get('links') or {}

        if method not in ('file', 'link'):
            errors['uploadMethod'] = "Upload method must be 'file' or 'link'."
        elif method == 'file':
            missing = [key for key in KYC_DOCUMENT_FOLDERS if not files.get(key)]
            if missing:
                errors['documents'] = "Please upload all required documents."
        else:
            for key in KYC_DOCUMENT_FOLDERS:
                link = (links.get(key) or '').strip()
                if not link:
                    errors[key] = "Please provide all document links."
                elif not is_valid_url(link):
                    errors[key] = "Please provide valid URLs for all documents."

        logo_method = submission.get('logoUploadMethod', 'file')
        if logo_method == 'file':
            if not submission.get('logoFile'):
                errors['companyLogo'] = "Please upload your company logo."
        else:
            logo_link = (submission.get('logoLink') or '').strip()
            if not logo_link:
                errors['companyLogo'] = "Please provide your company logo link."
            elif not is_valid_url(logo_link):
                errors['companyLogo'] = "Please provide a valid URL for the company logo."

        description = (submission.get('description') or '').strip()
        if not description:
            errors['description'] = "Please provide a company description."
        elif len(description) < MIN_DESCRIPTION_LENGTH:
            errors['description'] = "Company description must be at least 20 characters."
        return errors

    def submit_kyc(self, user_id: str, submission: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
        """
        Upload or link KYC documents and mark the company as pending review.

        Documents are uploaded one at a time; the first failure aborts the
        submission and earlier uploads stay on the CDN.

        Args:
            user_id: Firebase uid of the signed-in user
            submission: uploadMethod, files/links keyed by document field,
                        logoUploadMethod, logoFile/logoLink, description and
                        the service flags

        Returns:
            tuple: (success: bool, error_message: str)
        """
        errors = self.validate_kyc(submission)
        if errors:
            raise ValidationError(next(iter(errors.values())), errors)

        company_name, _ = self.resolve_with_retry(user_id)

        method = submission.get('uploadMethod', 'file')
        uploaded = []
        try:
            if method == 'file':
                files = submission.get('files') or {}
                documents = {}
                for key, folder in KYC_DOCUMENT_FOLDERS.items():
                    documents[key] = self.file_service.upload_kyc_document(files[key], company_name, folder)
                    uploaded.append(documents[key])
            else:
                links = submission.get('links') or {}
                documents = {key: links[key].strip() for key in KYC_DOCUMENT_FOLDERS}

            if submission.get('logoUploadMethod', 'file') == 'file':
                company_logo = self.file_service.upload_company_logo(submission['logoFile'], company_name)
            else:
                company_logo = submission['logoLink'].strip()
        except UploadError as e:
            if uploaded:
                logger.warning(f"KYC for {company_name} aborted; orphaned uploads left on CDN: {uploaded}")
            return False, f"Submission failed: {e.message}"

        update = {
            'documents': documents,
            'documentUploadMethod': method,
            'company_logo': company_logo,
            'description': submission.get('description', ''),
            'kycStatus': 'pending',
            'kycSubmittedAt': get_iso_timestamp(),
        }
        update.update({flag: bool(submission.get(flag)) for flag in SERVICE_FLAGS})

        try:
            self.store.collection('companies').document(company_name).update(update)
        except Exception as e:
            logger.error(f"KYC update for {company_name} failed: {str(e)}")
            return False, describe_store_error(e)

        logger.info(f"KYC submitted for {company_name}")
        return True, None

    def get_kyc_status(self, user_id: str) -> Dict[str, Any]:
        """
        KYC state of the user's company for the dashboard banner.

        Raises:
            CompanyNotFoundError: user has no company document
        """
        snapshot = self._first_owned('companies', user_id)
        if snapshot is None:
            raise CompanyNotFoundError(COMPANY_NOT_FOUND_MESSAGE)

        data = snapshot.to_dict() or {}
        contact = data.get('primaryContact') or {}
        display_name = f"{contact.get('firstName', '')} {contact.get('lastName', '')}".strip()
        return {
            'companyName': snapshot.id,
            'displayName': display_name or snapshot.id,
            'kycStatus': normalize_kyc_status(data.get('kycStatus')),
            'rawKycStatus': data.get('kycStatus'),
            'kycSubmittedAt': data.get('kycSubmittedAt'),
        }


