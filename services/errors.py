"""
Service error taxonomy.

Read paths raise these. Mutation paths return (success, error_message) tuples
for failed writes and raise these when the target record is missing or owned
by another company.
"""

from typing import Dict, Optional


class ServiceError(Exception):
    """Base class for errors surfaced to API clients"""
    code = 'SERVICE_ERROR'
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CompanyNotFoundError(ServiceError):
    """Raised when no company profile is linked to the user"""
    code = 'COMPANY_NOT_FOUND'
    status_code = 404


class ValidationError(ServiceError):
    """Raised when input fails required-field or format checks"""
    code = 'VALIDATION_ERROR'
    status_code = 400

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


class StoreError(ServiceError):
    """Raised when the document store cannot be read"""
    code = 'STORE_ERROR'
    status_code = 502


class UploadError(ServiceError):
    """Raised when a file is rejected locally or by the CDN"""
    code = 'UPLOAD_FAILED'
    status_code = 502

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class RelayError(ServiceError):
    """Raised when the outbound email relay rejects a message"""
    code = 'RELAY_FAILED'
    status_code = 502


class DuplicateAccountError(ServiceError):
    """Raised when an email is already registered"""
    code = 'EMAIL_EXISTS'
    status_code = 409


class AuthenticationError(ServiceError):
    """Raised when sign-in credentials do not match an account"""
    code = 'INVALID_CREDENTIALS'
    status_code = 400


class RecordNotFoundError(ServiceError):
    """Raised when the record a mutation targets does not exist"""
    code = 'NOT_FOUND'
    status_code = 404


class ForbiddenError(ServiceError):
    """Raised when the record belongs to another company"""
    code = 'FORBIDDEN'
    status_code = 403


class DuplicateRecordError(ServiceError):
    """Raised when a write would replace a different existing record"""
    code = 'DUPLICATE_KEY'
    status_code = 409
