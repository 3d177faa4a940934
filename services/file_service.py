"""
File Service

Handles validation and CDN uploads for company KYC documents, company logos
and driver documents. Files are sent to Cloudinary using unsigned uploads.
"""

from typing import Optional, Dict, Any, Iterable, Tuple
import logging
import os
import re
import time
import requests
from werkzeug.utils import secure_filename

from .errors import UploadError

logger = logging.getLogger(__name__)

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/{resource_type}/upload"

KYC_DOCUMENT_FOLDERS = {
    'gstCertificate': 'gst',
    'panCard': 'pan',
    'incorporationCertificate': 'incorporation',
    'signatoryId': 'signatory',
    'bankDetails': 'bank',
}

DRIVER_DOCUMENT_TYPES = (
    'Aadhaar_or_PAN_Card',
    'Driving_License',
    'Insurance_Certificate',
    'Vehicle_RC',
)

DRIVER_DOCUMENT_MIME_TYPES = (
    'image/jpeg', 'image/jpg', 'image/png', 'image/webp', 'application/pdf'
)


def get_file_size(file) -> int:
    """Size of an uploaded file without consuming it"""
    stream = getattr(file, 'stream', file)
    stream.seek(0, 2)  # Seek to end
    size = stream.tell()
    stream.seek(0)  # Seek back to start
    return size


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


class FileService:
    """Service class for CDN upload operations"""

    DOCUMENT_MAX_MB = 5
    LOGO_MAX_MB = 2
    DRIVER_DOCUMENT_MAX_MB = 5
    REQUEST_TIMEOUT = 30

    def __init__(self, cloud_name: Optional[str] = None, upload_preset: Optional[str] = None):
        self.cloud_name = cloud_name or os.environ.get('CLOUDINARY_CLOUD_NAME', 'dgzznmtcf')
        self.upload_preset = upload_preset or os.environ.get('CLOUDINARY_UPLOAD_PRESET', 'ml_default')

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_file(self, file, max_size_mb: float = 5,
                      allowed_types: Optional[Iterable[str]] = None) -> Tuple[bool, Optional[str]]:
        """
        Check size and MIME type before uploading.

        Args:
            file: Flask uploaded file object
            max_size_mb: Size ceiling in megabytes
            allowed_types: Accepted MIME types, or None to accept any

        Returns:
            tuple: (valid: bool, error_message: str)
        """
        if not file or not getattr(file, 'filename', None):
            return False, "No file selected"

        size = get_file_size(file)
        if size > max_size_mb * 1024 * 1024:
            return False, (f"File size must be under {max_size_mb}MB. "
                           f"Current size: {size / 1024 / 1024:.2f}MB")

        allowed = list(allowed_types or [])
        if allowed and file.mimetype not in allowed:
            return False, f"Invalid file type. Allowed types: {', '.join(allowed)}"

        return True, None

    # ------------------------------------------------------------------
    # Folder and naming rules
    # ------------------------------------------------------------------

    @staticmethod
    def company_folder(company_name: str, document_type: str) -> str:
        safe_name = re.sub(r'[^a-zA-Z0-9_-]', '_', company_name)
        return f"Companies/{safe_name}/{document_type}"

    @staticmethod
    def driver_folder(mobile_number: str, document_type: str) -> str:
        safe_number = re.sub(r'[^0-9+]', '', mobile_number)
        return f"Drivers/{safe_number}/{document_type}"

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def upload(self, file, folder: str, resource_type: str = 'auto',
               public_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Upload a file to Cloudinary.

        Args:
            file: Flask uploaded file object
            folder: Target folder path, e.g. "Companies/Acme/logo"
            resource_type: 'image', 'raw', 'video' or 'auto'
            public_id: Object name; defaults to "<ms timestamp>-<basename>"

        Returns:
            dict: {'url': secure URL, 'publicId': CDN identifier}

        Raises:
            UploadError: missing file, transport failure or CDN rejection
        """
        if not file or not getattr(file, 'filename', None):
            raise UploadError("No file provided for upload", status_code=400)

        filename = secure_filename(file.filename) or 'upload'
        if public_id is None:
            public_id = f"{_timestamp_ms()}-{filename.split('.')[0]}"

        url = CLOUDINARY_UPLOAD_URL.format(cloud_name=self.cloud_name, resource_type=resource_type)
        stream = getattr(file, 'stream', file)
        stream.seek(0)

        try:
            response = requests.post(
                url,
                data={
                    'upload_preset': self.upload_preset,
                    'folder': folder,
                    'public_id': public_id,
                },
                files={'file': (filename, stream, getattr(file, 'mimetype', None))},
                timeout=self.REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Cloudinary upload to {folder} failed: {str(e)}")
            raise UploadError(f"Failed to upload file: {str(e)}")

        if not response.ok:
            try:
                detail = response.json().get('error', {}).get('message', 'Unknown error')
            except ValueError:
                detail = 'Unknown error'
            logger.error(f"Cloudinary rejected upload to {folder}: {detail}")
            raise UploadError(f"Failed to upload file: Cloudinary upload failed: {detail}")

        payload = response.json()
        secure_url = payload.get('secure_url')
        if not secure_url:
            raise UploadError("Failed to upload file: response did not include a URL")

        logger.info(f"File uploaded successfully to {folder}")
        return {'url': secure_url, 'publicId': payload.get('public_id', public_id)}

    def upload_kyc_document(self, file, company_name: str, document_type: str) -> str:
        """Upload one KYC document and return its URL"""
        valid, error = self.validate_file(file, self.DOCUMENT_MAX_MB)
        if not valid:
            raise UploadError(error, status_code=400)
        folder = self.company_folder(company_name, document_type)
        return self.upload(file, folder, 'auto')['url']

    def upload_company_logo(self, file, company_name: str) -> str:
        """Upload a company logo (images only, 2MB) and return its URL"""
        if file and getattr(file, 'filename', None):
            size = get_file_size(file)
            if size > self.LOGO_MAX_MB * 1024 * 1024:
                raise UploadError("Logo size must be under 2MB.", status_code=400)
            if not (file.mimetype or '').startswith('image/'):
                raise UploadError("Please upload an image file.", status_code=400)
        folder = self.company_folder(company_name, 'logo')
        return self.upload(file, folder, 'image')['url']

    def upload_driver_document(self, file, mobile_number: str, document_type: str) -> Dict[str, Any]:
        """
        Upload a driver document.

        Returns:
            dict: {'publicId': ..., 'url': ...}
        """
        valid, error = self.validate_file(file, self.DRIVER_DOCUMENT_MAX_MB, DRIVER_DOCUMENT_MIME_TYPES)
        if not valid:
            raise UploadError(error, status_code=400)

        folder = self.driver_folder(mobile_number, document_type)
        public_id = f"{folder}/{document_type}_{_timestamp_ms()}"
        try:
            result = self.upload(file, folder, 'image', public_id=public_id)
        except UploadError as e:
            raise UploadError(f"Failed to upload {document_type}: {e.message}", status_code=e.status_code)
        return {'publicId': result['publicId'], 'url': result['url']}

    def upload_driver_documents(self, files: Dict[str, Any], mobile_number: str) -> Dict[str, Dict[str, Any]]:
        """
        Upload the selected driver documents one after another.

        Unknown document types are ignored. The first failure aborts the batch.
        """
        uploaded = {}
        for document_type in DRIVER_DOCUMENT_TYPES:
            file = files.get(document_type)
            if file and getattr(file, 'filename', None):
                uploaded[document_type] = self.upload_driver_document(file, mobile_number, document_type)
        return uploaded
