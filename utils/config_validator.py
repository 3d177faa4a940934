"""
Configuration validation for LogiTx
Checks the environment variables the document store, CDN and Flask app need
"""
import os
import logging
from typing import Dict, List, Tuple, Any

logger = logging.getLogger(__name__)

def validate_firebase_config() -> Tuple[bool, List[str]]:
    """
    Validate Firebase configuration for Firestore and Authentication.

    Returns:
        tuple: (is_valid: bool, issues: List[str])
    """
    issues = []

    credentials_path = (os.getenv('FIREBASE_CREDENTIALS')
                        or os.getenv('GOOGLE_APPLICATION_CREDENTIALS', ''))
    project_id = os.getenv('FIREBASE_PROJECT_ID', '').strip()

    if credentials_path:
        if not os.path.exists(credentials_path):
            issues.append(f"Firebase credentials file not found: {credentials_path}")
    elif not project_id:
        issues.append("Missing Firebase credentials (FIREBASE_CREDENTIALS) or project id (FIREBASE_PROJECT_ID)")

    return len(issues) == 0, issues

def validate_cloudinary_config() -> Tuple[bool, List[str]]:
    """
    Validate Cloudinary unsigned upload configuration.

    Returns:
        tuple: (is_valid: bool, issues: List[str])
    """
    issues = []

    required_vars = {
        'CLOUDINARY_CLOUD_NAME': 'Cloudinary cloud name',
        'CLOUDINARY_UPLOAD_PRESET': 'Cloudinary upload preset'
    }

    for var_name, description in required_vars.items():
        value = os.getenv(var_name)
        if value is None:
            # Built-in defaults apply
            continue
        if len(value.strip()) == 0:
            issues.append(f"Empty {description} ({var_name})")

    return len(issues) == 0, issues

def validate_emailjs_config() -> Tuple[bool, List[str]]:
    """
    Validate EmailJS relay configuration for support tickets.

    Returns:
        tuple: (is_valid: bool, issues: List[str])
    """
    issues = []
    for var_name in ('EMAILJS_SERVICE_ID', 'EMAILJS_TEMPLATE_ID', 'EMAILJS_PUBLIC_KEY'):
        if not os.getenv(var_name, '').strip():
            issues.append(f"Missing {var_name}")
    return len(issues) == 0, issues

def validate_flask_config() -> Tuple[bool, List[str]]:
    """
    Validate Flask configuration for production.

    Returns:
        tuple: (is_valid: bool, issues: List[str])
    """
    issues = []

    session_secret = os.getenv('SESSION_SECRET')
    if not session_secret:
        issues.append("Missing SESSION_SECRET environment variable")
    elif len(session_secret) < 32:
        issues.append("SESSION_SECRET should be at least 32 characters for security")

    debug_mode = os.getenv('DEBUG', 'False').lower()
    if debug_mode in ('true', '1', 'yes'):
        issues.append("DEBUG mode is enabled - should be disabled in production")

    return len(issues) == 0, issues

def check_readiness() -> Dict[str, Any]:
    """
    Combined configuration report used by the health endpoint.

    Returns:
        dict: Status information including issues per subsystem
    """
    firebase_valid, firebase_issues = validate_firebase_config()
    cloudinary_valid, cloudinary_issues = validate_cloudinary_config()
    emailjs_valid, emailjs_issues = validate_emailjs_config()
    flask_valid, flask_issues = validate_flask_config()

    all_issues = firebase_issues + cloudinary_issues + emailjs_issues + flask_issues

    result = {
        'ready': firebase_valid and cloudinary_valid and flask_valid,
        'firebase_configured': firebase_valid,
        'cloudinary_configured': cloudinary_valid,
        'support_relay_configured': emailjs_valid,
        'issues': all_issues
    }

    if result['ready']:
        logger.info("CONFIG: Readiness check PASSED")
    else:
        logger.warning(f"CONFIG: Readiness check FAILED - Issues: {len(all_issues)}")
        for issue in all_issues:
            logger.warning(f"CONFIG: Issue - {issue}")

    return result
