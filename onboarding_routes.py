"""
Onboarding API Module
Company registration and KYC submission
"""

import logging

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity

from firebase_service import get_store
from services.account_service import AccountService
from services.company_service import CompanyService, SERVICE_FLAGS
from services.file_service import KYC_DOCUMENT_FOLDERS
from utils.api_responses import error_response, api_endpoint, parse_flag

logger = logging.getLogger(__name__)

onboarding_bp = Blueprint('onboarding', __name__)


@onboarding_bp.route('/register', methods=['POST'])
@api_endpoint
def register_company():
    """Create the auth user, company profile and mirror account"""
    form = request.get_json(silent=True) or request.form.to_dict()
    success, result, error = CompanyService(get_store()).register_company(
        form, account_service=AccountService()
    )
    if not success:
        return error_response('REGISTRATION_FAILED', error, 400)

    return jsonify({
        'success': True,
        'message': 'Registration successful! Please sign in to complete KYC.',
        'uid': result['uid'],
        'companyName': result['companyName']
    }), 201


def _kyc_submission():
    """Collect a KYC submission from a multipart form or a JSON body"""
    if request.files or request.form:
        form = request.form
        submission = {
            'uploadMethod': form.get('uploadMethod', 'file'),
            'files': {key: request.files[key] for key in KYC_DOCUMENT_FOLDERS if key in request.files},
            'links': {key: form.get(key) for key in KYC_DOCUMENT_FOLDERS if form.get(key)},
            'logoUploadMethod': form.get('logoUploadMethod', 'file'),
            'logoFile': request.files.get('companyLogo'),
            'logoLink': form.get('logoLink'),
            'description': form.get('description', ''),
        }
        submission.update({flag: parse_flag(form.get(flag)) for flag in SERVICE_FLAGS})
        return submission

    # Link-only submissions may arrive as JSON
    data = request.get_json(silent=True) or {}
    submission = {
        'uploadMethod': data.get('uploadMethod', 'link'),
        'files': {},
        'links': data.get('links') or {},
        'logoUploadMethod': data.get('logoUploadMethod', 'link'),
        'logoFile': None,
        'logoLink': data.get('logoLink'),
        'description': data.get('description', ''),
    }
    submission.update({flag: parse_flag(data.get(flag)) for flag in SERVICE_FLAGS})
    return submission


@onboarding_bp.route('/kyc', methods=['POST'])
@jwt_required()
@api_endpoint
def submit_kyc():
    user_id = get_jwt_identity()
    success, error = CompanyService(get_store()).submit_kyc(user_id, _kyc_submission())
    if not success:
        return error_response('KYC_SUBMISSION_FAILED', error, 502)

    logger.info(f"KYC submitted by user {user_id}")
    return jsonify({
        'success': True,
        'message': 'KYC submitted successfully! Your documents are under review.'
    })


@onboarding_bp.route('/kyc/status', methods=['GET'])
@jwt_required()
@api_endpoint
def kyc_status():
    status = CompanyService(get_store()).get_kyc_status(get_jwt_identity())
    return jsonify({'success': True, **status})
