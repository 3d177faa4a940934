from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token
import logging
import os

from services.account_service import AccountService
from services.errors import ValidationError, DuplicateAccountError, AuthenticationError

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def _is_development():
    return os.environ.get('FLASK_ENV', 'production') == 'development'


def issue_token(user):
    """Bearer token for a mirror account; identity is the Firebase uid when linked"""
    return create_access_token(
        identity=user.token_identity,
        additional_claims={'email': user.email, 'company': user.company_name}
    )


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """Register a mirror account"""
    data = request.get_json(silent=True) or {}
    try:
        user = AccountService().register(data)
    except ValidationError as e:
        return jsonify({'success': False, 'message': e.message}), 400
    except DuplicateAccountError as e:
        return jsonify({'success': False, 'message': e.message}), 409
    except Exception as e:
        logger.error(f"Registration error: {str(e)}")
        body = {'success': False, 'message': 'Registration failed. Please try again.'}
        if _is_development():
            body['error'] = str(e)
        return jsonify(body), 500

    return jsonify({
        'success': True,
        'message': 'User registered successfully!',
        'user': user.to_summary()
    }), 201


@auth_bp.route('/signin', methods=['POST'])
def signin():
    """Exchange email and password for a bearer token"""
    data = request.get_json(silent=True) or {}
    try:
        user = AccountService().authenticate(data.get('email'), data.get('password'))
        token = issue_token(user)
    except AuthenticationError as e:
        return jsonify({'success': False, 'message': e.message}), 400
    except Exception as e:
        logger.error(f"Login error: {str(e)}")
        return jsonify({'success': False, 'message': 'Login error'}), 500

    logger.info(f"User signed in: {user.email}")
    return jsonify({'success': True, 'token': token, 'user': user.to_dict()}), 200
