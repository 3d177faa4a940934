"""
Unit tests for the relational account mirror
"""

import pytest

from models import User, UserRole
from services.account_service import AccountService
from services.errors import AuthenticationError, DuplicateAccountError, ValidationError


def signup(**overrides):
    data = {
        'email': 'Ops@Acme.test',
        'password': 'secret123',
        'companyName': 'Acme Logistics',
        'phoneNumber': '+919876543210',
    }
    data.update(overrides)
    return data


class TestRegister:

    def test_creates_user(self, db_session):
        user = AccountService().register(signup(firebaseUid='uid-acme'))

        assert user.id is not None
        assert user.email == 'ops@acme.test'
        assert user.role == UserRole.CORPORATE
        assert user.kyc_status == 'not-submitted'
        assert user.password_hash != 'secret123'
        assert user.token_identity == 'uid-acme'
        assert User.query.count() == 1

    def test_token_identity_without_firebase_uid(self, db_session):
        user = AccountService().register(signup())
        assert user.token_identity == str(user.id)

    def test_missing_fields(self, db_session):
        with pytest.raises(ValidationError):
            AccountService().register(signup(phoneNumber=''))

    def test_duplicate_email(self, db_session, corporate_user):
        with pytest.raises(DuplicateAccountError):
            AccountService().register(signup(email='OPS@acme.test'))


class TestAuthenticate:

    def test_valid_credentials(self, corporate_user):
        user = AccountService().authenticate(' OPS@acme.test ', 'testpass123')
        assert user.id == corporate_user.id

    def test_wrong_password(self, corporate_user):
        with pytest.raises(AuthenticationError) as excinfo:
            AccountService().authenticate('ops@acme.test', 'nope')
        assert excinfo.value.message == 'Invalid credentials'

    def test_unknown_email(self, db_session):
        with pytest.raises(AuthenticationError) as excinfo:
            AccountService().authenticate('ghost@acme.test', 'secret123')
        assert excinfo.value.message == 'User not found'


def test_user_serialization(corporate_user):
    data = corporate_user.to_dict()

    assert data['companyName'] == 'Acme Logistics'
    assert data['role'] == 'corporate'
    assert data['firebaseUid'] == 'uid-acme'
    assert 'password_hash' not in data
    assert data['kycDocuments']['operationalDetails']['numberOfVehicles'] == 0
