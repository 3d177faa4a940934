"""
Pytest configuration and fixtures for LogiTx application testing
"""

import copy
import os

import pytest

# Set test environment before importing app
os.environ.update({
    'FLASK_ENV': 'testing',
    'TESTING': 'true',
    'SESSION_SECRET': 'test_secret_key_for_testing_only_0123456789',
    'JWT_SECRET_KEY': 'test_jwt_secret_for_testing_only_0123456789',
    'DATABASE_URL': 'sqlite:///:memory:',
    'CLOUDINARY_CLOUD_NAME': 'test-cloud',
    'CLOUDINARY_UPLOAD_PRESET': 'test-preset',
})

from app import create_app, db
from models import User, UserRole, default_kyc_documents
import factory
from factory import Faker
from flask_jwt_extended import create_access_token
from google.api_core import exceptions as google_exceptions
from werkzeug.security import generate_password_hash


# ----------------------------------------------------------------------
# In-memory document store
# ----------------------------------------------------------------------

class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, store, path):
        self._store = store
        self.path = path

    @property
    def id(self):
        return self.path[-1]

    def collection(self, name):
        return FakeCollectionReference(self._store, self.path + (name,))

    def get(self):
        self._store.check('get', self.path)
        return FakeSnapshot(self, self._store.docs.get(self.path))

    def set(self, data, merge=False):
        self._store.check('set', self.path)
        if merge and self.path in self._store.docs:
            self._store.docs[self.path].update(copy.deepcopy(data))
        else:
            self._store.docs[self.path] = copy.deepcopy(data)

    def update(self, data):
        self._store.check('update', self.path)
        if self.path not in self._store.docs:
            raise google_exceptions.NotFound(f"No document to update: {'/'.join(self.path)}")
        self._store.docs[self.path].update(copy.deepcopy(data))

    def delete(self):
        self._store.check('delete', self.path)
        self._store.docs.pop(self.path, None)


class FakeQuery:
    def __init__(self, store, path, filters=()):
        self._store = store
        self.path = path
        self._filters = tuple(filters)

    def where(self, field_path=None, op_string=None, value=None, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        assert op_string == '==', "only equality filters are supported"
        return FakeQuery(self._store, self.path, self._filters + ((field_path, value),))

    def stream(self):
        self._store.check('stream', self.path)
        depth = len(self.path) + 1
        for path, data in sorted(self._store.docs.items()):
            if len(path) != depth or path[:-1] != self.path:
                continue
            if all(data.get(field) == value for field, value in self._filters):
                yield FakeSnapshot(FakeDocumentReference(self._store, path), data)


class FakeCollectionReference(FakeQuery):
    def __init__(self, store, path):
        super().__init__(store, path)

    @property
    def id(self):
        return self.path[-1]

    def document(self, document_id):
        return FakeDocumentReference(self._store, self.path + (str(document_id),))

    def list_documents(self):
        """Document refs under this collection, including ones that only hold subcollections"""
        self._store.check('list_documents', self.path)
        size = len(self.path)
        ids = sorted({path[size] for path in self._store.docs
                      if len(path) > size and path[:size] == self.path})
        return [self.document(document_id) for document_id in ids]


class FakeFirestore:
    """Dictionary-backed stand-in for a Firestore client"""

    def __init__(self):
        self.docs = {}
        self.failures = {}

    def collection(self, name):
        return FakeCollectionReference(self, (name,))

    def fail(self, operation, path, error=None):
        """Make ``operation`` on the slash-separated ``path`` raise ``error``"""
        self.failures[(operation, path)] = error or google_exceptions.ServiceUnavailable('store offline')

    def check(self, operation, path):
        error = self.failures.get((operation, '/'.join(path)))
        if error is not None:
            raise error

    def put(self, path, data):
        self.docs[tuple(path.split('/'))] = copy.deepcopy(data)

    def data(self, path):
        return self.docs.get(tuple(path.split('/')))


# ----------------------------------------------------------------------
# Application fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def store():
    """Empty in-memory document store"""
    return FakeFirestore()


@pytest.fixture(scope='function')
def app(store):
    """Create application for testing"""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'FIRESTORE_CLIENT': store,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for testing"""
    yield db.session
    db.session.rollback()


# Factory classes for test data generation
class UserFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = User
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    email = factory.Sequence(lambda n: f"corporate{n}@test.com")
    password_hash = factory.LazyFunction(lambda: generate_password_hash('testpass123'))
    company_name = factory.Sequence(lambda n: f"Company {n}")
    phone_number = Faker('numerify', text='+919#########')
    address = Faker('address')
    kyc_status = 'not-submitted'
    kyc_documents = factory.LazyFunction(default_kyc_documents)
    role = UserRole.CORPORATE
    is_active = True


@pytest.fixture
def corporate_user(db_session):
    """Mirror account linked to the Acme Logistics company"""
    return UserFactory(email='ops@acme.test', company_name='Acme Logistics', firebase_uid='uid-acme')


# ----------------------------------------------------------------------
# Document fixtures
# ----------------------------------------------------------------------

ACME_UID = 'uid-acme'
ACME = 'Acme Logistics'


@pytest.fixture
def acme_store(store):
    """Store holding the Acme Logistics company profile"""
    store.put(f'companies/{ACME}', {
        'company_name': ACME,
        'userId': ACME_UID,
        'kycStatus': 'not-submitted',
        'primaryContact': {'firstName': 'Asha', 'lastName': 'Rao',
                           'email': 'ops@acme.test', 'mobileNumber': '+919876543210'},
    })
    return store


@pytest.fixture
def acme_orders(acme_store):
    """Three Acme orders and one order from another company"""
    acme_store.put('AllOrders/ORD-1', {
        'order_id': 'ORD-1', 'company_name': ACME, 'user_name': 'Ravi Kumar',
        'total_amount': '₹1,200', 'booking_date': '2025-01-15', 'vehicle_type': 'Truck',
        'order_status': 'completed', 'booking_status': 'confirmed', 'payment_status': 'Paid',
        'booking_id': 'BK-100', 'from_lat': 12.97, 'from_lng': 77.59,
        'dest_lat': 13.08, 'dest_lng': 80.27,
    })
    acme_store.put('AllOrders/ORD-2', {
        'order_id': 'ORD-2', 'company_name': ACME, 'user_name': 'Meena Iyer',
        'price': 800, 'createdAt': {'seconds': 1739577600}, 'vehicle_type': 'Truck',
        'order_status': 'pending', 'payment_status': 'Pending', 'pending_amount': '400',
        'booking_date': '2025-02-15',
    })
    acme_store.put('AllOrders/ORD-3', {
        'order_id': 'ORD-3', 'company_name': ACME, 'user_name': 'Ravi Kumar',
        'total_amount': 'N/A', 'vehicle_type': 'Container', 'order_status': 'in_transit',
        'booking_date': '2025-03-02',
    })
    acme_store.put('AllOrders/ORD-9', {
        'order_id': 'ORD-9', 'company_name': 'Other Co', 'total_amount': 5000,
        'order_status': 'completed',
    })
    return acme_store


@pytest.fixture
def auth_headers(app):
    """Bearer token for the Acme user"""
    token = create_access_token(identity=ACME_UID)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def stranger_headers(app):
    """Bearer token for a user with no company profile"""
    token = create_access_token(identity='uid-nobody')
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def rival_headers(app, store):
    """Bearer token for the user of a second company, Rival Co"""
    store.put('companies/Rival Co', {'company_name': 'Rival Co', 'userId': 'uid-rival'})
    token = create_access_token(identity='uid-rival')
    return {'Authorization': f'Bearer {token}'}
