from enum import Enum
import uuid
from app import db
from timezone_utils import get_ist_time_naive

# Enums for better data integrity
class UserRole(Enum):
    CORPORATE = 'corporate'
    ADMIN = 'admin'

class KycStatus(Enum):
    NOT_SUBMITTED = 'not-submitted'
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


def default_kyc_documents():
    """Empty KYC document structure stored on new mirror users"""
    return {
        'gstin': {'fileUrl': None, 'linkUrl': None},
        'companyPan': {'fileUrl': None, 'linkUrl': None},
        'addressProof': {'fileUrl': None, 'linkUrl': None},
        'incorporationCertificate': {'fileUrl': None, 'linkUrl': None},
        'bankStatement': {'fileUrl': None, 'linkUrl': None},
        'operationalDetails': {
            'numberOfVehicles': 0,
            'numberOfDrivers': 0,
            'operationalAreas': [],
            'businessType': ''
        }
    }


class User(db.Model):
    """Relational mirror of corporate accounts registered with Firebase"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    company_name = db.Column(db.String(200), nullable=False, index=True)
    phone_number = db.Column(db.String(20), nullable=False)
    address = db.Column(db.String(500))
    gstin = db.Column(db.String(20))

    kyc_status = db.Column(db.String(20), nullable=False, default=KycStatus.NOT_SUBMITTED.value)
    kyc_documents = db.Column(db.JSON, default=default_kyc_documents)

    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.CORPORATE)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    firebase_uid = db.Column(db.String(128), unique=True, index=True)

    # Audit fields
    created_at = db.Column(db.DateTime, default=get_ist_time_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=get_ist_time_naive, onupdate=get_ist_time_naive)

    @property
    def token_identity(self):
        """Identity stored in access tokens; Firebase uid when the account is linked"""
        return self.firebase_uid or str(self.id)

    def to_summary(self):
        return {
            'id': self.id,
            'email': self.email,
            'companyName': self.company_name,
            'phoneNumber': self.phone_number,
            'kycStatus': self.kyc_status
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            'address': self.address,
            'gstin': self.gstin,
            'kycDocuments': self.kyc_documents,
            'role': self.role.value if self.role else None,
            'isActive': self.is_active,
            'firebaseUid': self.firebase_uid,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None
        })
        return data

    def __repr__(self):
        return f'<User {self.email}>'
