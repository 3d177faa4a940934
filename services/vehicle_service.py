"""
Vehicle Service

Vehicle create/edit/delete under the hierarchical key
Vehicles/{type}/Companies/{company}/subtypes/{subtype}.
"""

from typing import Optional, Dict, Any, Tuple
import logging
import re

from timezone_utils import get_iso_timestamp
from .collection_service import VEHICLES_COLLECTION, load_document
from .errors import RecordNotFoundError, ForbiddenError, DuplicateRecordError
from .transaction_helper import TransactionHelper

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY_UNIT = 'Tonne'

PLACEHOLDER = {'_placeholder': True}


def clean_string(value: Any) -> str:
    """Trim and collapse internal whitespace"""
    if not value:
        return ''
    return re.sub(r'\s+', ' ', str(value).strip())


def combine_capacity(value: Any, unit: Optional[str] = None) -> str:
    """
    Combine a capacity amount and unit into one string ("20 Tonne").
    A value that already carries a unit is returned cleaned.
    """
    text = clean_string(value)
    if not text:
        return ''
    match = re.match(r'^([\d.]+)\s*(.*)$', text)
    if not match:
        return text
    amount, existing_unit = match.group(1), match.group(2)
    return f"{amount} {existing_unit or unit or DEFAULT_CAPACITY_UNIT}"


def vehicle_key(data: Dict[str, Any]) -> Tuple[str, str, str]:
    return (clean_string(data.get('vehicle_type')),
            clean_string(data.get('company_name')),
            clean_string(data.get('subtype')))


class VehicleService:
    """Service class for vehicle management operations"""

    def __init__(self, store):
        self.store = store

    def _type_document(self, vehicle_type: str):
        return self.store.collection(VEHICLES_COLLECTION).document(vehicle_type)

    def _company_document(self, vehicle_type: str, company_name: str):
        return self._type_document(vehicle_type).collection('Companies').document(company_name)

    def _subtype_document(self, vehicle_type: str, company_name: str, subtype: str):
        return self._company_document(vehicle_type, company_name).collection('subtypes').document(subtype)

    def owned_vehicle(self, context, key: Tuple[str, str, str]) -> Dict[str, Any]:
        """
        Load a vehicle registered by the caller.

        Raises:
            RecordNotFoundError: nothing stored under ``key``
            ForbiddenError: the vehicle was registered by another user
        """
        path = '/'.join(key)
        record = load_document(self._subtype_document(*key), f"vehicle {path}")
        if record is None:
            raise RecordNotFoundError(f"Vehicle {path} not found")
        if record.get('userId') != context.user_id:
            logger.warning(f"User {context.user_id} tried to change vehicle {path}")
            raise ForbiddenError(f"Vehicle {path} belongs to another company")
        return record

    def save_vehicle(self, context, data: Dict[str, Any],
                     original: Optional[Dict[str, Any]] = None) -> Tuple[bool, Optional[str]]:
        """
        Create or edit a vehicle.

        When an edit changes any key segment the vehicle is written at the
        new path and the old document is deleted. If that delete fails the
        new document is removed again so no duplicate remains. A rename onto
        a path that already holds a vehicle is refused.

        Args:
            context: CompanyContext of the caller
            data: Vehicle fields
            original: Vehicle as it was before the edit

        Returns:
            tuple: (success: bool, error_message: str)

        Raises:
            RecordNotFoundError, ForbiddenError: the edited vehicle is missing
                or belongs to another user
            DuplicateRecordError: a rename target is already taken
        """
        if not context.user_id:
            return False, "User not authenticated"

        vehicle_type, company_name, subtype = vehicle_key(data)
        if not vehicle_type or not company_name or not subtype:
            return False, "Vehicle type, company name, and subtype are required"

        record = {
            'vehicle_type': vehicle_type,
            'company_name': company_name,
            'subtype': subtype,
            'capacity': combine_capacity(data.get('capacity'), data.get('capacity_unit')),
            'available_wheels': clean_string(data.get('available_wheels')),
            'price_per_kg': clean_string(data.get('price_per_kg')),
            'price_per_tonne': clean_string(data.get('price_per_tonne')),
            'userId': context.user_id.strip(),
            'createdAt': get_iso_timestamp(),
        }
        new_key = (vehicle_type, company_name, subtype)
        new_ref = self._subtype_document(*new_key)
        current = load_document(new_ref, f"vehicle {'/'.join(new_key)}")

        def write_new():
            new_ref.set(record)
            self._type_document(vehicle_type).set(PLACEHOLDER, merge=True)
            self._company_document(vehicle_type, company_name).set(PLACEHOLDER, merge=True)

        old_key = vehicle_key(original) if original else None
        if not old_key or old_key == new_key:
            if current is not None and current.get('userId') != record['userId']:
                raise ForbiddenError(f"Vehicle {'/'.join(new_key)} belongs to another company")
            success, _, error = TransactionHelper.execute_mutation(
                write_new, description=f"save vehicle {'/'.join(new_key)}"
            )
            if not success:
                return False, f"Error saving vehicle: {error}"
            return True, None

        self.owned_vehicle(context, old_key)
        if current is not None:
            raise DuplicateRecordError(f"A vehicle already exists at {'/'.join(new_key)}")

        old_ref = self._subtype_document(*old_key)
        success, error = TransactionHelper.with_compensation(
            forward=write_new,
            finish=old_ref.delete,
            compensate=new_ref.delete,
            description=f"move vehicle {'/'.join(old_key)} -> {'/'.join(new_key)}"
        )
        if not success:
            return False, f"Error saving vehicle: {error}"
        logger.info(f"Vehicle moved from {'/'.join(old_key)} to {'/'.join(new_key)}")
        return True, None

    def delete_vehicle(self, context, data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
        key = vehicle_key(data)
        if not all(key):
            return False, "Cannot delete vehicle: missing required fields"

        self.owned_vehicle(context, key)
        success, _, error = TransactionHelper.execute_mutation(
            self._subtype_document(*key).delete,
            description=f"delete vehicle {'/'.join(key)}"
        )
        if not success:
            return False, f"Error deleting vehicle: {error}"
        return True, None
