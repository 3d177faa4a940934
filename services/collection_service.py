"""
Collection Service

Company-scoped reads of orders, drivers and vehicles from the document store.
"""

from typing import Optional, List, Dict, Any
import logging

from firebase_service import where_equals, snapshot_to_record
from .errors import StoreError
from .transaction_helper import describe_store_error

logger = logging.getLogger(__name__)

ORDERS_COLLECTION = 'AllOrders'
DRIVERS_COLLECTION = 'Drivers'
VEHICLES_COLLECTION = 'Vehicles'


def approval_status(driver: Dict[str, Any]) -> str:
    """Stored approval status; legacy records without one count as approved"""
    return driver.get('approvalStatus') or 'approved'


def belongs_to_company(record: Dict[str, Any], context) -> bool:
    """Same scoping as fetch_by_company: company name, or owner uid when the caller has no company"""
    if context.company_name:
        return record.get('company_name') == context.company_name
    return bool(context.user_id) and record.get('userId') == context.user_id


def driver_belongs_to_company(driver: Dict[str, Any], context) -> bool:
    if context.company_name:
        return context.company_name in (driver.get('approvedBy'), driver.get('company_name'))
    return bool(context.user_id) and driver.get('userId') == context.user_id


def load_document(reference, label: str) -> Optional[Dict[str, Any]]:
    """
    Data of a single document, or None when it does not exist.

    Raises:
        StoreError: the store could not be read
    """
    try:
        snapshot = reference.get()
    except Exception as e:
        logger.error(f"Error loading {label}: {str(e)}")
        raise StoreError(f"Error loading {label}: {describe_store_error(e)}")
    if not snapshot.exists:
        return None
    return snapshot.to_dict() or {}


def merge_capacity_unit(record: Dict[str, Any]) -> Dict[str, Any]:
    """Fold a legacy ``capacity_unit`` field into the combined capacity string"""
    unit = record.get('capacity_unit')
    capacity = record.get('capacity')
    if unit and capacity and str(unit) not in str(capacity):
        record['capacity'] = f"{capacity} {unit}"
    return record


class CollectionService:
    """Service class for company-scoped collection reads"""

    def __init__(self, store):
        self.store = store

    def fetch_by_company(self, collection: str, company_name: str,
                         user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        All documents of ``collection`` belonging to a company.

        Args:
            collection: Collection name, e.g. 'AllOrders'
            company_name: Denormalized company name to match
            user_id: Owner uid used when the company name is empty

        Returns:
            list: records with their document id under 'id'

        Raises:
            StoreError: the store could not be read
        """
        if company_name:
            field, value = 'company_name', company_name
        elif user_id:
            field, value = 'userId', user_id
        else:
            return []

        try:
            query = where_equals(self.store.collection(collection), field, value)
            records = [snapshot_to_record(snapshot) for snapshot in query.stream()]
        except Exception as e:
            logger.error(f"Error fetching {collection} for {field}={value}: {str(e)}")
            raise StoreError(f"Error fetching {collection}: {describe_store_error(e)}")

        logger.debug(f"Fetched {len(records)} {collection} records for {field}={value}")
        return records

    def fetch_orders(self, company_name: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.fetch_by_company(ORDERS_COLLECTION, company_name, user_id)

    def fetch_company_drivers(self, company_name: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.fetch_by_company(DRIVERS_COLLECTION, company_name, user_id)

    def fetch_visible_drivers(self, company_name: str) -> List[Dict[str, Any]]:
        """
        Drivers a company may see in its driver list.

        Includes drivers approved by or registered to the company, plus every
        pending driver. A missing approval status reads back as 'approved'.
        """
        try:
            snapshots = list(self.store.collection(DRIVERS_COLLECTION).stream())
        except Exception as e:
            logger.error(f"Error fetching drivers: {str(e)}")
            raise StoreError(f"Error fetching drivers: {describe_store_error(e)}")

        drivers = []
        for snapshot in snapshots:
            record = snapshot_to_record(snapshot)
            record['approvalStatus'] = approval_status(record)
            if (record.get('approvedBy') == company_name
                    or record.get('company_name') == company_name
                    or record['approvalStatus'] == 'pending'):
                drivers.append(record)
        return drivers

    def fetch_vehicles(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Walk Vehicles/{type}/Companies/{company}/subtypes/{subtype} and return
        the subtype documents owned by ``user_id`` as a flat list.
        """
        vehicles = []
        try:
            for type_ref in self.store.collection(VEHICLES_COLLECTION).list_documents():
                for company_ref in type_ref.collection('Companies').list_documents():
                    subtypes = where_equals(company_ref.collection('subtypes'), 'userId', user_id)
                    for snapshot in subtypes.stream():
                        record = dict(snapshot.to_dict() or {})
                        record['id'] = f"{type_ref.id}_{company_ref.id}_{snapshot.id}"
                        record.setdefault('vehicle_type', type_ref.id)
                        record.setdefault('company_name', company_ref.id)
                        record.setdefault('subtype', snapshot.id)
                        vehicles.append(merge_capacity_unit(record))
        except Exception as e:
            logger.error(f"Error fetching vehicles for {user_id}: {str(e)}")
            raise StoreError(f"Error fetching vehicles: {describe_store_error(e)}")

        return vehicles
