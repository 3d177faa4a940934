"""
Order Service

Order create/update/delete and payment settlement writes against the
AllOrders collection. Orders are keyed by their order id.
"""

from typing import Optional, Dict, Any, Tuple
import logging

from timezone_utils import get_iso_timestamp
from .collection_service import ORDERS_COLLECTION, belongs_to_company, load_document
from .errors import RecordNotFoundError, ForbiddenError
from .transaction_helper import TransactionHelper

logger = logging.getLogger(__name__)

ORDER_FIELDS = (
    'advance_amount', 'available_wheel', 'booking_date', 'booking_id', 'booking_status',
    'capacity', 'company_name', 'createdAt', 'dest_lat', 'dest_lng', 'destination_address',
    'distance', 'from_address', 'from_lat', 'from_lng', 'load', 'material',
    'material_quantity', 'odc_breadth', 'odc_consignment', 'odc_height', 'odc_length',
    'order_id', 'order_status', 'payment_id', 'payment_mode', 'payment_percentage',
    'payment_status', 'pending_amount', 'price', 'status', 'subtype_vehicle',
    'total_amount', 'transaction_date', 'user_email', 'user_name', 'user_phone',
    'vehicle_type',
)

REQUIRED_ORDER_FIELDS = (
    'order_id', 'user_name', 'user_phone', 'company_name', 'booking_status',
    'order_status', 'vehicle_type', 'material', 'destination_address',
)


class OrderService:
    """Service class for order mutations"""

    def __init__(self, store):
        self.store = store

    def _document(self, order_id: str):
        return self.store.collection(ORDERS_COLLECTION).document(str(order_id))

    def validate(self, data: Dict[str, Any]) -> Dict[str, str]:
        """Field errors keyed by field name; empty when the order is valid"""
        return {field: 'Required' for field in REQUIRED_ORDER_FIELDS if not data.get(field)}

    def owned_order(self, context, order_id: str) -> Dict[str, Any]:
        """
        Load an order the caller's company may change.

        Raises:
            RecordNotFoundError: no order with that id
            ForbiddenError: the order belongs to another company
            StoreError: the order could not be read
        """
        order = load_document(self._document(order_id), f"order {order_id}")
        if order is None:
            raise RecordNotFoundError(f"Order {order_id} not found")
        if not belongs_to_company(order, context):
            logger.warning(f"User {context.user_id} tried to change order {order_id} "
                           f"of {order.get('company_name')}")
            raise ForbiddenError(f"Order {order_id} belongs to another company")
        return order

    def upsert(self, context, data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
        """
        Create or update an order, keeping fields not present in ``data``.

        The order is always filed under the caller's company. An existing
        order of another company with the same id is never overwritten.

        Args:
            context: CompanyContext of the caller
            data: Order fields; unknown keys are ignored

        Returns:
            tuple: (success: bool, error_message: str)

        Raises:
            ForbiddenError: the order id is taken by another company
        """
        data = {**data, 'company_name': context.company_name}
        errors = self.validate(data)
        if errors:
            return False, f"Missing required fields: {', '.join(errors)}"

        order = {field: data[field] for field in ORDER_FIELDS if field in data}
        order['userId'] = context.user_id

        existing = load_document(self._document(order['order_id']), f"order {order['order_id']}")
        if existing is not None and not belongs_to_company(existing, context):
            raise ForbiddenError(f"Order {order['order_id']} belongs to another company")

        success, _, error = TransactionHelper.execute_mutation(
            self._document(order['order_id']).set, order, merge=True,
            description=f"upsert order {order['order_id']}"
        )
        if not success:
            return False, f"Error saving order: {error}"
        return True, None

    def delete(self, context, order_id: str) -> Tuple[bool, Optional[str]]:
        if not order_id:
            return False, "Order id is required"
        self.owned_order(context, order_id)
        success, _, error = TransactionHelper.execute_mutation(
            self._document(order_id).delete, description=f"delete order {order_id}"
        )
        if not success:
            return False, f"Error deleting: {error}"
        return True, None

    def mark_paid(self, context, order_id: str) -> Tuple[bool, Optional[str]]:
        """
        Settle an order: payment_status "Paid", pending_amount "0" and a
        transaction timestamp. Amounts are not reconciled.
        """
        if not order_id:
            return False, "Order id is required"
        self.owned_order(context, order_id)
        update = {
            'payment_status': 'Paid',
            'pending_amount': '0',
            'transaction_date': get_iso_timestamp(),
        }
        success, _, error = TransactionHelper.execute_mutation(
            self._document(order_id).set, update, merge=True,
            description=f"mark order {order_id} paid"
        )
        if not success:
            return False, f"Failed to update payment status: {error}"
        return True, None
