"""
Filter Service

Free-text search, status filters, sorting and pagination over in-memory
record lists. Every list endpoint recomputes its view from the fetched
records on each request.
"""

from typing import Optional, Dict, Any, List, Iterable
from datetime import date, datetime
import math
import re

from utils.normalizers import display_number, to_datetime

_MARKDOWN_PUNCTUATION = re.compile(r'[*_`~]')

ORDER_SEARCH_FIELDS = (
    'order_id', 'booking_id', 'user_name', 'user_phone', 'company_name',
    'booking_status', 'order_status', 'vehicle_type', 'subtype_vehicle',
    'material', 'destination_address', 'from_address', 'driver_name',
    'completed_by_driver', 'driver_id', 'load', 'capacity',
)

DRIVER_SEARCH_FIELDS = ('firstName', 'lastName', 'mobileNumber', 'city', 'state', 'vehicleNumber')

TRACKING_SEARCH_FIELDS = ('id', 'bookingId', 'driver', 'vehicle', 'material')

ORDER_STATUS_FILTERS = ('', 'pending', 'in-progress', 'completed', 'rejected', 'confirmed', 'cancelled')

PAYMENTS_PER_PAGE = 10
TRACKING_PER_PAGE = 6


def sanitize(text: Any) -> str:
    """Strip markdown punctuation, trim and lowercase for comparisons"""
    if text is None or text is False:
        return ''
    return _MARKDOWN_PUNCTUATION.sub('', str(text)).strip().lower()


def _plain(text: Any) -> str:
    if text is None:
        return ''
    return str(text).strip().lower()


def matches_search(record: Dict[str, Any], query: str, fields: Iterable[str]) -> bool:
    needle = sanitize(query)
    if not needle:
        return True
    return any(needle in sanitize(record.get(field)) for field in fields)


def order_status_matches(order: Dict[str, Any], status: str) -> bool:
    """Either status axis may satisfy the filter"""
    wanted = sanitize(status)
    return sanitize(order.get('order_status')) == wanted or sanitize(order.get('booking_status')) == wanted


def _order_sort_key(order: Dict[str, Any]) -> str:
    value = order.get('booking_date') or order.get('createdAt') or ''
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class FilterService:
    """Service class for list filtering and pagination"""

    def filter_orders(self, orders: List[Dict[str, Any]], search: str = '',
                      status: str = '') -> List[Dict[str, Any]]:
        """
        Orders matching ``search`` across the order search fields and, when
        given, ``status`` on either order_status or booking_status. Newest first.
        """
        result = [order for order in orders if matches_search(order, search, ORDER_SEARCH_FIELDS)]
        if status:
            result = [order for order in result if order_status_matches(order, status)]
        return sorted(result, key=_order_sort_key, reverse=True)

    def get_status_counts(self, orders: List[Dict[str, Any]]) -> Dict[str, int]:
        counts = {}
        for status in ORDER_STATUS_FILTERS:
            if status:
                counts[status] = sum(1 for order in orders if order_status_matches(order, status))
            else:
                counts['all'] = len(orders)
        return counts

    def filter_drivers(self, drivers: List[Dict[str, Any]], search: str,
                       company_name: str) -> List[Dict[str, Any]]:
        """
        Driver list view.

        With no search text only drivers approved by ``company_name`` are
        shown. Any search text widens the view to every visible driver that
        matches, pending and rejected ones included.
        """
        if not sanitize(search):
            return [
                driver for driver in drivers
                if (driver.get('approvalStatus') or 'approved') == 'approved'
                and driver.get('approvedBy') == company_name
            ]
        return [driver for driver in drivers if matches_search(driver, search, DRIVER_SEARCH_FIELDS)]

    def filter_vehicles(self, vehicles: List[Dict[str, Any]], search: str = '') -> List[Dict[str, Any]]:
        needle = _plain(search)
        if not needle:
            return list(vehicles)
        return [
            vehicle for vehicle in vehicles
            if any(needle in _plain(value) for value in vehicle.values())
        ]

    def filter_payments(self, rows: List[Dict[str, Any]], search: str = '', status: str = 'All',
                        start: Optional[date] = None, end: Optional[date] = None) -> List[Dict[str, Any]]:
        """
        Payment rows by status, inclusive booking-date range and free text.

        Rows without a parseable date are excluded whenever a range bound is set.
        """
        search = search or ''
        lowered = search.lower()
        result = []
        for row in rows:
            if status and status != 'All' and str(row['paymentStatus']).lower() != status.lower():
                continue

            if start or end:
                row_date = to_datetime(row['date'])
                if row_date is None:
                    continue
                if start and row_date.date() < start:
                    continue
                if end and row_date.date() > end:
                    continue

            if search and not (
                lowered in row['customer'].lower()
                or lowered in row['driver'].lower()
                or lowered in str(row['id']).lower()
                or lowered in row['bookingId'].lower()
                or search in row['date']
                or search in display_number(row['totalAmount'])
            ):
                continue
            result.append(row)
        return result

    def filter_tracking(self, rows: List[Dict[str, Any]], search: str = '',
                        status: str = 'all') -> List[Dict[str, Any]]:
        result = rows
        if status and status.lower() != 'all':
            result = [row for row in result if str(row['status']).lower() == status.lower()]
        needle = _plain(search)
        if needle:
            result = [
                row for row in result
                if any(needle in _plain(row.get(field)) for field in TRACKING_SEARCH_FIELDS)
            ]
        return list(result)

    def paginate(self, items: List[Any], page: int = 1, per_page: int = PAYMENTS_PER_PAGE) -> Dict[str, Any]:
        page = max(int(page or 1), 1)
        total = len(items)
        start = (page - 1) * per_page
        return {
            'items': items[start:start + per_page],
            'page': page,
            'perPage': per_page,
            'total': total,
            'totalPages': math.ceil(total / per_page) if per_page else 0
        }
