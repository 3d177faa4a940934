"""
Reporting Service

Handles dashboard statistics, revenue calculations, payment settlement
summaries and shipment tracking views derived from company orders.
"""

from typing import Optional, Dict, Any, List
from collections import defaultdict
from datetime import datetime
import calendar
import logging

from timezone_utils import get_ist_time_naive, get_iso_timestamp
from utils.normalizers import coerce_amount, first_present, resolve_order_date

logger = logging.getLogger(__name__)

ACTIVE_DRIVER_STATUSES = ('active', 'available')
PAID_STATUSES = ('Paid', 'paid')
IN_TRANSIT_STATUSES = ('in_transit', 'in transit')


def coerce_coordinate(value: Any) -> float:
    """Numeric coordinate, 0 when missing or unparseable"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number == number else 0.0


def order_amount(order: Dict[str, Any]) -> float:
    """Revenue amount of an order from the first populated amount field"""
    return coerce_amount(first_present(order.get('total_amount'), order.get('price'),
                                       order.get('amount'), 0))


class ReportingService:
    """Service class for reporting and analytics operations"""

    def get_dashboard_statistics(self, orders: List[Dict[str, Any]],
                                 drivers: List[Dict[str, Any]],
                                 now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Aggregate dashboard statistics for a company.

        Orders with a zero or unparseable amount are counted in totalOrders
        but contribute neither revenue nor a monthly bucket entry.

        Args:
            orders: Company orders
            drivers: Company drivers
            now: Reference time, defaults to current IST time

        Returns:
            dict: totalOrders, totalRevenue, monthlyRevenue, vehiclesInUse, activeDrivers
        """
        now = now or get_ist_time_naive()

        active_drivers = sum(
            1 for driver in drivers
            if str(driver.get('status') or '').lower() in ACTIVE_DRIVER_STATUSES
        )

        total_revenue = 0.0
        vehicles_used = set()
        buckets = defaultdict(lambda: {'value': 0.0, 'count': 0})

        for order in orders:
            if order.get('vehicle_type'):
                vehicles_used.add(order['vehicle_type'])
            if order.get('vehicle_number'):
                vehicles_used.add(order['vehicle_number'])

            amount = order_amount(order)
            if amount <= 0:
                continue

            total_revenue += amount
            order_date = resolve_order_date(order, now=now)
            bucket = buckets[order_date.strftime('%Y-%m')]
            bucket['value'] += amount
            bucket['count'] += 1

        logger.info(f"Dashboard aggregated: {len(orders)} orders, revenue {total_revenue:.2f}")

        return {
            'totalOrders': len(orders),
            'totalRevenue': round(total_revenue, 2),
            'monthlyRevenue': self.build_monthly_series(buckets, now),
            'vehiclesInUse': len(vehicles_used),
            'activeDrivers': active_drivers,
            'generatedAt': now.isoformat()
        }

    def build_monthly_series(self, buckets: Dict[str, Dict[str, Any]],
                             now: datetime) -> List[Dict[str, Any]]:
        """January through the current month of the current year; later months are omitted."""
        series = []
        for month in range(1, now.month + 1):
            key = f"{now.year}-{month:02d}"
            bucket = buckets.get(key)
            series.append({
                'key': key,
                'label': calendar.month_abbr[month],
                'value': round(bucket['value'], 2) if bucket else 0,
                'count': bucket['count'] if bucket else 0,
                'hasData': bucket is not None
            })
        return series

    # ------------------------------------------------------------------
    # Payment settlements
    # ------------------------------------------------------------------

    def build_payment_rows(self, orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Project orders into payment settlement rows"""
        rows = []
        for order in orders:
            booking_date = order.get('booking_date')
            rows.append({
                'id': str(order.get('order_id') or order.get('id') or ''),
                'bookingId': str(order.get('booking_id') or ''),
                'customer': str(order.get('user_name') or 'N/A'),
                'driver': str(order.get('driver_name') or 'N/A'),
                'vehicle': order.get('vehicle_type') or 'N/A',
                'date': str(booking_date)[:10] if booking_date else '',
                'totalAmount': coerce_amount(first_present(order.get('total_amount'), order.get('price'), 0)),
                'advanceAmount': coerce_amount(order.get('advance_amount') or 0),
                'pendingAmount': coerce_amount(order.get('pending_amount') or 0),
                'paymentStatus': order.get('payment_status') or 'Pending',
                'paymentMode': order.get('payment_mode') or 'N/A',
                'transactionDate': order.get('transaction_date') or ''
            })
        return rows

    def get_payment_summary(self, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        paid = [row for row in rows if row['paymentStatus'] in PAID_STATUSES]
        unpaid = [row for row in rows if row['paymentStatus'] not in PAID_STATUSES]
        return {
            'totalRevenue': round(sum(row['totalAmount'] for row in rows), 2),
            'totalPaid': round(sum(row['totalAmount'] for row in paid), 2),
            'totalPending': round(sum(row['pendingAmount'] for row in unpaid), 2),
            'paidCount': len(paid),
            'pendingCount': len(unpaid)
        }

    # ------------------------------------------------------------------
    # Shipment tracking
    # ------------------------------------------------------------------

    def build_tracking_rows(self, orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Project orders into tracking rows with a current position and route"""
        rows = []
        for order in orders:
            driver_lat = driver_lng = 0.0
            current = order.get('driver_current_location')
            history = order.get('driverLocation')
            if isinstance(current, dict):
                driver_lat = coerce_coordinate(current.get('latitude'))
                driver_lng = coerce_coordinate(current.get('longitude'))
            elif isinstance(history, (list, tuple)) and len(history) >= 2:
                driver_lat = coerce_coordinate(history[0])
                driver_lng = coerce_coordinate(history[1])

            dest_lat = coerce_coordinate(order.get('dest_lat'))
            dest_lng = coerce_coordinate(order.get('dest_lng'))
            current_lat = driver_lat or dest_lat
            current_lng = driver_lng or dest_lng

            route = [
                {'lat': coerce_coordinate(order.get('from_lat')), 'lng': coerce_coordinate(order.get('from_lng'))},
                {'lat': current_lat, 'lng': current_lng},
                {'lat': dest_lat, 'lng': dest_lng},
            ]

            rows.append({
                'id': str(order.get('order_id') or order.get('id') or ''),
                'bookingId': order.get('booking_id') or '',
                'driver': order.get('driver_name') or order.get('user_name') or 'Unknown',
                'driverPhone': order.get('driver_id') or order.get('user_phone') or '',
                'vehicle': order.get('vehicle_type') or 'Unknown',
                'vehicleSubtype': order.get('subtype_vehicle') or '',
                'material': order.get('material') or '',
                'quantity': order.get('material_quantity') or '',
                'fromAddress': order.get('from_address') or '',
                'toAddress': order.get('destination_address') or '',
                'location': {'lat': current_lat, 'lng': current_lng},
                'status': order.get('order_status') or order.get('status') or 'Unknown',
                'bookingStatus': order.get('booking_status') or '',
                'lastUpdated': (order.get('lastLocationUpdate') or order.get('booking_date')
                                or get_iso_timestamp()),
                'route': [point for point in route if point['lat'] != 0 and point['lng'] != 0]
            })
        return rows

    def get_tracking_summary(self, rows: List[Dict[str, Any]]) -> Dict[str, int]:
        statuses = [str(row['status']).lower() for row in rows]
        return {
            'total': len(rows),
            'completed': statuses.count('completed'),
            'inTransit': sum(1 for status in statuses if status in IN_TRANSIT_STATUSES),
            'pending': statuses.count('pending')
        }
