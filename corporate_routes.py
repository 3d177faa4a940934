"""
Corporate API Module
Company-scoped endpoints behind the corporate dashboard
"""

from datetime import date
import logging

from flask import Blueprint, request, jsonify, g
from flask_jwt_extended import jwt_required, get_jwt_identity

from firebase_service import get_store
from services.company_service import CompanyService, CompanyContext
from services.collection_service import CollectionService
from services.driver_service import DriverService
from services.errors import ValidationError, CompanyNotFoundError
from services.file_service import DRIVER_DOCUMENT_TYPES
from services.filter_service import FilterService, PAYMENTS_PER_PAGE, TRACKING_PER_PAGE
from services.notification_service import NotificationService, SupportTicket
from services.order_service import OrderService
from services.reporting_service import ReportingService
from services.vehicle_service import VehicleService, vehicle_key
from utils.api_responses import error_response, api_endpoint

logger = logging.getLogger(__name__)

corporate_bp = Blueprint('corporate', __name__)

NO_COMPANY_MESSAGE = "Company information not found. Please complete your profile."


def get_company_context() -> CompanyContext:
    """Resolve the caller's company from the JWT identity"""
    user_id = get_jwt_identity()
    context = CompanyService(get_store()).resolve_context(user_id)
    g.current_user_id = user_id
    g.current_company = context.company_name
    return context


def mutation_response(success, error, message, status=200):
    if not success:
        return error_response('MUTATION_FAILED', error, 502)
    return jsonify({'success': True, 'message': message}), status


def require_vehicle_key(data):
    missing = {field: 'Required' for field, value in zip(('vehicle_type', 'company_name', 'subtype'),
                                                         vehicle_key(data)) if not value}
    if missing:
        raise ValidationError('Vehicle type, company name, and subtype are required', missing)


def _parse_date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ValidationError(f"Invalid {name} date, expected YYYY-MM-DD", {name: 'Invalid date'})


def _page_arg():
    try:
        return max(int(request.args.get('page', 1)), 1)
    except ValueError:
        return 1


# ----------------------------------------------------------------------
# Dashboard
# ----------------------------------------------------------------------

@corporate_bp.route('/dashboard', methods=['GET'])
@jwt_required()
@api_endpoint
def dashboard():
    """Summary statistics and monthly revenue for the current year"""
    context = get_company_context()
    collections = CollectionService(get_store())
    orders = collections.fetch_orders(context.company_name, context.user_id)
    drivers = collections.fetch_company_drivers(context.company_name, context.user_id)

    statistics = ReportingService().get_dashboard_statistics(orders, drivers)
    return jsonify({
        'success': True,
        'companyName': context.company_name,
        'statistics': statistics
    })


# ----------------------------------------------------------------------
# Orders
# ----------------------------------------------------------------------

@corporate_bp.route('/orders', methods=['GET'])
@jwt_required()
@api_endpoint
def list_orders():
    """Company orders filtered by ?search= and ?status="""
    context = get_company_context()
    filters = FilterService()
    if not context.has_company:
        return jsonify({
            'success': True,
            'orders': [],
            'statusCounts': filters.get_status_counts([]),
            'warning': NO_COMPANY_MESSAGE
        })

    orders = CollectionService(get_store()).fetch_orders(context.company_name)
    filtered = filters.filter_orders(orders, request.args.get('search', ''), request.args.get('status', ''))

    response = {
        'success': True,
        'companyName': context.company_name,
        'orders': filtered,
        'total': len(orders),
        'statusCounts': filters.get_status_counts(orders)
    }
    if not orders:
        response['message'] = f"No orders found for company: {context.company_name}"
    return jsonify(response)


def _save_order(data):
    context = get_company_context()
    if not context.has_company:
        raise CompanyNotFoundError(NO_COMPANY_MESSAGE)
    data['company_name'] = context.company_name
    service = OrderService(get_store())
    errors = service.validate(data)
    if errors:
        raise ValidationError('Please fill all required fields', errors)
    success, error = service.upsert(context, data)
    return mutation_response(success, error, 'Order saved successfully')


@corporate_bp.route('/orders', methods=['POST'])
@jwt_required()
@api_endpoint
def create_order():
    return _save_order(request.get_json(silent=True) or {})


@corporate_bp.route('/orders/<order_id>', methods=['PUT'])
@jwt_required()
@api_endpoint
def update_order(order_id):
    data = request.get_json(silent=True) or {}
    data['order_id'] = order_id
    return _save_order(data)


@corporate_bp.route('/orders/<order_id>', methods=['DELETE'])
@jwt_required()
@api_endpoint
def delete_order(order_id):
    context = get_company_context()
    success, error = OrderService(get_store()).delete(context, order_id)
    return mutation_response(success, error, 'Order deleted')


# ----------------------------------------------------------------------
# Payments
# ----------------------------------------------------------------------

@corporate_bp.route('/payments', methods=['GET'])
@jwt_required()
@api_endpoint
def list_payments():
    """Payment settlement rows, summary and a page of filtered results"""
    context = get_company_context()
    reporting = ReportingService()
    filters = FilterService()
    if not context.has_company:
        return jsonify({
            'success': True,
            'summary': reporting.get_payment_summary([]),
            'payments': filters.paginate([], 1, PAYMENTS_PER_PAGE),
            'warning': NO_COMPANY_MESSAGE
        })

    orders = CollectionService(get_store()).fetch_orders(context.company_name)
    rows = reporting.build_payment_rows(orders)
    filtered = filters.filter_payments(
        rows,
        search=request.args.get('search', ''),
        status=request.args.get('status', 'All'),
        start=_parse_date_arg('start'),
        end=_parse_date_arg('end')
    )
    return jsonify({
        'success': True,
        'summary': reporting.get_payment_summary(rows),
        'payments': filters.paginate(filtered, _page_arg(), PAYMENTS_PER_PAGE)
    })


@corporate_bp.route('/payments/<order_id>/mark-paid', methods=['POST'])
@jwt_required()
@api_endpoint
def mark_paid(order_id):
    context = get_company_context()
    success, error = OrderService(get_store()).mark_paid(context, order_id)
    if success:
        logger.info(f"Order {order_id} marked paid by {g.current_company or g.current_user_id}")
    return mutation_response(success, error, f"Order {order_id} marked as paid")


# ----------------------------------------------------------------------
# Tracking
# ----------------------------------------------------------------------

@corporate_bp.route('/tracking', methods=['GET'])
@jwt_required()
@api_endpoint
def list_tracking():
    """Shipment positions and routes for the company's orders"""
    context = get_company_context()
    reporting = ReportingService()
    filters = FilterService()
    if not context.has_company:
        return jsonify({
            'success': True,
            'summary': reporting.get_tracking_summary([]),
            'shipments': filters.paginate([], 1, TRACKING_PER_PAGE),
            'warning': NO_COMPANY_MESSAGE
        })

    orders = CollectionService(get_store()).fetch_orders(context.company_name)
    rows = reporting.build_tracking_rows(orders)
    filtered = filters.filter_tracking(rows, request.args.get('search', ''), request.args.get('status', 'all'))
    return jsonify({
        'success': True,
        'summary': reporting.get_tracking_summary(rows),
        'shipments': filters.paginate(filtered, _page_arg(), TRACKING_PER_PAGE)
    })


# ----------------------------------------------------------------------
# Drivers
# ----------------------------------------------------------------------

@corporate_bp.route('/drivers', methods=['GET'])
@jwt_required()
@api_endpoint
def list_drivers():
    """Approved drivers by default; ?search= widens to pending and rejected matches"""
    context = get_company_context()
    if not context.has_company:
        return jsonify({'success': True, 'drivers': [], 'warning': NO_COMPANY_MESSAGE})

    drivers = CollectionService(get_store()).fetch_visible_drivers(context.company_name)
    filtered = FilterService().filter_drivers(drivers, request.args.get('search', ''), context.company_name)
    return jsonify({'success': True, 'drivers': filtered, 'total': len(drivers)})


def _driver_payload():
    if request.files or request.form:
        data = request.form.to_dict()
        files = {doc_type: request.files[doc_type] for doc_type in DRIVER_DOCUMENT_TYPES
                 if doc_type in request.files}
        return data, files
    return request.get_json(silent=True) or {}, {}


def _save_driver(original_mobile=None):
    context = get_company_context()
    data, files = _driver_payload()
    service = DriverService(get_store())
    errors = service.validate(data)
    if errors:
        raise ValidationError('Please correct the highlighted fields', errors)

    success, error = service.save_driver(context, data, files, original_mobile=original_mobile)
    if not success:
        return error_response('MUTATION_FAILED', error, 502)
    action = 'updated' if original_mobile else 'added'
    return jsonify({'success': True, 'message': f"Driver {action} successfully!"}), 200 if original_mobile else 201


@corporate_bp.route('/drivers', methods=['POST'])
@jwt_required()
@api_endpoint
def create_driver():
    return _save_driver()


@corporate_bp.route('/drivers/<mobile_number>', methods=['PUT'])
@jwt_required()
@api_endpoint
def update_driver(mobile_number):
    return _save_driver(original_mobile=mobile_number)


@corporate_bp.route('/drivers/<mobile_number>/approve', methods=['POST'])
@jwt_required()
@api_endpoint
def approve_driver(mobile_number):
    context = get_company_context()
    success, error = DriverService(get_store()).approve_driver(context, mobile_number)
    return mutation_response(success, error, f"Driver {mobile_number} has been approved!")


@corporate_bp.route('/drivers/<mobile_number>/reject', methods=['POST'])
@jwt_required()
@api_endpoint
def reject_driver(mobile_number):
    context = get_company_context()
    reason = (request.get_json(silent=True) or {}).get('reason')
    success, error = DriverService(get_store()).reject_driver(context, mobile_number, reason)
    return mutation_response(success, error, f"Driver {mobile_number} has been rejected.")


@corporate_bp.route('/drivers/<mobile_number>', methods=['DELETE'])
@jwt_required()
@api_endpoint
def delete_driver(mobile_number):
    context = get_company_context()
    success, error = DriverService(get_store()).delete_driver(context, mobile_number)
    return mutation_response(success, error, 'Driver deleted')


# ----------------------------------------------------------------------
# Vehicles
# ----------------------------------------------------------------------

@corporate_bp.route('/vehicles', methods=['GET'])
@jwt_required()
@api_endpoint
def list_vehicles():
    context = get_company_context()
    vehicles = CollectionService(get_store()).fetch_vehicles(context.user_id)
    filtered = FilterService().filter_vehicles(vehicles, request.args.get('search', ''))
    return jsonify({'success': True, 'companyName': context.company_name, 'vehicles': filtered})


@corporate_bp.route('/vehicles', methods=['POST', 'PUT'])
@jwt_required()
@api_endpoint
def save_vehicle():
    """POST creates; PUT expects {'vehicle': {...}, 'original': {...}}"""
    context = get_company_context()
    payload = request.get_json(silent=True) or {}
    if request.method == 'PUT':
        vehicle, original = payload.get('vehicle') or {}, payload.get('original')
    else:
        vehicle, original = payload, None

    require_vehicle_key(vehicle)
    success, error = VehicleService(get_store()).save_vehicle(context, vehicle, original)
    verb = 'updated' if original else 'added'
    return mutation_response(success, error, f"Vehicle {verb} successfully",
                             status=200 if original else 201)


@corporate_bp.route('/vehicles', methods=['DELETE'])
@jwt_required()
@api_endpoint
def delete_vehicle():
    context = get_company_context()
    payload = request.get_json(silent=True) or request.args.to_dict()
    require_vehicle_key(payload)
    success, error = VehicleService(get_store()).delete_vehicle(context, payload)
    return mutation_response(success, error, 'Vehicle deleted successfully')


# ----------------------------------------------------------------------
# Support
# ----------------------------------------------------------------------

@corporate_bp.route('/support', methods=['POST'])
@jwt_required()
@api_endpoint
def submit_support_ticket():
    """Relay a support request to the admin mailbox"""
    get_company_context()
    ticket = SupportTicket.from_dict(request.get_json(silent=True) or {})
    errors = ticket.validate()
    if errors:
        raise ValidationError('Please correct the highlighted fields', errors)

    success, error = NotificationService().send_support_ticket(ticket)
    if not success:
        return error_response('RELAY_FAILED', error, 502)
    return jsonify({'success': True, 'message': 'Your message has been sent to LogitX admin.'})
