"""
Integration tests for the corporate dashboard API
"""

import io
from unittest.mock import Mock, patch

import pytest


class TestDashboard:

    def test_statistics(self, client, acme_orders, auth_headers):
        response = client.get('/api/corporate/dashboard', headers=auth_headers)

        assert response.status_code == 200
        body = response.get_json()
        assert body['companyName'] == 'Acme Logistics'
        assert body['statistics']['totalOrders'] == 3
        assert body['statistics']['totalRevenue'] == 2000.0
        assert body['statistics']['vehiclesInUse'] == 2

    def test_store_failure(self, client, acme_orders, auth_headers):
        acme_orders.fail('stream', 'AllOrders')

        response = client.get('/api/corporate/dashboard', headers=auth_headers)

        assert response.status_code == 502
        assert response.get_json()['error'] == 'STORE_ERROR'


class TestOrders:
    """Order list and mutations"""

    def test_list(self, client, acme_orders, auth_headers):
        body = client.get('/api/corporate/orders', headers=auth_headers).get_json()

        assert [order['order_id'] for order in body['orders']] == ['ORD-3', 'ORD-2', 'ORD-1']
        assert body['statusCounts']['all'] == 3
        assert body['statusCounts']['completed'] == 1

    def test_search_and_status(self, client, acme_orders, auth_headers):
        body = client.get('/api/corporate/orders?search=ravi&status=completed', headers=auth_headers).get_json()

        assert [order['order_id'] for order in body['orders']] == ['ORD-1']
        assert body['statusCounts']['all'] == 3

    def test_no_orders_message(self, client, acme_store, auth_headers):
        body = client.get('/api/corporate/orders', headers=auth_headers).get_json()

        assert body['orders'] == []
        assert body['message'] == 'No orders found for company: Acme Logistics'

    def test_user_without_company(self, client, acme_orders, stranger_headers):
        response = client.get('/api/corporate/orders', headers=stranger_headers)

        assert response.status_code == 200
        body = response.get_json()
        assert body['orders'] == []
        assert body['warning'] == "Company information not found. Please complete your profile."

    def test_create(self, client, acme_store, auth_headers):
        response = client.post('/api/corporate/orders', headers=auth_headers, json={
            'order_id': 'ORD-20', 'user_name': 'Ravi Kumar', 'user_phone': '+919800000001',
            'company_name': 'Acme Logistics', 'booking_status': 'confirmed', 'order_status': 'pending',
            'vehicle_type': 'Truck', 'material': 'Steel', 'destination_address': 'Chennai Port',
            'total_amount': '2500',
        })

        assert response.status_code == 200
        assert acme_store.data('AllOrders/ORD-20')['userId'] == 'uid-acme'

    def test_create_missing_fields(self, client, acme_store, auth_headers):
        response = client.post('/api/corporate/orders', headers=auth_headers, json={'order_id': 'ORD-21'})

        assert response.status_code == 400
        body = response.get_json()
        assert body['error'] == 'VALIDATION_ERROR'
        assert body['fields']['material'] == 'Required'
        assert acme_store.data('AllOrders/ORD-21') is None

    def test_update_uses_path_id(self, client, acme_orders, auth_headers):
        response = client.put('/api/corporate/orders/ORD-2', headers=auth_headers, json={
            'user_name': 'Meena Iyer', 'user_phone': '+919800000002', 'company_name': 'Acme Logistics',
            'booking_status': 'confirmed', 'order_status': 'completed', 'vehicle_type': 'Truck',
            'material': 'Cement', 'destination_address': 'Madurai',
        })

        assert response.status_code == 200
        doc = acme_orders.data('AllOrders/ORD-2')
        assert doc['order_status'] == 'completed'
        assert doc['price'] == 800

    def test_delete(self, client, acme_orders, auth_headers):
        response = client.delete('/api/corporate/orders/ORD-3', headers=auth_headers)

        assert response.status_code == 200
        assert acme_orders.data('AllOrders/ORD-3') is None

    def test_update_ignores_order_id_in_body(self, client, acme_orders, auth_headers):
        response = client.put('/api/corporate/orders/ORD-2', headers=auth_headers, json={
            'order_id': 'ORD-3', 'user_name': 'Meena Iyer', 'user_phone': '+919800000002',
            'booking_status': 'confirmed', 'order_status': 'completed', 'vehicle_type': 'Truck',
            'material': 'Cement', 'destination_address': 'Madurai',
        })

        assert response.status_code == 200
        assert acme_orders.data('AllOrders/ORD-2')['order_id'] == 'ORD-2'
        assert acme_orders.data('AllOrders/ORD-3')['order_status'] == 'in_transit'

    def test_create_filed_under_callers_company(self, client, acme_store, auth_headers):
        response = client.post('/api/corporate/orders', headers=auth_headers, json={
            'order_id': 'ORD-22', 'user_name': 'Ravi Kumar', 'user_phone': '+919800000001',
            'company_name': 'Other Co', 'booking_status': 'confirmed', 'order_status': 'pending',
            'vehicle_type': 'Truck', 'material': 'Steel', 'destination_address': 'Chennai Port',
        })

        assert response.status_code == 200
        assert acme_store.data('AllOrders/ORD-22')['company_name'] == 'Acme Logistics'

    def test_create_without_company(self, client, store, stranger_headers):
        response = client.post('/api/corporate/orders', headers=stranger_headers, json={'order_id': 'ORD-23'})

        assert response.status_code == 404
        assert response.get_json()['error'] == 'COMPANY_NOT_FOUND'
        assert store.data('AllOrders/ORD-23') is None

    def test_delete_missing_order(self, client, acme_orders, auth_headers):
        response = client.delete('/api/corporate/orders/ORD-404', headers=auth_headers)

        assert response.status_code == 404

    def test_company_lookup_failure(self, client, acme_orders, auth_headers):
        acme_orders.fail('stream', 'companies')

        response = client.get('/api/corporate/orders', headers=auth_headers)

        assert response.status_code == 502
        body = response.get_json()
        assert body['error'] == 'STORE_ERROR'
        assert 'Network error' in body['message']


class TestCompanyScoping:
    """A second company cannot change Acme's records"""

    def test_delete_order(self, client, acme_orders, rival_headers):
        response = client.delete('/api/corporate/orders/ORD-1', headers=rival_headers)

        assert response.status_code == 403
        assert response.get_json()['error'] == 'FORBIDDEN'
        assert acme_orders.data('AllOrders/ORD-1') is not None

    def test_mark_paid(self, client, acme_orders, rival_headers):
        response = client.post('/api/corporate/payments/ORD-2/mark-paid', headers=rival_headers)

        assert response.status_code == 403
        assert acme_orders.data('AllOrders/ORD-2')['payment_status'] == 'Pending'

    def test_update_order(self, client, acme_orders, rival_headers):
        response = client.put('/api/corporate/orders/ORD-2', headers=rival_headers, json={
            'user_name': 'Meena Iyer', 'user_phone': '+919800000002', 'booking_status': 'cancelled',
            'order_status': 'cancelled', 'vehicle_type': 'Truck', 'material': 'Cement',
            'destination_address': 'Madurai',
        })

        assert response.status_code == 403
        doc = acme_orders.data('AllOrders/ORD-2')
        assert doc['company_name'] == 'Acme Logistics'
        assert doc['order_status'] == 'pending'

    def test_delete_vehicle(self, client, acme_store, auth_headers, rival_headers):
        vehicle = {'vehicle_type': 'Truck', 'company_name': 'Tata', 'subtype': '14ft', 'capacity': '7'}
        client.post('/api/corporate/vehicles', headers=auth_headers, json=vehicle)

        response = client.delete('/api/corporate/vehicles', headers=rival_headers, json=vehicle)

        assert response.status_code == 403
        assert acme_store.data('Vehicles/Truck/Companies/Tata/subtypes/14ft')['userId'] == 'uid-acme'


class TestPayments:

    def test_summary_and_page(self, client, acme_orders, auth_headers):
        body = client.get('/api/corporate/payments', headers=auth_headers).get_json()

        assert body['summary']['totalRevenue'] == 2000.0
        assert body['summary']['paidCount'] == 1
        assert body['payments']['total'] == 3
        assert body['payments']['perPage'] == 10

    def test_filters(self, client, acme_orders, auth_headers):
        body = client.get('/api/corporate/payments?status=Pending&start=2025-02-01&end=2025-02-28',
                          headers=auth_headers).get_json()

        assert [row['id'] for row in body['payments']['items']] == ['ORD-2']

    def test_bad_date(self, client, acme_orders, auth_headers):
        response = client.get('/api/corporate/payments?start=tomorrow', headers=auth_headers)

        assert response.status_code == 400
        assert 'start' in response.get_json()['fields']

    def test_mark_paid(self, client, acme_orders, auth_headers):
        response = client.post('/api/corporate/payments/ORD-2/mark-paid', headers=auth_headers)

        assert response.status_code == 200
        doc = acme_orders.data('AllOrders/ORD-2')
        assert doc['payment_status'] == 'Paid'
        assert doc['pending_amount'] == '0'


def test_tracking(client, acme_orders, auth_headers):
    body = client.get('/api/corporate/tracking?status=completed', headers=auth_headers).get_json()

    assert body['summary'] == {'total': 3, 'completed': 1, 'inTransit': 1, 'pending': 1}
    assert body['shipments']['perPage'] == 6
    assert [row['id'] for row in body['shipments']['items']] == ['ORD-1']
    assert body['shipments']['items'][0]['location'] == {'lat': 13.08, 'lng': 80.27}


class TestDrivers:
    """Driver list, add/edit and approval"""

    @pytest.fixture
    def drivers(self, acme_store):
        acme_store.put('Drivers/+919811111111', {'firstName': 'Arjun', 'approvalStatus': 'approved',
                                                 'approvedBy': 'Acme Logistics'})
        acme_store.put('Drivers/+919822222222', {'firstName': 'Bala', 'approvalStatus': 'pending'})
        acme_store.put('Drivers/+919833333333', {'firstName': 'Chitra', 'approvedBy': 'Other Co'})
        return acme_store

    def driver_form(self, **overrides):
        data = {'firstName': 'Dev', 'lastName': 'Menon', 'mobileNumber': '+919844444444',
                'city': 'Kochi', 'state': 'Kerala', 'vehicleNumber': 'KL07AB1234'}
        data.update(overrides)
        return data

    def test_default_list(self, client, drivers, auth_headers):
        body = client.get('/api/corporate/drivers', headers=auth_headers).get_json()

        assert [driver['firstName'] for driver in body['drivers']] == ['Arjun']

    def test_search_includes_pending(self, client, drivers, auth_headers):
        body = client.get('/api/corporate/drivers?search=bala', headers=auth_headers).get_json()

        assert [driver['firstName'] for driver in body['drivers']] == ['Bala']

    def test_add(self, client, drivers, auth_headers):
        response = client.post('/api/corporate/drivers', headers=auth_headers, json=self.driver_form())

        assert response.status_code == 201
        assert drivers.data('Drivers/+919844444444')['approvedBy'] == 'Acme Logistics'

    def test_add_invalid(self, client, drivers, auth_headers):
        response = client.post('/api/corporate/drivers', headers=auth_headers,
                               json=self.driver_form(mobileNumber='98444'))

        assert response.status_code == 400
        assert 'mobileNumber' in response.get_json()['fields']

    @patch('services.file_service.requests.post')
    def test_add_with_document(self, mock_post, client, drivers, auth_headers):
        mock_post.return_value = Mock(ok=True, json=Mock(return_value={
            'secure_url': 'https://res.cloudinary.com/test-cloud/rc.png', 'public_id': 'rc-1'
        }))
        form = self.driver_form()
        form['Vehicle_RC'] = (io.BytesIO(b'png-bytes'), 'rc.png', 'image/png')

        response = client.post('/api/corporate/drivers', headers=auth_headers, data=form,
                               content_type='multipart/form-data')

        assert response.status_code == 201
        documents = drivers.data('Drivers/+919844444444')['documents']
        assert documents['Vehicle_RC'] == {'publicId': 'rc-1', 'url': 'https://res.cloudinary.com/test-cloud/rc.png'}

    def test_edit_changes_mobile(self, client, drivers, auth_headers):
        response = client.put('/api/corporate/drivers/+919811111111', headers=auth_headers,
                              json=self.driver_form(firstName='Arjun', mobileNumber='+919855555555'))

        assert response.status_code == 200
        assert drivers.data('Drivers/+919811111111') is None
        assert drivers.data('Drivers/+919855555555')['firstName'] == 'Arjun'

    def test_approve_and_reject(self, client, drivers, auth_headers):
        response = client.post('/api/corporate/drivers/+919822222222/approve', headers=auth_headers)
        assert response.status_code == 200
        assert drivers.data('Drivers/+919822222222')['approvedBy'] == 'Acme Logistics'

        response = client.post('/api/corporate/drivers/+919822222222/reject', headers=auth_headers,
                               json={'reason': 'Licence expired'})
        assert response.status_code == 200
        doc = drivers.data('Drivers/+919822222222')
        assert doc['approvalStatus'] == 'rejected'
        assert doc['rejectionReason'] == 'Licence expired'

    def test_delete(self, client, drivers, auth_headers):
        response = client.delete('/api/corporate/drivers/+919811111111', headers=auth_headers)

        assert response.status_code == 200
        assert drivers.data('Drivers/+919811111111') is None

    def test_other_company_driver_untouched(self, client, drivers, auth_headers):
        response = client.delete('/api/corporate/drivers/+919833333333', headers=auth_headers)
        assert response.status_code == 403
        assert response.get_json()['error'] == 'FORBIDDEN'

        response = client.post('/api/corporate/drivers/+919833333333/reject', headers=auth_headers,
                               json={'reason': 'Not ours'})
        assert response.status_code == 403

        response = client.put('/api/corporate/drivers/+919833333333', headers=auth_headers,
                              json=self.driver_form(mobileNumber='+919833333333'))
        assert response.status_code == 403
        assert drivers.data('Drivers/+919833333333') == {'firstName': 'Chitra', 'approvedBy': 'Other Co'}

    def test_missing_driver(self, client, drivers, auth_headers):
        response = client.post('/api/corporate/drivers/+919800000000/approve', headers=auth_headers)

        assert response.status_code == 404
        assert response.get_json()['error'] == 'NOT_FOUND'


class TestVehicles:
    """Vehicle fleet endpoints"""

    vehicle = {'vehicle_type': 'Truck', 'company_name': 'Tata', 'subtype': '14ft',
               'capacity': '7', 'capacity_unit': 'Tonne', 'available_wheels': '6'}

    def test_create_and_list(self, client, acme_store, auth_headers):
        response = client.post('/api/corporate/vehicles', headers=auth_headers, json=self.vehicle)
        assert response.status_code == 201

        body = client.get('/api/corporate/vehicles', headers=auth_headers).get_json()
        assert [v['id'] for v in body['vehicles']] == ['Truck_Tata_14ft']
        assert body['vehicles'][0]['capacity'] == '7 Tonne'

    def test_search(self, client, acme_store, auth_headers):
        client.post('/api/corporate/vehicles', headers=auth_headers, json=self.vehicle)

        body = client.get('/api/corporate/vehicles?search=trailer', headers=auth_headers).get_json()
        assert body['vehicles'] == []

    def test_rename(self, client, acme_store, auth_headers):
        client.post('/api/corporate/vehicles', headers=auth_headers, json=self.vehicle)

        response = client.put('/api/corporate/vehicles', headers=auth_headers, json={
            'vehicle': {**self.vehicle, 'subtype': '17ft'},
            'original': self.vehicle,
        })

        assert response.status_code == 200
        assert acme_store.data('Vehicles/Truck/Companies/Tata/subtypes/14ft') is None
        assert acme_store.data('Vehicles/Truck/Companies/Tata/subtypes/17ft') is not None

    def test_rename_onto_existing_vehicle(self, client, acme_store, auth_headers):
        client.post('/api/corporate/vehicles', headers=auth_headers, json=self.vehicle)
        client.post('/api/corporate/vehicles', headers=auth_headers, json={**self.vehicle, 'subtype': '17ft'})

        response = client.put('/api/corporate/vehicles', headers=auth_headers, json={
            'vehicle': {**self.vehicle, 'subtype': '17ft'},
            'original': self.vehicle,
        })

        assert response.status_code == 409
        assert response.get_json()['error'] == 'DUPLICATE_KEY'
        assert acme_store.data('Vehicles/Truck/Companies/Tata/subtypes/14ft') is not None

    def test_create_missing_key(self, client, acme_store, auth_headers):
        response = client.post('/api/corporate/vehicles', headers=auth_headers,
                               json={**self.vehicle, 'subtype': ''})

        assert response.status_code == 400
        assert response.get_json()['fields'] == {'subtype': 'Required'}

    def test_delete(self, client, acme_store, auth_headers):
        client.post('/api/corporate/vehicles', headers=auth_headers, json=self.vehicle)

        response = client.delete('/api/corporate/vehicles', headers=auth_headers, json=self.vehicle)

        assert response.status_code == 200
        assert acme_store.data('Vehicles/Truck/Companies/Tata/subtypes/14ft') is None


class TestSupport:

    ticket = {'name': 'Asha Rao', 'email': 'ops@acme.test', 'subject': 'Invoice',
              'message': 'Please resend the January invoice.', 'category': 'Payment'}

    @pytest.fixture(autouse=True)
    def emailjs_env(self, monkeypatch):
        monkeypatch.setenv('EMAILJS_SERVICE_ID', 'svc')
        monkeypatch.setenv('EMAILJS_TEMPLATE_ID', 'tpl')
        monkeypatch.setenv('EMAILJS_PUBLIC_KEY', 'pub')

    @patch('services.notification_service.requests.post')
    def test_sent(self, mock_post, client, acme_store, auth_headers):
        mock_post.return_value = Mock(ok=True, status_code=200)

        response = client.post('/api/corporate/support', headers=auth_headers, json=self.ticket)

        assert response.status_code == 200
        assert mock_post.call_args[1]['json']['template_params']['category'] == 'Payment'

    @patch('services.notification_service.requests.post')
    def test_relay_failure(self, mock_post, client, acme_store, auth_headers):
        mock_post.return_value = Mock(ok=False, status_code=500, text='error')

        response = client.post('/api/corporate/support', headers=auth_headers, json=self.ticket)

        assert response.status_code == 502
        assert response.get_json()['message'] == 'Error sending message.'

    def test_invalid(self, client, acme_store, auth_headers):
        response = client.post('/api/corporate/support', headers=auth_headers,
                               json={**self.ticket, 'category': 'Other'})

        assert response.status_code == 400
        assert 'otherCategory' in response.get_json()['fields']
