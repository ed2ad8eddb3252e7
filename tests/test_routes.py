"""
tests/test_routes.py — Smoke tests for the JSON routes.

Tests cover:
- Requests without a user id are rejected, session callers need a CSRF token
- Stock, plot and schedule CRUD through the blueprints
- Completion toggle and its error payloads
- Excel export, preferences and admin-only backups
"""

import pytest

from conftest import USER_ID


@pytest.fixture
def admin(app):
    app.config['ADMIN_USER_IDS'] = [USER_ID]


def create_plot(client, name='North Field'):
    rv = client.post('/plots/', json={
        'name': name, 'size': '10', 'location': 'Nashik', 'spray_tank_level': '200',
    })
    assert rv.status_code == 201
    return rv.get_json()['plot']['id']


def create_item(client, name, remaining, unit='kg'):
    rv = client.post('/inventory/', json={'name': name, 'remaining': remaining, 'unit': unit})
    assert rv.status_code == 201
    return rv.get_json()['item']['id']


def create_schedule(client, plot_id, quantity='4'):
    rv = client.post(f'/schedules/plot/{plot_id}', json={
        'schedule_date': '2026-07-01',
        'spray': True,
        'spray_items': [{'name': 'Urea', 'quantity': quantity, 'unit': 'kg', 'area': '200'}],
    })
    assert rv.status_code == 201
    return rv.get_json()['schedule']['id']


def test_health(client):
    assert client.get('/health').get_json() == {'status': 'ok'}


def test_user_required(app):
    with app.test_client() as anonymous:
        rv = anonymous.get('/inventory/')
    assert rv.status_code == 401
    assert rv.get_json()['error'] == 'unauthorized'


class TestCsrf:

    @pytest.fixture
    def cookie_client(self, temp_db):
        from app import create_app

        app = create_app({'TESTING': True, 'SECRET_KEY': 'dev-key-for-testing'})
        with app.test_client() as client:
            with client.session_transaction() as sess:
                sess['user_id'] = USER_ID
            yield client

    def test_session_post_without_token_rejected(self, cookie_client):
        rv = cookie_client.post('/inventory/', json={'name': 'Urea', 'remaining': '10', 'unit': 'kg'})
        assert rv.status_code == 400
        assert rv.get_json()['error'] == 'csrf'

    def test_session_get_needs_no_token(self, cookie_client):
        assert cookie_client.get('/inventory/').status_code == 200

    def test_session_post_with_token(self, cookie_client):
        token = cookie_client.get('/settings/').get_json()['csrf_token']
        rv = cookie_client.post('/inventory/', json={'name': 'Urea', 'remaining': '10', 'unit': 'kg'},
                                headers={'X-CSRFToken': token})
        assert rv.status_code == 201

    def test_header_user_skips_token(self, temp_db):
        from app import create_app

        app = create_app({'TESTING': True, 'SECRET_KEY': 'dev-key-for-testing'})
        with app.test_client() as client:
            rv = client.post('/inventory/', json={'name': 'Urea', 'remaining': '10', 'unit': 'kg'},
                             headers={'X-User-Id': USER_ID})
        assert rv.status_code == 201


class TestInventory:

    def test_create_and_list(self, client):
        create_item(client, 'Urea', '10', 'kg')
        items = client.get('/inventory/').get_json()['items']
        assert [(i['name'], i['remaining']) for i in items] == [('Urea', 10.0)]

    def test_duplicate_name(self, client):
        create_item(client, 'Urea', '10')
        rv = client.post('/inventory/', json={'name': 'urea', 'remaining': '1', 'unit': 'kg'})
        assert rv.status_code == 400
        assert rv.get_json()['error'] == 'validation'

    def test_use_until_deleted(self, client):
        item_id = create_item(client, 'Urea', '3')
        rv = client.post(f'/inventory/{item_id}/use', json={'value': '1'})
        assert rv.get_json()['item']['remaining'] == 2.0

        rv = client.post(f'/inventory/{item_id}/use', json={'value': '2'})
        assert rv.get_json() == {'item': None, 'deleted': True}

    def test_use_too_much(self, client):
        item_id = create_item(client, 'Urea', '3')
        rv = client.post(f'/inventory/{item_id}/use', json={'value': '5'})
        assert rv.status_code == 409
        assert rv.get_json() == {
            'error': 'insufficient_stock', 'message': 'Not enough remaining.', 'item': 'Urea',
        }

    def test_form_encoded_add(self, client):
        item_id = create_item(client, 'Urea', '3')
        rv = client.post(f'/inventory/{item_id}/add', data={'value': '1.5'})
        assert rv.get_json()['item']['remaining'] == 4.5

    def test_delete_unknown(self, client):
        assert client.post('/inventory/999/delete').status_code == 404


class TestPlots:

    def test_duplicate_name_rejected(self, client):
        create_plot(client)
        rv = client.post('/plots/', json={
            'name': 'North Field', 'size': '1', 'location': 'x', 'spray_tank_level': '100',
        })
        assert rv.status_code == 400

    def test_edit_keeps_own_name(self, client):
        plot_id = create_plot(client)
        rv = client.post(f'/plots/{plot_id}/edit', json={
            'name': 'North Field', 'size': '12', 'location': 'Nashik', 'spray_tank_level': '',
        })
        assert rv.status_code == 200
        assert rv.get_json()['plot']['size'] == 12.0

    def test_edit_without_session_start_keeps_it(self, client):
        rv = client.post('/plots/', json={
            'name': 'North Field', 'size': '10', 'location': 'Nashik',
            'spray_tank_level': '200', 'session_start': '2025-01-15',
        })
        plot_id = rv.get_json()['plot']['id']

        rv = client.post(f'/plots/{plot_id}/edit', json={
            'name': 'North Field', 'size': '12', 'location': 'Nashik', 'spray_tank_level': '200',
        })

        assert rv.get_json()['plot']['session_start'] == '2025-01-15'

    def test_edit_changes_session_start(self, client):
        plot_id = create_plot(client)
        rv = client.post(f'/plots/{plot_id}/edit', json={
            'name': 'North Field', 'size': '10', 'location': 'Nashik',
            'spray_tank_level': '200', 'session_start': '2025-03-01',
        })
        assert rv.get_json()['plot']['session_start'] == '2025-03-01'

    def test_end_and_undo(self, client):
        plot_id = create_plot(client)
        assert client.post(f'/plots/{plot_id}/end').get_json()['plot']['end_date'] is not None
        assert client.post(f'/plots/{plot_id}/undo-end').get_json()['plot']['end_date'] is None

    def test_delete_removes_schedules(self, client):
        plot_id = create_plot(client)
        create_schedule(client, plot_id)
        assert client.post(f'/plots/{plot_id}/delete').status_code == 200
        assert client.get('/schedules/').get_json()['schedules'] == []


class TestSchedules:

    def test_toggle_moves_stock(self, client):
        create_item(client, 'Urea', '10')
        plot_id = create_plot(client)
        schedule_id = create_schedule(client, plot_id)

        rv = client.post(f'/schedules/plot/{plot_id}/{schedule_id}/toggle')
        assert rv.get_json()['message'] == "Schedule marked as complete and stock updated."
        assert client.get('/inventory/').get_json()['items'][0]['remaining'] == 6.0

        rv = client.post(f'/schedules/plot/{plot_id}/{schedule_id}/toggle')
        assert rv.get_json()['message'] == "Schedule marked as incomplete and stock restored."
        assert client.get('/inventory/').get_json()['items'][0]['remaining'] == 10.0

    def test_toggle_insufficient(self, client):
        create_item(client, 'Urea', '1')
        plot_id = create_plot(client)
        schedule_id = create_schedule(client, plot_id)

        rv = client.post(f'/schedules/plot/{plot_id}/{schedule_id}/toggle')
        assert rv.status_code == 409
        body = rv.get_json()
        assert body['error'] == 'insufficient_stock'
        assert body['item'] == 'Urea'

    def test_toggle_missing_stock(self, client):
        plot_id = create_plot(client)
        schedule_id = create_schedule(client, plot_id)
        rv = client.post(f'/schedules/plot/{plot_id}/{schedule_id}/toggle')
        assert rv.status_code == 404
        assert rv.get_json()['item'] == 'Urea'

    def test_list_with_projection(self, client):
        create_item(client, 'Urea', '5')
        plot_id = create_plot(client)
        create_schedule(client, plot_id)
        create_schedule(client, plot_id)

        body = client.get('/schedules/?filter=not_completed').get_json()
        assert body['filter'] == 'not_completed'
        assert [s['shortages'] for s in body['schedules']] == [[], ['Urea']]

    def test_plot_listing_and_edit(self, client):
        plot_id = create_plot(client)
        schedule_id = create_schedule(client, plot_id)
        rv = client.post(f'/schedules/plot/{plot_id}/{schedule_id}/edit', json={
            'schedule_date': '2026-07-03',
            'spray': True,
            'spray_items': [{'name': 'Urea', 'quantity': '2', 'unit': 'kg', 'area': '200'}],
        })
        assert rv.status_code == 200

        body = client.get(f'/schedules/plot/{plot_id}').get_json()
        assert body['plot']['name'] == 'North Field'
        assert body['schedules'][0]['schedule_date'] == '2026-07-03'

    @pytest.mark.parametrize('spray_items', [['Urea'], 'Urea', {'name': 'Urea'}, [None]])
    def test_malformed_items_rejected(self, client, spray_items):
        plot_id = create_plot(client)
        rv = client.post(f'/schedules/plot/{plot_id}', json={
            'schedule_date': '2026-07-01', 'spray': True, 'spray_items': spray_items,
        })
        assert rv.status_code == 400
        assert rv.get_json()['error'] == 'validation'

    def test_false_string_switches_method_off(self, client):
        plot_id = create_plot(client)
        rv = client.post(f'/schedules/plot/{plot_id}', json={
            'schedule_date': '2026-07-01',
            'spray': 'true',
            'drip': 'false',
            'spray_items': [{'name': 'Urea', 'quantity': '4', 'unit': 'kg'}],
        })
        assert rv.status_code == 201
        assert rv.get_json()['schedule']['drip'] is False

    def test_delete(self, client):
        plot_id = create_plot(client)
        schedule_id = create_schedule(client, plot_id)
        assert client.post(f'/schedules/plot/{plot_id}/{schedule_id}/delete').status_code == 200
        assert client.post(f'/schedules/plot/{plot_id}/{schedule_id}/delete').status_code == 404


class TestExport:

    def test_empty(self, client):
        rv = client.get('/export/excel')
        assert rv.status_code == 404

    def test_workbook(self, client):
        create_item(client, 'Urea', '10')
        rv = client.get('/export/excel')
        assert rv.status_code == 200
        assert rv.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        assert rv.data[:2] == b'PK'


class TestSettings:

    def test_preferences_saved_in_session(self, client):
        rv = client.post('/settings/preferences', json={'is_dark': True, 'language': 'gn'})
        assert rv.get_json() == {'is_dark': True, 'language': 'gn'}
        assert client.get('/settings/').get_json()['language'] == 'gn'

    def test_unsupported_language(self, client):
        rv = client.post('/settings/preferences', json={'language': 'xx'})
        assert rv.status_code == 400

    def test_backups_need_admin(self, client):
        create_item(client, 'Urea', '10')
        assert client.get('/settings/backups').status_code == 403
        assert client.post('/settings/backup/create').status_code == 403

        rv = client.post('/settings/backup/restore', json={'filename': 'farm_20260101_000000_manual.db'})
        assert rv.status_code == 403
        assert rv.get_json()['error'] == 'forbidden'

    def test_other_user_cannot_restore(self, app, client, admin):
        item_id = create_item(client, 'Urea', '10')
        filename = client.post('/settings/backup/create').get_json()['filename']
        client.post(f'/inventory/{item_id}/add', json={'value': '40'})

        with app.test_client() as other:
            rv = other.post('/settings/backup/restore', json={'filename': filename},
                            headers={'X-User-Id': 'someone-else'})

        assert rv.status_code == 403
        assert client.get('/inventory/').get_json()['items'][0]['remaining'] == 50.0

    def test_backup_and_restore(self, client, admin):
        create_item(client, 'Urea', '10')
        filename = client.post('/settings/backup/create').get_json()['filename']
        assert filename in [b['filename'] for b in client.get('/settings/backups').get_json()['backups']]

        create_item(client, 'Potash', '5')
        rv = client.post('/settings/backup/restore', json={'filename': filename})
        assert rv.status_code == 200
        assert [i['name'] for i in client.get('/inventory/').get_json()['items']] == ['Urea']

    @pytest.mark.parametrize('filename', ['../farm.db', 'missing.db', 'farm_19990101_000000_x.db'])
    def test_restore_rejects_bad_names(self, client, admin, filename):
        rv = client.post('/settings/backup/restore', json={'filename': filename})
        assert rv.status_code == 400
