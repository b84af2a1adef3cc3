"""
API route tests.

End-to-end flows through the HTTP layer: error payload shape, admin and
manager lock flows, health, CORS, and the CLI.
"""

from ackit.extensions import db, token_stores
from ackit.models import LockRecord


# =============================================================================
# ADMIN FLOWS
# =============================================================================


class TestAdminRoutes:
    """Admin fleet control over HTTP."""

    def test_lock_status_unlock(self, client, fleet, login):
        login(client, 'admin', 'owner.a@test.io')

        resp = client.post('/api/admin/system/lock', json={'reason': 'maintenance'})
        assert resp.status_code == 201
        data = resp.get_json()
        assert data['success'] is True
        assert data['lock_type'] == 'lock_from_admin'
        assert data['locked_by'] == 'Owner A'
        assert data['managers_affected'] == 2

        status = client.get('/api/admin/system/status').get_json()
        assert status['is_locked'] is True
        assert status['admin_locked'] is True

        resp = client.post('/api/admin/system/unlock')
        assert resp.status_code == 200
        assert resp.get_json()['locks_removed'] == 1
        assert resp.get_json()['unlocked_by'] == 'Owner A'

    def test_unlock_when_unlocked(self, client, fleet, login):
        login(client, 'admin', 'owner.a@test.io')
        resp = client.post('/api/admin/system/unlock')
        assert resp.status_code == 200
        assert resp.get_json()['locks_removed'] == 0

    def test_invalid_lock_type(self, client, fleet, login):
        login(client, 'admin', 'owner.a@test.io')
        resp = client.post('/api/admin/system/lock', json={'lock_type': 'bogus'})
        assert resp.status_code == 400
        body = resp.get_json()
        assert body['success'] is False
        assert body['code'] == 'VALIDATION_ERROR'
        assert 'lock_from_remote' in body['allowed']

    def test_strict_mode_conflict(self, client, fleet, login, strict_mode):
        login(client, 'admin', 'owner.a@test.io')
        client.post('/api/admin/system/lock', json={'lock_type': 'lock_from_remote'})
        resp = client.post('/api/admin/system/lock', json={'lock_type': 'lock_from_remote'})
        assert resp.status_code == 409
        assert resp.get_json()['code'] == 'CONFLICT'

    def test_remote_lock_other_admins_org(self, client, fleet, login):
        login(client, 'admin', 'owner.a@test.io')
        resp = client.post(f'/api/admin/organizations/{fleet.org_b.id}/remote-lock', json={})
        assert resp.status_code == 404

    def test_remote_lock_venue(self, client, fleet, login):
        login(client, 'admin', 'owner.a@test.io')
        resp = client.post(f'/api/admin/venues/{fleet.venue_a.id}/remote-lock', json={'reason': 'cleaning'})
        assert resp.status_code == 200
        assert resp.get_json()['devices_affected'] == 2

        resp = client.post(f'/api/admin/venues/{fleet.venue_a.id}/remote-unlock')
        assert resp.status_code == 200

    def test_manager_management(self, client, fleet, login):
        login(client, 'admin', 'owner.a@test.io')

        resp = client.get('/api/admin/managers')
        assert [m['email'] for m in resp.get_json()['managers']] == ['lead.a@test.io', 'backup.a@test.io']

        resp = client.post(f'/api/admin/managers/{fleet.manager_a.id}/lock', json={'reason': 'Audit'})
        assert resp.status_code == 200
        assert resp.get_json()['manager']['status'] == 'locked'

        resp = client.post(f'/api/admin/managers/{fleet.manager_a.id}/lock')
        assert resp.status_code == 409

        resp = client.post(f'/api/admin/managers/{fleet.manager_a.id}/restricted-unlock')
        assert resp.get_json()['manager']['status'] == 'restricted'

        resp = client.post(f'/api/admin/managers/{fleet.manager_b.id}/unlock')
        assert resp.status_code == 404

    def test_invalidate_manager_sessions(self, client, app, fleet, login):
        manager_client = app.test_client()
        login(manager_client, 'manager', 'lead.a@test.io')
        login(client, 'admin', 'owner.a@test.io')

        resp = client.post('/api/admin/managers/sessions/invalidate')
        assert resp.status_code == 200
        assert resp.get_json()['sessions_invalidated'] == 1
        assert len(token_stores.manager) == 0

    def test_temperature_and_permission(self, client, fleet, login):
        login(client, 'admin', 'owner.a@test.io')

        resp = client.put(f'/api/admin/devices/{fleet.device_a1.id}/temperature', json={'temperature': 21})
        assert resp.status_code == 200
        assert resp.get_json()['device']['temperature'] == 21

        resp = client.put(f'/api/admin/devices/{fleet.device_a1.id}/temperature', json={'temperature': 40})
        assert resp.status_code == 400

        resp = client.get(f'/api/admin/devices/{fleet.device_a1.id}/temperature-permission')
        assert resp.get_json()['allowed'] is True

        resp = client.get(f'/api/admin/devices/{fleet.device_b1.id}/temperature-permission')
        assert resp.status_code == 404

    def test_activity_feed(self, client, fleet, login):
        login(client, 'admin', 'owner.a@test.io')
        client.post('/api/admin/system/lock', json={'lock_type': 'lock_from_remote'})

        resp = client.get('/api/admin/activity?limit=5')
        actions = [entry['action'] for entry in resp.get_json()['activity']]
        assert actions[0] == 'REMOTE_LOCK_SYSTEM'
        assert 'LOGIN' in actions


# =============================================================================
# MANAGER FLOWS
# =============================================================================


class TestManagerRoutes:
    """Manager lock flows and the guard as seen over HTTP."""

    def test_manager_lock_and_unlock(self, client, fleet, login):
        login(client, 'manager', 'lead.a@test.io')

        resp = client.post('/api/manager/system/lock', json={'reason': 'event'})
        assert resp.status_code == 201
        assert resp.get_json()['lock_type'] == 'lock_from_remote'

        resp = client.get('/api/manager/locked-temperatures')
        assert len(resp.get_json()['locked_temperatures']) == 2

        resp = client.post('/api/manager/system/unlock')
        assert resp.status_code == 200
        assert resp.get_json()['locks_removed'] == 1

    def test_manager_blocked_by_admin_lock(self, client, app, fleet, login):
        admin_client = app.test_client()
        login(admin_client, 'admin', 'owner.a@test.io')
        admin_client.post('/api/admin/system/lock', json={'lock_type': 'lock_from_remote'})

        login(client, 'manager', 'lead.a@test.io')
        resp = client.put(f'/api/manager/devices/{fleet.device_a1.id}/temperature', json={'temperature': 18})

        assert resp.status_code == 403
        body = resp.get_json()
        assert body['code'] == 'TEMPERATURE_LOCKED'
        assert body['device_id'] == fleet.device_a1.id
        assert body['error'] == 'Temperature locked by Owner A'

        permission = client.get(f'/api/manager/devices/{fleet.device_a1.id}/temperature-permission')
        assert permission.get_json()['allowed'] is False

    def test_manager_can_release_admin_remote_lock(self, client, app, fleet, login):
        admin_client = app.test_client()
        login(admin_client, 'admin', 'owner.a@test.io')
        admin_client.post('/api/admin/system/lock', json={'lock_type': 'lock_from_remote'})

        login(client, 'manager', 'lead.a@test.io')
        resp = client.post('/api/manager/system/unlock')

        assert resp.get_json()['locks_removed'] == 1
        assert db.session.query(LockRecord).filter(LockRecord.is_active.is_(True)).count() == 0

    def test_full_lock_ends_manager_access(self, client, app, fleet, login):
        login(client, 'manager', 'lead.a@test.io')
        admin_client = app.test_client()
        login(admin_client, 'admin', 'owner.a@test.io')
        admin_client.post('/api/admin/system/lock', json={'reason': 'maintenance'})

        resp = client.get('/api/manager/system/status')
        assert resp.status_code == 403

    def test_remote_lock_assigned_org(self, client, fleet, login):
        login(client, 'manager', 'lead.a@test.io')
        resp = client.post(f'/api/manager/organizations/{fleet.org_a.id}/remote-lock', json={'reason': 'event'})
        assert resp.status_code == 200
        assert resp.get_json()['organization_name'] == 'Org A'

        resp = client.post(f'/api/manager/organizations/{fleet.org_b.id}/remote-lock', json={})
        assert resp.status_code == 404


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystemRoutes:
    """Health, CORS, and unknown routes."""

    def test_health(self, client, fleet):
        resp = client.get('/api/health')
        assert resp.status_code == 200
        body = resp.get_json()
        assert body['status'] == 'healthy'
        assert body['checks']['database']['details']['admins'] == 2
        assert body['checks']['token_stores']['details'] == {'admin': 0, 'manager': 0}

    def test_cors_allowed_origin(self, client, db_session):
        resp = client.get('/api/health', headers={'Origin': 'http://localhost:5173'})
        assert resp.headers['Access-Control-Allow-Origin'] == 'http://localhost:5173'
        assert resp.headers['Access-Control-Allow-Credentials'] == 'true'

    def test_cors_unknown_origin(self, client, db_session):
        resp = client.get('/api/health', headers={'Origin': 'http://evil.example'})
        assert 'Access-Control-Allow-Origin' not in resp.headers

    def test_unknown_route_is_json_404(self, client, db_session):
        resp = client.get('/api/nope')
        assert resp.status_code == 404
        assert 'error' in resp.get_json()


# =============================================================================
# CLI
# =============================================================================


class TestCli:
    """Maintenance commands."""

    def test_suspend_and_resume(self, app, fleet):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['admins', 'suspend', str(fleet.admin_a.id), '--reason', 'Unpaid'])
        assert result.exit_code == 0
        assert 'suspended' in result.output
        assert fleet.admin_a.status == 'suspended'

        result = runner.invoke(args=['admins', 'suspend', str(fleet.admin_a.id)])
        assert result.exit_code != 0
        assert 'already suspended' in result.output

        result = runner.invoke(args=['admins', 'resume', str(fleet.admin_a.id)])
        assert result.exit_code == 0

    def test_tokens_sweep(self, app, fleet):
        token_stores.admin.create(fleet.admin_a)
        result = app.test_cli_runner().invoke(args=['tokens', 'sweep'])
        assert result.exit_code == 0
        assert 'Removed 0 expired' in result.output

    def test_locks_list(self, app, fleet, client, login):
        login(client, 'admin', 'owner.a@test.io')
        client.post('/api/admin/system/lock', json={'reason': 'maintenance'})

        result = app.test_cli_runner().invoke(args=['locks', 'list', '--active-only'])
        assert result.exit_code == 0
        assert 'lock_from_admin' in result.output
