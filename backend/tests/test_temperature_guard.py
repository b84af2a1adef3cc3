"""
Temperature-change guard tests.

Verifies:
- Admin-level lock: owning admin allowed, its managers and other admins denied
- Manager-level lock: the assigned manager and the owning admin stay allowed
- Denied changes write the locked setpoint back
- Setpoint input validation and scope checks
"""

import pytest

from ackit.errors import NotFound, TemperatureLocked, ValidationError
from ackit.extensions import db
from ackit.models import ActivityLog
from ackit.models.locks import LOCK_FROM_ADMIN, LOCK_FROM_REMOTE
from ackit.services import device_service, guard_service, lock_service


def allowed(device, role, actor):
    return guard_service.can_change_temperature(device.id, role, actor.id).allowed


# =============================================================================
# GUARD DECISIONS
# =============================================================================


class TestGuardDecisions:
    """Who may change a setpoint while locks are active."""

    def test_no_locks_allows_everyone(self, fleet):
        decision = guard_service.can_change_temperature(fleet.device_a1.id, 'manager', fleet.manager_a2.id)
        assert decision.allowed is True
        assert decision.reason == 'No active locks'

    def test_admin_lock(self, fleet):
        lock_service.lock_system(fleet.admin_a.id, LOCK_FROM_ADMIN, locked_by='Owner A')

        assert allowed(fleet.device_a1, 'admin', fleet.admin_a)
        assert not allowed(fleet.device_a1, 'manager', fleet.manager_a)
        assert not allowed(fleet.device_a1, 'manager', fleet.manager_a2)
        assert not allowed(fleet.device_a1, 'admin', fleet.admin_b)

        decision = guard_service.can_change_temperature(fleet.device_a1.id, 'manager', fleet.manager_a.id)
        assert decision.reason == 'Temperature locked by Owner A'

    def test_remote_admin_lock_also_blocks_managers(self, fleet):
        lock_service.lock_system(fleet.admin_a.id, LOCK_FROM_REMOTE)
        assert not allowed(fleet.device_a1, 'manager', fleet.manager_a)
        assert allowed(fleet.device_a1, 'admin', fleet.admin_a)

    def test_manager_lock(self, fleet):
        lock_service.manager_lock_system(fleet.manager_a.id, locked_by='Lead A')

        assert allowed(fleet.device_a1, 'admin', fleet.admin_a)
        decision = guard_service.can_change_temperature(fleet.device_a1.id, 'manager', fleet.manager_a.id)
        assert decision.allowed is True
        assert decision.reason == 'Manager has permission'
        assert not allowed(fleet.device_a1, 'manager', fleet.manager_a2)

    def test_other_fleet_unaffected(self, fleet):
        lock_service.lock_system(fleet.admin_a.id, LOCK_FROM_ADMIN)
        assert allowed(fleet.device_b1, 'manager', fleet.manager_b)

    def test_released_lock_no_longer_counts(self, fleet):
        lock_service.lock_system(fleet.admin_a.id, LOCK_FROM_ADMIN)
        lock_service.unlock_system('admin', fleet.admin_a.id)
        assert allowed(fleet.device_a1, 'manager', fleet.manager_a)

    def test_missing_device(self, fleet):
        decision = guard_service.can_change_temperature(999999, 'admin', fleet.admin_a.id)
        assert decision.allowed is False
        assert decision.reason == 'Device not found'


# =============================================================================
# SET TEMPERATURE
# =============================================================================


class TestSetTemperature:
    """Setpoint changes go through validation, scope, then the guard."""

    def test_manager_changes_setpoint(self, fleet, channel):
        device = device_service.set_temperature('manager', fleet.manager_a.id, fleet.device_a1.id, 19)

        assert device.temperature == 19
        assert device.changed_by == 'manager'
        assert device.last_temperature_change is not None
        assert channel.sent('AC-A1') == [('SET_TEMP', 19)]
        assert channel.broadcasts[-1]['type'] == 'TEMPERATURE_UPDATE'
        entry = db.session.query(ActivityLog).filter_by(action='SET_TEMPERATURE').one()
        assert entry.details == {'from': 22, 'to': 19}

    def test_denied_change_restores_locked_setpoint(self, fleet):
        lock_service.lock_system(fleet.admin_a.id, LOCK_FROM_ADMIN, locked_by='Owner A')
        # Someone turned the dial on the unit itself
        fleet.device_a1.temperature = 27
        db.session.commit()

        with pytest.raises(TemperatureLocked) as exc:
            device_service.set_temperature('manager', fleet.manager_a.id, fleet.device_a1.id, 18)

        assert exc.value.status_code == 403
        assert exc.value.extra['device_id'] == fleet.device_a1.id
        assert fleet.device_a1.temperature == 22
        entry = db.session.query(ActivityLog).filter_by(action='TEMPERATURE_CHANGE_DENIED').one()
        assert entry.details['restored'] is True

    def test_owning_admin_overrides_own_lock(self, fleet):
        lock_service.lock_system(fleet.admin_a.id, LOCK_FROM_ADMIN)
        device = device_service.set_temperature('admin', fleet.admin_a.id, fleet.device_a1.id, 24)
        assert device.temperature == 24

    def test_device_outside_scope(self, fleet):
        with pytest.raises(NotFound):
            device_service.set_temperature('admin', fleet.admin_b.id, fleet.device_a1.id, 20)
        with pytest.raises(NotFound):
            device_service.set_temperature('manager', fleet.manager_a2.id, fleet.device_a1.id, 20)

    @pytest.mark.parametrize("value", [15, 31, "hot", None, True, 21.5])
    def test_invalid_setpoints(self, fleet, value):
        with pytest.raises(ValidationError):
            device_service.set_temperature('admin', fleet.admin_a.id, fleet.device_a1.id, value)
        assert fleet.device_a1.temperature == 22

    @pytest.mark.parametrize("value,expected", [(16, 16), (30, 30), ("25", 25), (23.0, 23)])
    def test_valid_setpoints(self, value, expected):
        assert device_service.validate_temperature(value) == expected
