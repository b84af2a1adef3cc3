"""
Account lifecycle tests: manager status changes, admin suspension, account creation.
"""

import pytest

from ackit.errors import ConflictError, NotFound, ValidationError
from ackit.extensions import db, token_stores
from ackit.models import ActivityLog, Manager
from ackit.services import activity_service, auth_service, manager_service, session_service, suspension_service


# =============================================================================
# MANAGER STATUS
# =============================================================================


class TestManagerStatus:
    """Admins lock, unlock, and restrict their own managers."""

    def test_lock_manager(self, fleet):
        manager = manager_service.lock_manager(fleet.admin_a.id, fleet.manager_a.id)

        assert manager.status == 'locked'
        assert manager.lock_reason == 'Locked by admin'
        assert manager.locked_by_admin_id == fleet.admin_a.id
        assert manager.locked_at is not None
        assert db.session.query(ActivityLog).filter_by(action='LOCK_MANAGER').count() == 1

    def test_unlock_clears_lock_fields(self, fleet):
        manager_service.lock_manager(fleet.admin_a.id, fleet.manager_a.id, reason="Audit")
        manager = manager_service.unlock_manager(fleet.admin_a.id, fleet.manager_a.id)

        assert manager.status == 'unlocked'
        assert manager.lock_reason is None
        assert manager.locked_at is None

    def test_restricted_unlock(self, fleet):
        manager_service.lock_manager(fleet.admin_a.id, fleet.manager_a.id)
        manager = manager_service.restricted_unlock_manager(fleet.admin_a.id, fleet.manager_a.id)
        assert manager.status == 'restricted'
        assert manager.is_restricted is True

    @pytest.mark.parametrize(
        "action,message",
        [
            ("unlock_manager", "Manager is already unlocked"),
            ("lock_manager", "Manager is already locked"),
            ("restricted_unlock_manager", "Manager is already unlocked with restricted access"),
        ],
    )
    def test_repeat_status_is_conflict(self, fleet, action, message):
        change = getattr(manager_service, action)
        if action != "unlock_manager":
            change(fleet.admin_a.id, fleet.manager_a.id)

        with pytest.raises(ConflictError) as exc:
            change(fleet.admin_a.id, fleet.manager_a.id)
        assert exc.value.message == message

    def test_other_admins_manager_not_found(self, fleet):
        with pytest.raises(NotFound):
            manager_service.lock_manager(fleet.admin_a.id, fleet.manager_b.id)
        assert fleet.manager_b.status == 'unlocked'

    def test_list_managers_scoped_to_admin(self, fleet):
        names = [m.name for m in manager_service.list_managers(fleet.admin_a.id)]
        assert names == ['Lead A', 'Backup A']


# =============================================================================
# SUSPENSION
# =============================================================================


class TestSuspension:
    """Suspension flips admin status and revokes every session under it."""

    def test_suspend_revokes_admin_and_manager_sessions(self, fleet):
        token_stores.admin.create(fleet.admin_a)
        token_stores.manager.create(fleet.manager_a)
        token_stores.manager.create(fleet.manager_a)
        token_stores.manager.create(fleet.manager_a2)
        kept = token_stores.manager.create(fleet.manager_b)

        result = suspension_service.suspend_admin(fleet.admin_a.id, reason="Unpaid invoice", superadmin_id=None)

        assert result['admin_sessions_invalidated'] == 1
        assert result['managers_affected'] == 2
        assert result['sessions_invalidated'] == 3
        assert result['suspended_at'].endswith('Z')
        assert fleet.admin_a.status == 'suspended'
        assert fleet.admin_a.suspension_reason == 'Unpaid invoice'
        assert token_stores.manager.get(kept) is not None

        entry = db.session.query(ActivityLog).filter_by(action='SUSPEND_ADMIN').one()
        assert entry.principal_role == 'system'

    def test_suspend_twice_is_conflict(self, fleet):
        suspension_service.suspend_admin(fleet.admin_a.id)
        with pytest.raises(ConflictError):
            suspension_service.suspend_admin(fleet.admin_a.id)

    def test_resume(self, fleet):
        suspension_service.suspend_admin(fleet.admin_a.id, reason="Unpaid invoice")
        admin = suspension_service.resume_admin(fleet.admin_a.id)

        assert admin.status == 'active'
        assert admin.suspended_at is None
        assert admin.suspension_reason is None

    def test_resume_active_admin_is_conflict(self, fleet):
        with pytest.raises(ConflictError):
            suspension_service.resume_admin(fleet.admin_a.id)

    def test_unknown_admin(self, fleet):
        with pytest.raises(NotFound):
            suspension_service.suspend_admin(999999)

    def test_invalidate_manager_sessions_for_admin(self, fleet):
        token_stores.manager.create(fleet.manager_a)
        token_stores.manager.create(fleet.manager_b)

        result = session_service.invalidate_manager_sessions_for_admin(fleet.admin_a.id)

        assert result == {'managers_affected': 2, 'sessions_invalidated': 1}
        assert len(token_stores.manager) == 1


# =============================================================================
# ACCOUNT CREATION / PASSWORDS
# =============================================================================


class TestAccountCreation:
    """Emails are unique across roles; passwords are validated and hashed."""

    def test_create_manager(self, fleet):
        manager = auth_service.create_manager(fleet.admin_a.id, "New Lead", " New.Lead@Test.io ", "Password123")

        assert manager.email == 'new.lead@test.io'
        assert manager.password_hash != 'Password123'
        assert auth_service.check_manager_credentials('new.lead@test.io', 'Password123').id == manager.id

    def test_email_shared_across_roles_rejected(self, fleet):
        with pytest.raises(ValidationError):
            auth_service.create_manager(fleet.admin_a.id, "Dup", "owner.a@test.io", "Password123")
        assert db.session.query(Manager).filter_by(name="Dup").count() == 0

    def test_manager_for_missing_admin_rejected(self, fleet):
        with pytest.raises(ValidationError):
            auth_service.create_manager(999999, "Orphan", "orphan@test.io", "Password123")

    @pytest.mark.parametrize("password", ["short1", "lettersonly", "1234567890", ""])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(ValidationError):
            auth_service.validate_password_strength(password)

    def test_verify_password_handles_garbage_hash(self):
        assert auth_service.verify_password("Password123", "not-a-bcrypt-hash") is False
        assert auth_service.verify_password("", "anything") is False


# =============================================================================
# ACTIVITY LOG
# =============================================================================


class TestActivityLog:
    """Entries are scoped to the owning admin, newest first."""

    def test_list_for_admin(self, fleet):
        activity_service.record_detached('admin', fleet.admin_a.id, 'FIRST', 'system', None, admin_id=fleet.admin_a.id)
        activity_service.record_detached('admin', fleet.admin_a.id, 'SECOND', 'system', None, admin_id=fleet.admin_a.id)
        activity_service.record_detached('admin', fleet.admin_b.id, 'OTHER', 'system', None, admin_id=fleet.admin_b.id)

        entries = activity_service.list_for_admin(fleet.admin_a.id)
        assert [e.action for e in entries] == ['SECOND', 'FIRST']
        assert len(activity_service.list_for_admin(fleet.admin_a.id, limit=1)) == 1

    def test_record_joins_caller_transaction(self, fleet):
        activity_service.record('admin', fleet.admin_a.id, 'ROLLED_BACK', 'system', None, admin_id=fleet.admin_a.id)
        db.session.rollback()
        assert db.session.query(ActivityLog).filter_by(action='ROLLED_BACK').count() == 0
