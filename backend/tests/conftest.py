"""
Pytest fixtures for ACKit backend tests.

Provides test database setup, a two-admin fleet, a recording device
channel, and login helpers.
"""

from types import SimpleNamespace

import pytest

from ackit import create_app
from ackit.extensions import db, device_channels, token_stores
from ackit.models import Admin, Device, Manager, Organization, Venue
from ackit.services.auth_service import hash_password
from ackit.services.device_channel import NOT_CONNECTED, DeviceCommandChannel


PASSWORD = "Password123"


class RecordingChannel(DeviceCommandChannel):
    """Device channel double: records every command sent to a connected device."""

    def __init__(self, connected=()):
        self.connected = set(connected)
        self.commands = []
        self.broadcasts = []

    def _send(self, device_key, command, value):
        if device_key not in self.connected:
            return dict(NOT_CONNECTED)
        self.commands.append((device_key, command, value))
        return {"success": True, "message": None}

    def send_power_command(self, device_key, is_on):
        return self._send(device_key, "POWER", is_on)

    def send_lock_command(self, device_key, locked):
        return self._send(device_key, "LOCK" if locked else "UNLOCK", locked)

    def send_set_temperature(self, device_key, temperature):
        return self._send(device_key, "SET_TEMP", temperature)

    def request_room_temperature(self, device_key):
        return self._send(device_key, "GET_ROOM_TEMP", None)

    def is_device_connected(self, device_key):
        return device_key in self.connected

    def broadcast_to_frontend(self, payload):
        self.broadcasts.append(payload)

    def sent(self, device_key):
        return [(command, value) for key, command, value in self.commands if key == device_key]


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TOKEN_SWEEP_ENABLED': False,
        'LOCK_STRICT_MODE': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt at cost 12 is slow; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh database, empty token stores and a disconnected device channel for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        token_stores.clear()
        device_channels.set_channel(None)

        yield db.session

        db.session.rollback()
        token_stores.clear()
        device_channels.set_channel(None)


@pytest.fixture(scope='function')
def channel(db_session):
    """Recording channel with every demo device connected."""
    recorder = RecordingChannel(connected={"AC-A1", "AC-A2", "AC-B1"})
    device_channels.set_channel(recorder)
    return recorder


@pytest.fixture(scope='function')
def strict_mode(app):
    app.config['LOCK_STRICT_MODE'] = True
    yield
    app.config['LOCK_STRICT_MODE'] = False


@pytest.fixture(scope='function')
def fleet(db_session, password_hash):
    """
    Two admins with disjoint fleets.

    Admin A: manager_a (assigned to org_a), idle manager_a2,
             org_a -> venue_a -> device_a1 (22, on), device_a2 (26, off)
    Admin B: manager_b (assigned to org_b),
             org_b -> venue_b -> device_b1 (20, on)
    """
    admin_a = Admin(name="Owner A", email="owner.a@test.io", password_hash=password_hash)
    admin_b = Admin(name="Owner B", email="owner.b@test.io", password_hash=password_hash)
    db_session.add_all([admin_a, admin_b])
    db_session.flush()

    manager_a = Manager(name="Lead A", email="lead.a@test.io", password_hash=password_hash, admin_id=admin_a.id)
    manager_a2 = Manager(name="Backup A", email="backup.a@test.io", password_hash=password_hash, admin_id=admin_a.id)
    manager_b = Manager(name="Lead B", email="lead.b@test.io", password_hash=password_hash, admin_id=admin_b.id)
    db_session.add_all([manager_a, manager_a2, manager_b])
    db_session.flush()

    org_a = Organization(name="Org A", admin_id=admin_a.id, manager_id=manager_a.id)
    org_b = Organization(name="Org B", admin_id=admin_b.id, manager_id=manager_b.id)
    db_session.add_all([org_a, org_b])
    db_session.flush()

    venue_a = Venue(name="Hall A", organization_id=org_a.id, admin_id=admin_a.id)
    venue_b = Venue(name="Hall B", organization_id=org_b.id, admin_id=admin_b.id)
    db_session.add_all([venue_a, venue_b])
    db_session.flush()

    device_a1 = Device(name="AC A1", serial_number="AC-A1", venue_id=venue_a.id, temperature=22, is_on=True)
    device_a2 = Device(name="AC A2", serial_number="AC-A2", venue_id=venue_a.id, temperature=26, is_on=False)
    device_b1 = Device(name="AC B1", serial_number="AC-B1", venue_id=venue_b.id, temperature=20, is_on=True)
    db_session.add_all([device_a1, device_a2, device_b1])
    db_session.commit()

    return SimpleNamespace(
        admin_a=admin_a, admin_b=admin_b,
        manager_a=manager_a, manager_a2=manager_a2, manager_b=manager_b,
        org_a=org_a, org_b=org_b,
        venue_a=venue_a, venue_b=venue_b,
        device_a1=device_a1, device_a2=device_a2, device_b1=device_b1,
    )


@pytest.fixture(scope='function')
def login():
    """Log in through the API and return the response."""
    def _login(client, role: str, email: str, password: str = PASSWORD):
        return client.post(f'/api/auth/{role}/login', json={'email': email, 'password': password})
    return _login


@pytest.fixture(scope='function')
def handle_of():
    """Read the session handle out of a test client's cookie."""
    def _handle_of(client) -> str:
        with client.session_transaction() as sess:
            return sess['session_handle']
    return _handle_of
