from .accounts import SuperAdmin, Admin, Manager
from .facilities import Organization, Venue, Device
from .locks import LockRecord
from .activity import ActivityLog

__all__ = [
    'SuperAdmin', 'Admin', 'Manager',
    'Organization', 'Venue', 'Device',
    'LockRecord',
    'ActivityLog',
]
