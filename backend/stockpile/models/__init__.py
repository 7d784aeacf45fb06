from .kv import KVEntry
from .auth import User, SessionToken, ROLES, ROLE_MANAGER, ROLE_STAFF, USER_STATUSES, STATUS_ACTIVE, STATUS_INACTIVE

__all__ = [
    'KVEntry',
    'User', 'SessionToken',
    'ROLES', 'ROLE_MANAGER', 'ROLE_STAFF',
    'USER_STATUSES', 'STATUS_ACTIVE', 'STATUS_INACTIVE',
]
