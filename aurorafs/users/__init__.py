"""
AuroraFS User Management Module

Provides users and groups:
- User and group records
- /etc/passwd and /etc/group parsing and formatting
- The in-memory identity store

The file synchronizer lives in ``aurorafs.users.sync``.
"""

from .identity import (
    User,
    Group,
    NOBODY,
    parse_passwd,
    format_passwd,
    parse_group,
    format_group,
    default_users,
    default_groups,
)
from .identity_store import IdentityStore

__all__ = [
    'User',
    'Group',
    'NOBODY',
    'parse_passwd',
    'format_passwd',
    'parse_group',
    'format_group',
    'default_users',
    'default_groups',
    'IdentityStore',
]
