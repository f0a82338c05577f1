"""
AuroraFS Security Module

- Permission engine (rwx evaluation, chmod conversions)
- Integrity gate (degraded read-only mode)
"""

from .permissions import (
    Operation,
    PermissionBits,
    check_permission,
    octal_to_permissions,
    is_sticky,
    is_valid_permission_string,
    user_group_names,
    DEFAULT_DIR_PERMISSIONS,
    DEFAULT_FILE_PERMISSIONS,
    ROOT_USERNAME,
)
from .integrity import IntegrityGuard, SystemHealth, hash_key, project_identity

__all__ = [
    # Permissions
    'Operation',
    'PermissionBits',
    'check_permission',
    'octal_to_permissions',
    'is_sticky',
    'is_valid_permission_string',
    'user_group_names',
    'DEFAULT_DIR_PERMISSIONS',
    'DEFAULT_FILE_PERMISSIONS',
    'ROOT_USERNAME',
    # Integrity
    'IntegrityGuard',
    'SystemHealth',
    'hash_key',
    'project_identity',
]
