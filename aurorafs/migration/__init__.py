"""
AuroraFS Migration Module

Load-time reconciliation of stored data with the current release.
"""

from .migrator import (
    Migrator,
    MigrationReport,
    MigrationResult,
    merge_trees,
    merge_users,
    merge_groups,
    heal_passwords,
)

__all__ = [
    'Migrator',
    'MigrationReport',
    'MigrationResult',
    'merge_trees',
    'merge_users',
    'merge_groups',
    'heal_passwords',
]
