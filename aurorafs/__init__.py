"""
AuroraFS - The filesystem core of Aurora OS

An in-memory, POSIX-flavoured filesystem with users, groups and
rwx permissions, persisted as JSON snapshots and migrated forward
on load. Implemented in Python 3.10+ using only the standard library.
"""

__title__ = "aurorafs"
__version__ = "1.0.0"
__author__ = "YSNRFD"
__license__ = "AGPL-3.0"

# The filesystem package must load before the users package
from .filesystem import VirtualFileSystem, FileNode, PathResolver
from .users import IdentityStore, User, Group
from .core.bootloader import Bootloader, boot_system
from .shell import Shell

__all__ = [
    'VirtualFileSystem',
    'FileNode',
    'PathResolver',
    'IdentityStore',
    'User',
    'Group',
    'Bootloader',
    'boot_system',
    'Shell',
]
