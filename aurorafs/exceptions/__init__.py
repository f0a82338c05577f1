"""
AuroraFS Exception Hierarchy

Architecture:
    BootException
    ├── BootFailureError
    └── ConfigValidationError
    FileSystemException
    ├── NodeNotFoundError
    ├── NodeExistsError
    ├── PermissionDeniedError
    ├── NotAFileError
    ├── NotADirectoryError
    ├── MoveCycleError
    ├── InvalidModeError
    ├── InvalidNameError
    └── ReadOnlyFileSystemError
    IdentityException
    ├── IdentityParseError
    ├── IdentityExistsError
    ├── IdentityNotFoundError
    ├── ProtectedIdentityError
    ├── InvalidIdentityError
    └── AuthenticationError
"""

from .boot_exceptions import (
    BootException,
    BootFailureError,
    ConfigValidationError,
)

from .fs_exceptions import (
    FileSystemException,
    NodeNotFoundError,
    NodeExistsError,
    PermissionDeniedError,
    NotAFileError,
    NotADirectoryError,
    MoveCycleError,
    InvalidModeError,
    InvalidNameError,
    ReadOnlyFileSystemError,
)

from .identity_exceptions import (
    IdentityException,
    IdentityParseError,
    IdentityExistsError,
    IdentityNotFoundError,
    ProtectedIdentityError,
    InvalidIdentityError,
    AuthenticationError,
)

__all__ = [
    # Boot exceptions
    "BootException",
    "BootFailureError",
    "ConfigValidationError",
    # Filesystem exceptions
    "FileSystemException",
    "NodeNotFoundError",
    "NodeExistsError",
    "PermissionDeniedError",
    "NotAFileError",
    "NotADirectoryError",
    "MoveCycleError",
    "InvalidModeError",
    "InvalidNameError",
    "ReadOnlyFileSystemError",
    # Identity exceptions
    "IdentityException",
    "IdentityParseError",
    "IdentityExistsError",
    "IdentityNotFoundError",
    "ProtectedIdentityError",
    "InvalidIdentityError",
    "AuthenticationError",
]
