"""
Permission Engine

Evaluates POSIX-style ``rwx`` permission strings against an acting
identity.

A permission string has exactly ten characters::

    d rwx r-x r-t
    | |   |   +-- other   (execute slot may be t/T: sticky)
    | |   +------ group   (execute slot may be s/S: setgid)
    | +---------- owner   (execute slot may be s/S: setuid)
    +------------ type flag: 'd' for directories, '-' for files

Author: YSNRFD
Version: 1.0.0
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Iterable, TYPE_CHECKING, Union

from aurorafs.exceptions import InvalidModeError

if TYPE_CHECKING:
    from aurorafs.filesystem.node import FileNode
    from aurorafs.users.identity import User, Group


ROOT_USERNAME = 'root'

DEFAULT_DIR_PERMISSIONS = 'drwxr-xr-x'
DEFAULT_FILE_PERMISSIONS = '-rw-r--r--'

_PERMISSION_PATTERN = re.compile(r'^[d-][r-][w-][xsS-][r-][w-][xsS-][r-][w-][xtT-]$')
_OCTAL_PATTERN = re.compile(r'^[0-7]{3}$')


class Operation(Enum):
    """Operations a permission triplet can grant."""
    READ = 'read'
    WRITE = 'write'
    EXECUTE = 'execute'


def is_valid_permission_string(value: Optional[str]) -> bool:
    """Check the ten-character symbolic form."""
    return isinstance(value, str) and _PERMISSION_PATTERN.match(value) is not None


def is_sticky(permissions: Optional[str]) -> bool:
    """True when a directory's permission string carries the sticky bit."""
    return bool(permissions) and permissions[-1] in 'tT'


def default_permissions(is_directory: bool) -> str:
    return DEFAULT_DIR_PERMISSIONS if is_directory else DEFAULT_FILE_PERMISSIONS


@dataclass(frozen=True)
class PermissionBits:
    """A parsed permission string."""

    type_flag: str
    owner: str
    group: str
    other: str

    @classmethod
    def parse(cls, permissions: Optional[str], is_directory: bool) -> 'PermissionBits':
        """
        Parse a permission string.

        Missing or malformed strings fall back to the conservative
        defaults for the node type.
        """
        if not is_valid_permission_string(permissions):
            permissions = default_permissions(is_directory)
        return cls(
            type_flag=permissions[0],
            owner=permissions[1:4],
            group=permissions[4:7],
            other=permissions[7:10],
        )

    @staticmethod
    def triplet_allows(triplet: str, operation: Operation) -> bool:
        if operation == Operation.READ:
            return triplet[0] == 'r'
        if operation == Operation.WRITE:
            return triplet[1] == 'w'
        # lowercase s/t mean "special bit set and executable"
        return triplet[2] in 'xst'

    @property
    def sticky(self) -> bool:
        return self.other[2] in 'tT'

    @property
    def setuid(self) -> bool:
        return self.owner[2] in 'sS'

    @property
    def setgid(self) -> bool:
        return self.group[2] in 'sS'

    def to_string(self) -> str:
        return f"{self.type_flag}{self.owner}{self.group}{self.other}"

    def to_octal(self) -> str:
        """Render the rwx bits as three octal digits (special bits dropped)."""
        digits = []
        for triplet in (self.owner, self.group, self.other):
            value = 0
            if self.triplet_allows(triplet, Operation.READ):
                value |= 4
            if self.triplet_allows(triplet, Operation.WRITE):
                value |= 2
            if self.triplet_allows(triplet, Operation.EXECUTE):
                value |= 1
            digits.append(str(value))
        return ''.join(digits)


def _triplet_from_digit(digit: int, special: bool, special_char: str) -> str:
    read = 'r' if digit & 4 else '-'
    write = 'w' if digit & 2 else '-'
    if special:
        execute = special_char if digit & 1 else special_char.upper()
    else:
        execute = 'x' if digit & 1 else '-'
    return read + write + execute


def octal_to_permissions(
    mode: str,
    is_directory: bool,
    existing: Optional[str] = None
) -> str:
    """
    Convert a three-digit octal mode to the symbolic form.

    The type flag and any sticky/setuid/setgid bits of ``existing``
    are kept.

    Raises:
        InvalidModeError: If ``mode`` is not exactly three octal digits
    """
    if not isinstance(mode, str) or not _OCTAL_PATTERN.match(mode):
        raise InvalidModeError(str(mode))

    current = PermissionBits.parse(existing, is_directory)
    owner_digit, group_digit, other_digit = (int(d) for d in mode)

    return (
        current.type_flag
        + _triplet_from_digit(owner_digit, current.setuid, 's')
        + _triplet_from_digit(group_digit, current.setgid, 's')
        + _triplet_from_digit(other_digit, current.sticky, 't')
    )


def user_group_names(user: 'User', groups: Iterable['Group'] = ()) -> set[str]:
    """
    All group names a user belongs to.

    Combines the supplementary list on the user record, the group
    whose gid is the user's primary gid, and groups listing the user
    as a member.
    """
    names = set(user.groups or ())
    for group in groups:
        if group.gid == user.gid or user.username in group.members:
            names.add(group.group_name)
    return names


def check_permission(
    node: 'FileNode',
    user: Optional['User'],
    operation: Union[Operation, str],
    groups: Iterable['Group'] = ()
) -> bool:
    """
    Decide whether ``user`` may perform ``operation`` on ``node``.

    Root always passes. Otherwise exactly one triplet applies: owner
    if the user owns the node, else group if the user is in the
    node's group, else other.

    Args:
        node: Node being accessed
        user: Acting identity (None is treated as an anonymous "other")
        operation: read, write or execute
        groups: Known groups, used to map the primary gid to a name
    """
    operation = Operation(operation)

    if user is not None and user.username == ROOT_USERNAME:
        return True

    bits = PermissionBits.parse(node.permissions, node.is_directory)

    if user is None:
        triplet = bits.other
    elif user.username == node.owner:
        triplet = bits.owner
    elif node.group and node.group in user_group_names(user, groups):
        triplet = bits.group
    else:
        triplet = bits.other

    return PermissionBits.triplet_allows(triplet, operation)
