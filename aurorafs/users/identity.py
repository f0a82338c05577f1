"""
Identity Records Module

User and group records and the colon-delimited text formats of
``/etc/passwd`` and ``/etc/group``::

    username:password:uid:gid:fullName:homeDir:shell
    groupname:password:gid:member1,member2

Colons inside fields are not escaped; records containing them are
rejected before they are stored.

Author: YSNRFD
Version: 1.0.0
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Any, Iterable, List

from aurorafs.exceptions import IdentityParseError, InvalidIdentityError


PASSWD_FIELDS = 7
GROUP_FIELDS = 4

# Placeholder written for accounts without a stored password
NO_PASSWORD = 'x'


@dataclass
class User:
    """A system account."""
    username: str
    password: Optional[str]
    uid: int
    gid: int
    full_name: str = ''
    home_dir: str = '/'
    shell: str = '/bin/bash'
    groups: List[str] = field(default_factory=list)

    @property
    def has_password(self) -> bool:
        return bool(self.password) and self.password != NO_PASSWORD

    def check_password(self, password: Optional[str]) -> bool:
        """Passwordless accounts accept anything."""
        if not self.has_password:
            return True
        return password == self.password

    def copy(self) -> 'User':
        return replace(self, groups=list(self.groups))

    def to_dict(self) -> dict[str, Any]:
        return {
            'username': self.username,
            'password': self.password,
            'uid': self.uid,
            'gid': self.gid,
            'full_name': self.full_name,
            'home_dir': self.home_dir,
            'shell': self.shell,
            'groups': list(self.groups),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'User':
        """
        Build a user from stored data.

        Raises:
            KeyError / TypeError / ValueError: On missing or mistyped fields
        """
        return cls(
            username=str(data['username']),
            password=data.get('password'),
            uid=int(data['uid']),
            gid=int(data.get('gid', data['uid'])),
            full_name=data.get('full_name', ''),
            home_dir=data.get('home_dir') or '/',
            shell=data.get('shell') or '/bin/bash',
            groups=list(data.get('groups') or []),
        )


@dataclass
class Group:
    """A system group."""
    group_name: str
    gid: int
    members: List[str] = field(default_factory=list)
    password: str = NO_PASSWORD

    def copy(self) -> 'Group':
        return replace(self, members=list(self.members))

    def to_dict(self) -> dict[str, Any]:
        return {
            'group_name': self.group_name,
            'gid': self.gid,
            'members': list(self.members),
            'password': self.password,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Group':
        return cls(
            group_name=str(data['group_name']),
            gid=int(data['gid']),
            members=list(data.get('members') or []),
            password=data.get('password') or NO_PASSWORD,
        )


NOBODY = User(
    username='nobody',
    password=None,
    uid=65534,
    gid=65534,
    full_name='Nobody',
    home_dir='/',
    shell='',
)


def default_users() -> List[User]:
    """The accounts a fresh system starts with."""
    return [
        User('root', 'admin', 0, 0, 'System Administrator', '/root', '/bin/bash', ['root']),
        User('user', '1234', 1000, 1000, 'User', '/home/user', '/bin/bash', ['users', 'admin']),
        User('guest', 'guest', 1001, 1001, 'Guest', '/home/guest', '/bin/bash', ['users']),
    ]


def default_groups() -> List[Group]:
    """The groups a fresh system starts with."""
    return [
        Group('root', 0, ['root']),
        Group('users', 100, ['user', 'guest']),
        Group('admin', 10, ['user']),
    ]


# Validation

def _check_field(value: str, field_name: str, forbidden: str = ':\n') -> None:
    for char in forbidden:
        if char in value:
            raise InvalidIdentityError(
                f"{field_name} may not contain {char!r}",
                field_name=field_name
            )


def validate_name(name: str, kind: str = 'user') -> None:
    """
    Check a user or group name.

    Raises:
        InvalidIdentityError: If the name is empty or contains ``:``, ``,``,
            whitespace or ``/``
    """
    if not name or not name.strip():
        raise InvalidIdentityError(f"{kind} name cannot be empty", field_name='name')
    if any(c.isspace() for c in name):
        raise InvalidIdentityError(f"{kind} name cannot contain whitespace", field_name='name')
    _check_field(name, f"{kind} name", ':,/')


def validate_user(user: User) -> None:
    """Reject values the passwd format cannot represent."""
    validate_name(user.username, 'user')
    _check_field(user.password or '', 'password')
    _check_field(user.full_name, 'full name')
    _check_field(user.home_dir, 'home directory')
    _check_field(user.shell, 'shell')


def validate_group(group: Group) -> None:
    validate_name(group.group_name, 'group')
    _check_field(group.password, 'password')
    for member in group.members:
        validate_name(member, 'member')


# passwd

def _records(text: str) -> Iterable[tuple[int, str]]:
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip('\r')
        if not line.strip() or line.lstrip().startswith('#'):
            continue
        yield number, line


def _parse_int(value: str, field_name: str, number: int, line: str, source: str) -> int:
    try:
        result = int(value)
    except ValueError:
        raise IdentityParseError(
            f"{field_name} is not a number: {value!r}",
            line_number=number, line=line, source=source
        ) from None
    if result < 0:
        raise IdentityParseError(
            f"{field_name} cannot be negative",
            line_number=number, line=line, source=source
        )
    return result


def parse_passwd(text: str) -> List[User]:
    """
    Parse ``/etc/passwd`` text.

    Blank lines and ``#`` comments are skipped. A password of ``x`` or
    an empty password field means the account has none stored.
    Supplementary groups are not part of this format and come back empty.

    Raises:
        IdentityParseError: On a wrong field count, a non-numeric id,
            an empty or duplicate username
    """
    users: List[User] = []
    seen: set[str] = set()

    for number, line in _records(text):
        parts = line.split(':')
        if len(parts) != PASSWD_FIELDS:
            raise IdentityParseError(
                f"expected {PASSWD_FIELDS} fields, found {len(parts)}",
                line_number=number, line=line, source='passwd'
            )
        username, password, uid, gid, full_name, home_dir, shell = parts
        if not username:
            raise IdentityParseError(
                "empty username", line_number=number, line=line, source='passwd'
            )
        if username in seen:
            raise IdentityParseError(
                f"duplicate user '{username}'",
                line_number=number, line=line, source='passwd'
            )
        seen.add(username)

        users.append(User(
            username=username,
            password=None if password in ('', NO_PASSWORD) else password,
            uid=_parse_int(uid, 'uid', number, line, 'passwd'),
            gid=_parse_int(gid, 'gid', number, line, 'passwd'),
            full_name=full_name,
            home_dir=home_dir,
            shell=shell,
        ))

    return users


def format_passwd(users: Iterable[User]) -> str:
    """Serialize users to ``/etc/passwd`` text, one line each, in order."""
    lines = [
        ':'.join([
            user.username,
            user.password if user.has_password else NO_PASSWORD,
            str(user.uid),
            str(user.gid),
            user.full_name,
            user.home_dir,
            user.shell,
        ])
        for user in users
    ]
    return '\n'.join(lines) + '\n' if lines else ''


# group

def parse_group(text: str) -> List[Group]:
    """
    Parse ``/etc/group`` text.

    Raises:
        IdentityParseError: On a wrong field count, a non-numeric gid,
            an empty or duplicate group name
    """
    groups: List[Group] = []
    seen: set[str] = set()

    for number, line in _records(text):
        parts = line.split(':')
        if len(parts) != GROUP_FIELDS:
            raise IdentityParseError(
                f"expected {GROUP_FIELDS} fields, found {len(parts)}",
                line_number=number, line=line, source='group'
            )
        name, password, gid, members = parts
        if not name:
            raise IdentityParseError(
                "empty group name", line_number=number, line=line, source='group'
            )
        if name in seen:
            raise IdentityParseError(
                f"duplicate group '{name}'",
                line_number=number, line=line, source='group'
            )
        seen.add(name)

        groups.append(Group(
            group_name=name,
            gid=_parse_int(gid, 'gid', number, line, 'group'),
            members=[m.strip() for m in members.split(',') if m.strip()],
            password=password or NO_PASSWORD,
        ))

    return groups


def format_group(groups: Iterable[Group]) -> str:
    """Serialize groups to ``/etc/group`` text."""
    lines = [
        f"{group.group_name}:{group.password or NO_PASSWORD}:{group.gid}:{','.join(group.members)}"
        for group in groups
    ]
    return '\n'.join(lines) + '\n' if lines else ''
