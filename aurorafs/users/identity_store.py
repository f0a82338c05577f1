"""
Identity Store Module

In-memory users and groups. The structured records here are canonical
for business logic; ``/etc/passwd`` and ``/etc/group`` are generated
from them (and ingested back by the synchronizer).

Author: YSNRFD
Version: 1.0.0
"""

import threading
from typing import Optional, Iterable, List

from aurorafs.core.config_loader import UsersConfig
from aurorafs.core.subsystem import Subsystem, SubsystemState
from aurorafs.exceptions import (
    IdentityExistsError,
    IdentityNotFoundError,
    ProtectedIdentityError,
)
from aurorafs.security.permissions import ROOT_USERNAME, user_group_names
from aurorafs.users.identity import (
    User,
    Group,
    NOBODY,
    default_users,
    default_groups,
    format_passwd,
    format_group,
    validate_user,
    validate_group,
)


class IdentityStore(Subsystem):
    """
    User and group management.

    Every mutation raises on failure and leaves the store unchanged.

    Example:
        >>> store = IdentityStore()
        >>> store.initialize()
        >>> carol = store.add_user('carol', 'Carol C')
        >>> carol.uid
        1002
    """

    def __init__(
        self,
        users: Optional[Iterable[User]] = None,
        groups: Optional[Iterable[Group]] = None,
        config: Optional[UsersConfig] = None
    ):
        super().__init__('identity')
        self._config = config or UsersConfig()
        self._users: List[User] = [u.copy() for u in (default_users() if users is None else users)]
        self._groups: List[Group] = [g.copy() for g in (default_groups() if groups is None else groups)]
        self._lock = threading.RLock()

    def initialize(self) -> None:
        self.set_state(SubsystemState.INITIALIZED)
        self._logger.info(
            "Identity store initialized",
            context={'users': len(self._users), 'groups': len(self._groups)}
        )

    @property
    def config(self) -> UsersConfig:
        return self._config

    @property
    def protected_users(self) -> set[str]:
        return {ROOT_USERNAME, self._config.default_user, *self._config.protected_users}

    @property
    def protected_groups(self) -> set[str]:
        return set(self._config.protected_groups)

    # Queries

    @property
    def users(self) -> List[User]:
        with self._lock:
            return [u.copy() for u in self._users]

    @property
    def groups(self) -> List[Group]:
        with self._lock:
            return [g.copy() for g in self._groups]

    def get_user(self, username: Optional[str]) -> Optional[User]:
        with self._lock:
            for user in self._users:
                if user.username == username:
                    return user.copy()
        return None

    def get_group(self, group_name: Optional[str]) -> Optional[Group]:
        with self._lock:
            for group in self._groups:
                if group.group_name == group_name:
                    return group.copy()
        return None

    def resolve_user(self, username: Optional[str]) -> User:
        """The named user, or ``nobody`` when absent or unknown."""
        return self.get_user(username) or NOBODY.copy()

    def group_names_for(self, user: User) -> set[str]:
        with self._lock:
            return user_group_names(user, self._groups)

    def primary_group_name(self, user: User) -> Optional[str]:
        """Name of the group whose gid is the user's primary gid."""
        with self._lock:
            for group in self._groups:
                if group.gid == user.gid:
                    return group.group_name
        return None

    def next_uid(self) -> int:
        """Next uid at or above the floor."""
        with self._lock:
            highest = max((u.uid for u in self._users), default=0)
        return self._config.uid_floor if highest < self._config.uid_floor else highest + 1

    def next_gid(self) -> int:
        with self._lock:
            highest = max((g.gid for g in self._groups), default=0)
        return self._config.gid_floor if highest < self._config.gid_floor else highest + 1

    def home_for(self, username: str) -> str:
        if username == ROOT_USERNAME:
            return '/root'
        return f"{self._config.home_prefix.rstrip('/')}/{username}"

    # Mutations

    def add_user(
        self,
        username: str,
        full_name: str = '',
        password: Optional[str] = None
    ) -> User:
        """
        Create an account.

        The uid is the next one at or above 1000 and doubles as the gid.

        Raises:
            InvalidIdentityError: If a field cannot be stored
            IdentityExistsError: If the username is taken
        """
        with self._lock:
            if self.get_user(username) is not None:
                raise IdentityExistsError(username, 'user')
            uid = self.next_uid()
            user = User(
                username=username,
                password=password or None,
                uid=uid,
                gid=uid,
                full_name=full_name,
                home_dir=self.home_for(username),
                shell=self._config.default_shell,
            )
            validate_user(user)
            self._users.append(user)

        self._logger.info("User added", context={'username': username, 'uid': uid})
        return user.copy()

    def delete_user(self, username: str) -> User:
        """
        Remove an account. Files it owns stay in the tree.

        Raises:
            ProtectedIdentityError: For ``root`` and the default account
            IdentityNotFoundError: If the user does not exist
        """
        if username in self.protected_users:
            raise ProtectedIdentityError(username, 'user')
        with self._lock:
            for index, user in enumerate(self._users):
                if user.username == username:
                    del self._users[index]
                    break
            else:
                raise IdentityNotFoundError(username, 'user')

        self._logger.info("User deleted", context={'username': username})
        return user

    def add_group(self, group_name: str, members: Iterable[str] = ()) -> Group:
        """
        Create a group with the next gid at or above 100.

        Raises:
            InvalidIdentityError: If the name or a member name is invalid
            IdentityExistsError: If the group exists
        """
        with self._lock:
            if self.get_group(group_name) is not None:
                raise IdentityExistsError(group_name, 'group')
            group = Group(group_name=group_name, gid=self.next_gid(), members=list(members))
            validate_group(group)
            self._groups.append(group)

        self._logger.info("Group added", context={'group': group_name, 'gid': group.gid})
        return group.copy()

    def delete_group(self, group_name: str) -> Group:
        """
        Raises:
            ProtectedIdentityError: For ``root``, ``users`` and ``admin``
            IdentityNotFoundError: If the group does not exist
        """
        if group_name in self.protected_groups:
            raise ProtectedIdentityError(group_name, 'group')
        with self._lock:
            for index, group in enumerate(self._groups):
                if group.group_name == group_name:
                    del self._groups[index]
                    break
            else:
                raise IdentityNotFoundError(group_name, 'group')

        self._logger.info("Group deleted", context={'group': group_name})
        return group

    def replace_users(self, users: Iterable[User]) -> None:
        """Swap in a whole user list (ingested from ``/etc/passwd``)."""
        with self._lock:
            self._users = [u.copy() for u in users]

    def replace_groups(self, groups: Iterable[Group]) -> None:
        with self._lock:
            self._groups = [g.copy() for g in groups]

    def reset(self) -> None:
        """Restore the default accounts and groups."""
        self.replace_users(default_users())
        self.replace_groups(default_groups())

    # Text views

    def passwd_text(self) -> str:
        with self._lock:
            return format_passwd(self._users)

    def group_text(self) -> str:
        with self._lock:
            return format_group(self._groups)
