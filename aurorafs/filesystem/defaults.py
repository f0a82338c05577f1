"""
Default Tree Module

The tree a fresh system boots with, and the home skeleton given to
new accounts. The migrator merges newer versions of this tree into
stored ones, so paths added here reach existing installs.

Author: YSNRFD
Version: 1.0.0
"""

import time
from typing import Optional, Iterable

from aurorafs.filesystem.node import FileNode
from aurorafs.filesystem.path_resolver import WELL_KNOWN_FOLDERS
from aurorafs.users.identity import User, Group, default_users, default_groups, format_passwd, format_group


TRASH_DIR = '.Trash'

HOME_PERMISSIONS = 'drwxr-xr-x'
ROOT_HOME_PERMISSIONS = 'drwx------'
TMP_PERMISSIONS = 'drwxrwxrwt'
EXECUTABLE_PERMISSIONS = '-rwxr-xr-x'

MOTD = "Welcome to Aurora OS\n"
HOSTNAME = "aurora\n"

_BINARIES = ('bash', 'cat', 'cp', 'ls', 'mkdir', 'mv', 'rm', 'touch')


def create_user_home(
    username: str,
    group: Optional[str] = None,
    now: Optional[float] = None,
    trash_dir: str = TRASH_DIR
) -> FileNode:
    """
    Build ``/home/<username>`` with the standard folders and a trash.

    Every node is owned by the user.
    """
    timestamp = now if now is not None else time.time()
    folders = [
        FileNode.directory(name, owner=username, group=group, modified=timestamp)
        for name in (*WELL_KNOWN_FOLDERS, trash_dir)
    ]
    return FileNode.directory(
        username,
        folders,
        owner=username,
        group=group,
        permissions=HOME_PERMISSIONS,
        modified=timestamp,
    )


def default_tree(
    users: Optional[Iterable[User]] = None,
    groups: Optional[Iterable[Group]] = None,
    now: Optional[float] = None
) -> FileNode:
    """
    Build the default tree.

    ``/etc/passwd`` and ``/etc/group`` are rendered from ``users`` and
    ``groups`` (the default accounts when omitted).
    """
    timestamp = now if now is not None else time.time()
    users = list(default_users() if users is None else users)
    groups = list(default_groups() if groups is None else groups)

    def d(name, children=(), owner='root', group='root', permissions='drwxr-xr-x'):
        return FileNode.directory(
            name, children, owner=owner, group=group,
            permissions=permissions, modified=timestamp,
        )

    def f(name, content, permissions='-rw-r--r--'):
        return FileNode.file(
            name, content, owner='root', group='root',
            permissions=permissions, modified=timestamp,
        )

    homes = [
        create_user_home(user.username, 'users', timestamp)
        for user in users
        if user.home_dir.startswith('/home/')
    ]

    welcome = FileNode.file(
        'welcome.txt',
        "Welcome to Aurora OS!\n",
        owner='user', group='users', modified=timestamp,
    )
    homes = [
        home.with_child_replaced(
            'Documents', home.get_child('Documents').with_child_added(welcome)
        ) if home.name == 'user' else home
        for home in homes
    ]

    return d('/', [
        d('bin', [f(name, f"#!/bin/bash\n# {name}\n", EXECUTABLE_PERMISSIONS) for name in _BINARIES]),
        d('etc', [
            f('passwd', format_passwd(users)),
            f('group', format_group(groups)),
            f('hostname', HOSTNAME),
            f('motd', MOTD),
        ]),
        d('home', homes),
        d('root', [d(TRASH_DIR, permissions=ROOT_HOME_PERMISSIONS)], permissions=ROOT_HOME_PERMISSIONS),
        d('tmp', permissions=TMP_PERMISSIONS),
        d('usr', [d('bin'), d('share')]),
        d('var', [d('log')]),
    ])
