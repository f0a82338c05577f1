"""
Identity Synchronizer

Keeps ``/etc/passwd`` and ``/etc/group`` in the tree consistent with
the identity store, in both directions:

- render: store -> file nodes, after identity mutations
- ingest: file text -> store, after a direct write to either file

Both directions compare serialized text first, so an update that
changes nothing neither touches ``modified`` nor re-parses.

Author: YSNRFD
Version: 1.0.0
"""

import time
from typing import Optional, List

from aurorafs.exceptions import IdentityParseError
from aurorafs.filesystem.node import FileNode
from aurorafs.filesystem.tree import node_at, replace_node, insert_child
from aurorafs.logger import get_logger
from aurorafs.security.permissions import DEFAULT_FILE_PERMISSIONS, ROOT_USERNAME
from aurorafs.users.identity import (
    User,
    parse_passwd,
    parse_group,
    format_passwd,
    format_group,
)
from aurorafs.users.identity_store import IdentityStore


PASSWD_PATH = '/etc/passwd'
GROUP_PATH = '/etc/group'


class IdentitySynchronizer:
    """
    Bidirectional sync between an ``IdentityStore`` and the tree.

    Example:
        >>> sync = IdentitySynchronizer(store)
        >>> root = sync.render_into(root)          # after add_user
        >>> sync.ingest('/etc/passwd', new_text)   # after a file write
        True
    """

    def __init__(self, store: IdentityStore):
        self._store = store
        self._logger = get_logger('identity')

    @staticmethod
    def is_identity_path(path: str) -> bool:
        return path in (PASSWD_PATH, GROUP_PATH)

    def render_into(self, root: FileNode, now: Optional[float] = None) -> FileNode:
        """
        Write the store's text views into ``/etc``.

        Missing files are created (owned by root) when ``/etc`` exists.
        Returns ``root`` itself when nothing changed.
        """
        etc = node_at(root, ['etc'])
        if etc is None or not etc.is_directory:
            return root

        timestamp = now if now is not None else time.time()
        for name, text in (
            ('passwd', self._store.passwd_text()),
            ('group', self._store.group_text()),
        ):
            current = etc.get_child(name)
            if current is None:
                node = FileNode.file(
                    name, text,
                    owner=ROOT_USERNAME, group=ROOT_USERNAME,
                    permissions=DEFAULT_FILE_PERMISSIONS,
                    modified=timestamp,
                )
                root = insert_child(root, ['etc'], node)
            elif current.is_file and current.content != text:
                root = replace_node(root, ['etc', name], current.with_content(text, timestamp))
            etc = node_at(root, ['etc'])

        return root

    def ingest(self, path: str, content: str) -> bool:
        """
        Re-parse a written identity file into the store.

        A parse failure is logged and the in-memory identities are kept.

        Returns:
            True if the store changed
        """
        if path == PASSWD_PATH:
            return self._ingest_passwd(content)
        if path == GROUP_PATH:
            return self._ingest_group(content)
        return False

    def _ingest_passwd(self, content: str) -> bool:
        try:
            parsed = parse_passwd(content)
        except IdentityParseError as e:
            self._logger.warning(
                "Failed to parse /etc/passwd update, keeping in-memory users",
                context={'error': e.message}
            )
            return False

        # Supplementary groups live only in memory
        for user in parsed:
            existing = self._store.get_user(user.username)
            if existing is not None:
                user.groups = list(existing.groups)

        if format_passwd(parsed) == self._store.passwd_text():
            return False
        self._store.replace_users(parsed)
        self._logger.info("Users reloaded from /etc/passwd", context={'users': len(parsed)})
        return True

    def _ingest_group(self, content: str) -> bool:
        try:
            parsed = parse_group(content)
        except IdentityParseError as e:
            self._logger.warning(
                "Failed to parse /etc/group update, keeping in-memory groups",
                context={'error': e.message}
            )
            return False

        if format_group(parsed) == self._store.group_text():
            return False
        self._store.replace_groups(parsed)
        self._logger.info("Groups reloaded from /etc/group", context={'groups': len(parsed)})
        return True

    def read_users(self, root: FileNode) -> Optional[List[User]]:
        """
        Users as currently written in ``/etc/passwd``.

        Returns:
            The parsed list, or None if the file is missing, empty or corrupt
        """
        node = node_at(root, ['etc', 'passwd'])
        if node is None or not node.is_file or not node.content:
            return None
        try:
            return parse_passwd(node.content)
        except IdentityParseError as e:
            self._logger.warning(
                "/etc/passwd corrupted, falling back to memory",
                context={'error': e.message}
            )
            return None
