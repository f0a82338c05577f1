"""
Virtual File System (VFS) Module

The filesystem tree facade used by every caller (terminal, file
manager, settings):
- Hierarchical node tree with POSIX-style ownership and permissions
- Path resolution with ``~`` and well-known folders
- Create / read / write / delete / move / copy / trash
- chmod / chown
- Login, logout and account management kept in sync with /etc

Each operation runs under an acting user: the logged-in user unless
the caller passes ``as_user`` (``su`` / ``sudo`` sessions do). Every
operation returns a plain result; failures come back as ``False`` or
``None`` and the cause is kept in ``last_error``.

Every committed mutation replaces ``root`` with a new node; untouched
subtrees are shared with the previous root.

Author: YSNRFD
Version: 1.0.0
"""

import functools
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, List, Tuple

from aurorafs.core.config_loader import Config, get_config
from aurorafs.core.subsystem import Subsystem, SubsystemState
from aurorafs.exceptions import (
    FileSystemException,
    IdentityException,
    AuthenticationError,
    InvalidModeError,
    InvalidNameError,
    MoveCycleError,
    NodeExistsError,
    NodeNotFoundError,
    NotADirectoryError,
    NotAFileError,
    PermissionDeniedError,
    ProtectedIdentityError,
    ReadOnlyFileSystemError,
)
from aurorafs.filesystem.defaults import create_user_home, default_tree
from aurorafs.filesystem.node import (
    FileNode,
    clone_subtree,
    find_node_and_parent,
    is_descendant,
)
from aurorafs.filesystem.path_resolver import PathResolver
from aurorafs.filesystem.tree import (
    split_path,
    join_path,
    node_at,
    insert_child,
    remove_child,
    replace_node,
)
from aurorafs.notifications import LoggingNotifier, NotificationSink, NotificationType
from aurorafs.security.permissions import (
    Operation,
    ROOT_USERNAME,
    check_permission,
    is_sticky,
    is_valid_permission_string,
    octal_to_permissions,
)
from aurorafs.storage import DebouncedWriter, Snapshot, SnapshotStore
from aurorafs.users.identity import User, Group
from aurorafs.users.identity_store import IdentityStore
from aurorafs.users.sync import IdentitySynchronizer


TreeListener = Callable[[FileNode], None]

# Failures the user is told about; the rest only reach the log
_NOTIFY_SOURCES = {
    PermissionDeniedError: 'Permission Denied',
    ReadOnlyFileSystemError: 'Read-only File System',
    ProtectedIdentityError: 'User Management',
    AuthenticationError: 'Auth',
}


@dataclass(frozen=True)
class OperationContext:
    """The acting identity and working directory of one call."""
    user: User
    groups: Tuple[Group, ...]
    cwd: str

    @property
    def username(self) -> str:
        return self.user.username

    @property
    def is_root(self) -> bool:
        return self.user.username == ROOT_USERNAME

    def resolve(self, path: str) -> str:
        return PathResolver.resolve(path, self.cwd, self.user.home_dir)

    def can(self, node: FileNode, operation: Operation) -> bool:
        return check_permission(node, self.user, operation, self.groups)


def _operation(default: Any = False):
    """
    Run a VFS method under the lock and turn domain errors into ``default``.
    """
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            with self._lock:
                try:
                    result = method(self, *args, **kwargs)
                except (FileSystemException, IdentityException) as e:
                    self._record_failure(method.__name__, e, kwargs.get('as_user'))
                    return default
                self._last_error = None
                return result
        return wrapper
    return decorator


class VirtualFileSystem(Subsystem):
    """
    Virtual File System Subsystem.

    Example:
        >>> vfs = VirtualFileSystem()
        >>> vfs.initialize()
        >>> vfs.login('user', '1234')
        True
        >>> vfs.create_file('~/Documents', 'notes.txt', 'hello')
        True
        >>> vfs.read_file('/home/user/Documents/notes.txt')
        'hello'
    """

    def __init__(
        self,
        root: Optional[FileNode] = None,
        identities: Optional[IdentityStore] = None,
        config: Optional[Config] = None,
        notifier: Optional[NotificationSink] = None,
        snapshots: Optional[SnapshotStore] = None,
        read_only: bool = False
    ):
        super().__init__('filesystem')
        self._config = config or get_config()
        self._identities = identities or IdentityStore(config=self._config.users)
        self._sync = IdentitySynchronizer(self._identities)
        self._root = root if root is not None else default_tree(
            self._identities.users, self._identities.groups
        )
        self._notifier = notifier or LoggingNotifier()
        self._snapshots = snapshots
        self._writer: Optional[DebouncedWriter] = None
        if snapshots is not None:
            self._writer = DebouncedWriter(self._config.filesystem.persist_delay, self._persist)
        self._read_only = read_only
        self._current_user: Optional[str] = None
        self._listeners: List[TreeListener] = []
        self._last_error: Optional[Exception] = None
        self._lock = threading.RLock()

    # Lifecycle

    def initialize(self) -> None:
        """Bring /etc/passwd and /etc/group in line with the identity store."""
        self._logger.info("Initializing virtual filesystem")
        with self._lock:
            self._root = self._sync.render_into(self._root)
        if self._read_only:
            self._logger.warning("Filesystem mounted read-only (system integrity compromised)")
        self.set_state(SubsystemState.INITIALIZED)
        self._logger.info("Virtual filesystem initialized")

    def start(self) -> None:
        self.set_state(SubsystemState.RUNNING)

    def stop(self) -> None:
        """Write any pending snapshot and stop."""
        self._logger.info("Stopping virtual filesystem")
        self.flush()
        self.set_state(SubsystemState.STOPPED)

    def flush(self) -> bool:
        """Persist the pending snapshot immediately."""
        if self._writer is None:
            return False
        return self._writer.flush()

    # State

    @property
    def root(self) -> FileNode:
        return self._root

    @property
    def identities(self) -> IdentityStore:
        return self._identities

    @property
    def users(self) -> List[User]:
        return self._identities.users

    @property
    def groups(self) -> List[Group]:
        return self._identities.groups

    @property
    def current_user(self) -> Optional[str]:
        """Logged-in username, or None."""
        return self._current_user

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def last_error(self) -> Optional[Exception]:
        """The exception behind the most recent failed operation."""
        return self._last_error

    def add_listener(self, callback: TreeListener) -> None:
        """Call ``callback(new_root)`` after every committed mutation."""
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: TreeListener) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def acting_user(self, as_user: Optional[str] = None) -> User:
        """The user an operation runs as (``nobody`` when unknown)."""
        return self._identities.resolve_user(as_user if as_user is not None else self._current_user)

    def home_path(self, as_user: Optional[str] = None) -> str:
        return self.acting_user(as_user).home_dir

    def resolve_path(
        self,
        path: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> str:
        """Resolve ``path`` for the acting user (relative to ``cwd`` or home)."""
        return self._context(as_user, cwd).resolve(path)

    # Internals

    def _context(self, as_user: Optional[str], cwd: Optional[str]) -> OperationContext:
        user = self.acting_user(as_user)
        return OperationContext(
            user=user,
            groups=tuple(self._identities.groups),
            cwd=cwd or user.home_dir,
        )

    def _record_failure(self, operation: str, error: Exception, as_user: Optional[str]) -> None:
        self._last_error = error
        user = as_user if as_user is not None else self._current_user
        self._logger.debug(
            f"{operation} failed: {error.message}",
            user=user,
            context={'error_code': error.error_code, **error.context}
        )
        for error_type, source in _NOTIFY_SOURCES.items():
            if isinstance(error, error_type):
                self._notify(NotificationType.ERROR, source, error.message)
                break

    def _notify(
        self,
        type: NotificationType,
        source: str,
        message: str,
        subtitle: Optional[str] = None
    ) -> None:
        try:
            self._notifier.notify(type, source, message, subtitle)
        except Exception as e:
            self._logger.warning("Notification sink failed", context={'error': str(e)})

    def _ensure_writable(self, path: Optional[str], operation: str) -> None:
        if self._read_only:
            raise ReadOnlyFileSystemError(path, operation)

    def _walk(self, ctx: OperationContext, path: str) -> FileNode:
        """
        Find the node at an absolute path.

        Every directory passed through needs execute permission; a
        missing node and an untraversable directory look the same.

        Raises:
            NodeNotFoundError: In either case
        """
        current = self._root
        for part in split_path(path):
            if not current.is_directory or not ctx.can(current, Operation.EXECUTE):
                raise NodeNotFoundError(path)
            current = current.get_child(part)
            if current is None:
                raise NodeNotFoundError(path)
        return current

    def _lookup(self, ctx: OperationContext, path: str) -> Optional[FileNode]:
        try:
            return self._walk(ctx, path)
        except NodeNotFoundError:
            return None

    def _walk_directory(self, ctx: OperationContext, path: str) -> FileNode:
        node = self._walk(ctx, path)
        if not node.is_directory:
            raise NotADirectoryError(path)
        return node

    def _require(self, ctx: OperationContext, node: FileNode, operation: Operation, path: str) -> None:
        if not ctx.can(node, operation):
            raise PermissionDeniedError(path, operation=operation.value, user=ctx.username)

    def _check_sticky(self, ctx: OperationContext, parent: FileNode, node: FileNode, path: str) -> None:
        """Inside a sticky directory only the file owner, directory owner or root may remove."""
        if not is_sticky(parent.permissions) or ctx.is_root:
            return
        if ctx.username in (node.owner, parent.owner):
            return
        raise PermissionDeniedError(
            path, operation='delete', user=ctx.username, reason='sticky bit'
        )

    @staticmethod
    def _validate_name(name: str) -> None:
        if not name or name in ('.', '..') or '/' in name:
            raise InvalidNameError(name)

    def _new_node_group(self, ctx: OperationContext) -> Optional[str]:
        return self._identities.primary_group_name(ctx.user)

    def _commit(self, new_root: FileNode, identities_changed: bool = False) -> None:
        """Install a new root, schedule persistence and tell listeners."""
        if new_root is self._root and not identities_changed:
            return
        self._root = new_root
        if self._writer is not None:
            self._writer.schedule((new_root, self._identities.users, self._identities.groups))
        for listener in list(self._listeners):
            try:
                listener(new_root)
            except Exception as e:
                self._logger.warning("Tree listener failed", context={'error': str(e)})

    def _persist(self, payload: Tuple[FileNode, List[User], List[Group]]) -> None:
        root, users, groups = payload
        self._snapshots.save(Snapshot(
            tree=root.to_dict(),
            users=[u.to_dict() for u in users],
            groups=[g.to_dict() for g in groups],
            version=self._config.system.schema_version,
        ))

    def _after_identity_write(self, path: str, content: str) -> None:
        """Re-parse a written identity file; re-render if the store changed."""
        if self._sync.is_identity_path(path) and self._sync.ingest(path, content):
            self._commit(self._sync.render_into(self._root), identities_changed=True)

    # Queries

    @_operation(default=None)
    def get_node_at_path(
        self,
        path: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> Optional[FileNode]:
        """The node at ``path``, or None if missing or not reachable."""
        ctx = self._context(as_user, cwd)
        return self._walk(ctx, ctx.resolve(path))

    def exists(self, path: str, *, as_user: Optional[str] = None, cwd: Optional[str] = None) -> bool:
        return self.get_node_at_path(path, as_user=as_user, cwd=cwd) is not None

    def is_directory(self, path: str, *, as_user: Optional[str] = None, cwd: Optional[str] = None) -> bool:
        node = self.get_node_at_path(path, as_user=as_user, cwd=cwd)
        return node is not None and node.is_directory

    @_operation(default=False)
    def can_access(
        self,
        path: str,
        operation: Operation,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """Whether the acting user may perform ``operation`` on the node at ``path``."""
        ctx = self._context(as_user, cwd)
        return ctx.can(self._walk(ctx, ctx.resolve(path)), operation)

    @_operation(default=None)
    def list_directory(
        self,
        path: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> Optional[List[FileNode]]:
        """Children of a directory, in order. Needs read on the directory."""
        ctx = self._context(as_user, cwd)
        resolved = ctx.resolve(path)
        node = self._walk_directory(ctx, resolved)
        self._require(ctx, node, Operation.READ, resolved)
        return list(node.children)

    @_operation(default=None)
    def read_file(
        self,
        path: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> Optional[str]:
        ctx = self._context(as_user, cwd)
        resolved = ctx.resolve(path)
        node = self._walk(ctx, resolved)
        if not node.is_file:
            raise NotAFileError(resolved)
        self._require(ctx, node, Operation.READ, resolved)
        return node.content

    # Mutations

    @_operation()
    def write_file(
        self,
        path: str,
        content: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """
        Replace a file's content.

        Writing /etc/passwd or /etc/group reloads the identity store
        when the parsed records differ from memory.
        """
        ctx = self._context(as_user, cwd)
        resolved = ctx.resolve(path)
        self._ensure_writable(resolved, 'write')
        node = self._walk(ctx, resolved)
        if not node.is_file:
            raise NotAFileError(resolved)
        self._require(ctx, node, Operation.WRITE, resolved)

        changed = node.content != content
        self._commit(replace_node(self._root, split_path(resolved), node.with_content(content)))
        self._logger.debug("Wrote file", user=ctx.username, context={'path': resolved, 'size': len(content)})

        if changed:
            self._after_identity_write(resolved, content)
        return True

    def _create(self, ctx: OperationContext, directory: str, node: FileNode) -> str:
        self._validate_name(node.name)
        resolved = ctx.resolve(directory)
        self._ensure_writable(resolved, 'create')
        parent = self._walk_directory(ctx, resolved)
        self._require(ctx, parent, Operation.WRITE, resolved)
        target = join_path([*split_path(resolved), node.name])
        if parent.has_child(node.name):
            raise NodeExistsError(target)
        self._commit(insert_child(self._root, split_path(resolved), node))
        return target

    @_operation()
    def create_file(
        self,
        directory: str,
        name: str,
        content: str = '',
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """Create a file owned by the acting user. Needs write on ``directory``."""
        ctx = self._context(as_user, cwd)
        node = FileNode.file(name, content, owner=ctx.username, group=self._new_node_group(ctx))
        target = self._create(ctx, directory, node)
        self._logger.debug("Created file", user=ctx.username, context={'path': target})
        if content:
            self._after_identity_write(target, content)
        return True

    @_operation()
    def create_directory(
        self,
        directory: str,
        name: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        ctx = self._context(as_user, cwd)
        node = FileNode.directory(name, owner=ctx.username, group=self._new_node_group(ctx))
        target = self._create(ctx, directory, node)
        self._logger.debug("Created directory", user=ctx.username, context={'path': target})
        return True

    def _delete(self, ctx: OperationContext, resolved: str) -> None:
        if resolved == '/':
            raise PermissionDeniedError('/', operation='delete', user=ctx.username)
        self._ensure_writable(resolved, 'delete')
        parts = split_path(resolved)
        node = self._walk(ctx, resolved)
        parent = node_at(self._root, parts[:-1])
        self._require(ctx, parent, Operation.WRITE, join_path(parts[:-1]))
        self._check_sticky(ctx, parent, node, resolved)
        self._commit(remove_child(self._root, parts[:-1], node.name))
        self._logger.debug("Deleted node", user=ctx.username, context={'path': resolved})

    @_operation()
    def delete_node(
        self,
        path: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """Remove a node and its subtree. Needs write on the parent."""
        ctx = self._context(as_user, cwd)
        self._delete(ctx, ctx.resolve(path))
        return True

    def _move(
        self,
        ctx: OperationContext,
        node: FileNode,
        source_parts: List[str],
        dest_parts: List[str],
        new_name: str
    ) -> None:
        """Detach ``node`` from ``source_parts`` and attach it under ``dest_parts``."""
        source_path = join_path([*source_parts, node.name])
        dest_path = join_path([*dest_parts, new_name])
        self._ensure_writable(source_path, 'move')
        self._validate_name(new_name)

        source_parent = node_at(self._root, source_parts)
        self._require(ctx, source_parent, Operation.WRITE, join_path(source_parts))
        self._check_sticky(ctx, source_parent, node, source_path)

        dest_parent = self._walk_directory(ctx, join_path(dest_parts))
        self._require(ctx, dest_parent, Operation.WRITE, join_path(dest_parts))

        if dest_parent.id == node.id or is_descendant(node, dest_parent.id):
            raise MoveCycleError(source_path, destination=dest_path)
        if dest_parent.has_child(new_name):
            raise NodeExistsError(dest_path)

        new_root = remove_child(self._root, source_parts, node.name)
        new_root = insert_child(new_root, dest_parts, node.renamed(new_name))
        self._commit(new_root)
        self._logger.debug(
            "Moved node", user=ctx.username,
            context={'from': source_path, 'to': dest_path}
        )

    @_operation()
    def move_node(
        self,
        from_path: str,
        to_path: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """
        Move (and possibly rename) a node; ``to_path`` is its new path.

        Needs write on both parents. Fails if the destination name is
        taken or the destination lies inside the moved node.
        """
        ctx = self._context(as_user, cwd)
        source = ctx.resolve(from_path)
        dest = ctx.resolve(to_path)
        if source == '/':
            raise MoveCycleError('/', destination=dest)
        node = self._walk(ctx, source)
        dest_parts = split_path(dest)
        if not dest_parts:
            raise NodeExistsError('/')
        self._move(ctx, node, split_path(source)[:-1], dest_parts[:-1], dest_parts[-1])
        return True

    @_operation()
    def move_node_by_id(
        self,
        node_id: str,
        dest_dir: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """
        Move the node with ``node_id`` into ``dest_dir``, keeping its name.

        The node is located by id in the current tree, so callers holding
        an id from an older snapshot still move the right node.
        """
        ctx = self._context(as_user, cwd)
        found = find_node_and_parent(self._root, node_id)
        if found is None:
            raise NodeNotFoundError(node_id)
        node, _, parent_parts = found
        dest_parts = split_path(ctx.resolve(dest_dir))
        self._move(ctx, node, parent_parts, dest_parts, node.name)
        return True

    @_operation()
    def copy_node(
        self,
        from_path: str,
        to_path: str,
        recursive: bool = False,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """
        Copy a node. Copies get fresh ids and belong to the acting user.

        If ``to_path`` is an existing directory the copy goes inside it
        under the source name. Directories need ``recursive=True``.
        """
        ctx = self._context(as_user, cwd)
        source_path = ctx.resolve(from_path)
        dest = ctx.resolve(to_path)
        source = self._walk(ctx, source_path)
        self._require(ctx, source, Operation.READ, source_path)
        if source.is_directory and not recursive:
            raise NotAFileError(source_path, context={'hint': 'recursive copy required'})

        existing = self._lookup(ctx, dest)
        if existing is not None and existing.is_directory:
            dest_parts, name = split_path(dest), source.name
        else:
            parts = split_path(dest)
            if not parts:
                raise NodeExistsError('/')
            dest_parts, name = parts[:-1], parts[-1]
        self._validate_name(name)
        self._ensure_writable(join_path(dest_parts), 'copy')

        dest_parent = self._walk_directory(ctx, join_path(dest_parts))
        self._require(ctx, dest_parent, Operation.WRITE, join_path(dest_parts))
        target = join_path([*dest_parts, name])
        if dest_parent.id == source.id or is_descendant(source, dest_parent.id):
            raise MoveCycleError(source_path, destination=target)
        if dest_parent.has_child(name):
            raise NodeExistsError(target)

        copy = clone_subtree(
            source,
            owner=ctx.username,
            group=self._new_node_group(ctx),
            modified=time.time(),
        ).renamed(name)
        self._commit(insert_child(self._root, dest_parts, copy))
        self._logger.debug(
            "Copied node", user=ctx.username,
            context={'from': source_path, 'to': target}
        )
        return True

    def _trash_parts(self, ctx: OperationContext) -> List[str]:
        return [*split_path(ctx.user.home_dir), self._config.filesystem.trash_dir]

    @_operation()
    def move_to_trash(
        self,
        path: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """
        Soft-delete into ``~/.Trash``.

        A clashing name gets a counter before its extension
        (``a.txt`` -> ``a 1.txt``). Anything already inside the trash
        is deleted for real.
        """
        ctx = self._context(as_user, cwd)
        resolved = ctx.resolve(path)
        trash_parts = self._trash_parts(ctx)
        trash_path = join_path(trash_parts)

        if PathResolver.is_within(resolved, trash_path):
            self._delete(ctx, resolved)
            return True

        self._ensure_writable(resolved, 'trash')
        node = self._walk(ctx, resolved)
        if resolved == '/':
            raise MoveCycleError('/', destination=trash_path)

        trash = node_at(self._root, trash_parts)
        staged = None
        if trash is None:
            # Accounts created before the trash existed get one on demand
            home = node_at(self._root, trash_parts[:-1])
            if home is None or not home.is_directory:
                raise NodeNotFoundError(trash_path)
            trash = FileNode.directory(
                trash_parts[-1], owner=ctx.username, group=self._new_node_group(ctx)
            )
            staged = insert_child(self._root, trash_parts[:-1], trash)

        name = node.name
        stem, ext = PathResolver.splitext(name)
        counter = 1
        while trash.has_child(name):
            name = f"{stem} {counter}{ext}"
            counter += 1

        if staged is None:
            self._move(ctx, node, split_path(resolved)[:-1], trash_parts, name)
            return True

        # The new trash is only committed together with the move
        previous = self._root
        self._root = staged
        try:
            self._move(ctx, node, split_path(resolved)[:-1], trash_parts, name)
        except FileSystemException:
            self._root = previous
            raise
        return True

    @_operation()
    def empty_trash(self, *, as_user: Optional[str] = None) -> bool:
        """Drop everything in the acting user's trash."""
        ctx = self._context(as_user, None)
        trash_parts = self._trash_parts(ctx)
        self._ensure_writable(join_path(trash_parts), 'empty trash')
        trash = node_at(self._root, trash_parts)
        if trash is None or not trash.is_directory or not trash.children:
            return True
        self._commit(replace_node(self._root, trash_parts, trash.with_children(())))
        self._logger.debug("Emptied trash", user=ctx.username, context={'items': len(trash.children)})
        return True

    @_operation()
    def chmod(
        self,
        path: str,
        mode: str,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """
        Change permission bits. Only the owner or root may.

        ``mode`` is three octal digits (type flag and special bits kept)
        or a full ten-character string of the node's own type.
        """
        ctx = self._context(as_user, cwd)
        resolved = ctx.resolve(path)
        self._ensure_writable(resolved, 'chmod')
        node = self._walk(ctx, resolved)
        if not ctx.is_root and node.owner != ctx.username:
            raise PermissionDeniedError(resolved, operation='chmod', user=ctx.username, reason='not owner')

        if is_valid_permission_string(mode):
            if mode[0] != ('d' if node.is_directory else '-'):
                raise InvalidModeError(mode, resolved)
            permissions = mode
        else:
            permissions = octal_to_permissions(mode, node.is_directory, node.permissions)

        self._commit(replace_node(self._root, split_path(resolved), node.with_permissions(permissions)))
        self._logger.debug(
            "Changed mode", user=ctx.username,
            context={'path': resolved, 'permissions': permissions}
        )
        return True

    @_operation()
    def chown(
        self,
        path: str,
        owner: str,
        group: Optional[str] = None,
        *,
        as_user: Optional[str] = None,
        cwd: Optional[str] = None
    ) -> bool:
        """Reassign owner and optionally group. Root only; bits untouched."""
        ctx = self._context(as_user, cwd)
        resolved = ctx.resolve(path)
        self._ensure_writable(resolved, 'chown')
        node = self._walk(ctx, resolved)
        if not ctx.is_root:
            raise PermissionDeniedError(resolved, operation='chown', user=ctx.username, reason='root only')

        self._commit(replace_node(self._root, split_path(resolved), node.with_owner(owner, group)))
        self._logger.debug(
            "Changed owner", user=ctx.username,
            context={'path': resolved, 'owner': owner, 'group': group}
        )
        return True

    # Sessions

    def _find_account(self, username: str) -> User:
        """
        Look an account up, preferring /etc/passwd over memory.

        Raises:
            AuthenticationError: If neither knows the user
        """
        file_users = self._sync.read_users(self._root)
        if file_users is not None:
            for user in file_users:
                if user.username == username:
                    return user
        user = self._identities.get_user(username)
        if user is None:
            raise AuthenticationError("User not found", username=username)
        return user

    def _authenticate(self, username: str, password: Optional[str]) -> User:
        user = self._find_account(username)
        if not user.check_password(password):
            raise AuthenticationError("Incorrect password", username=username)
        return user

    @_operation()
    def authenticate(self, username: str, password: Optional[str] = None) -> bool:
        """Check credentials without changing the logged-in user."""
        self._authenticate(username, password)
        return True

    @_operation()
    def login(self, username: str, password: Optional[str] = None) -> bool:
        """Log in; an account without a password accepts any."""
        self._authenticate(username, password)
        self._current_user = username
        self._logger.info("User logged in", user=username)
        self._notify(NotificationType.SUCCESS, 'Auth', f"Logged in as {username}")
        return True

    def logout(self) -> None:
        with self._lock:
            previous = self._current_user
            self._current_user = None
        self._logger.info("User logged out", user=previous)
        self._notify(NotificationType.SUCCESS, 'Auth', 'Logged out')

    # Accounts

    def _with_home(self, root: FileNode, user: User) -> FileNode:
        """``root`` with a home skeleton for ``user`` unless one exists."""
        home_parts = split_path(user.home_dir)
        if not home_parts or node_at(root, home_parts) is not None:
            return root
        parent_parts = home_parts[:-1]
        if parent_parts and node_at(root, parent_parts) is None:
            root = insert_child(root, parent_parts[:-1], FileNode.directory(parent_parts[-1]))
        home = create_user_home(
            home_parts[-1],
            group=self._identities.primary_group_name(user),
            trash_dir=self._config.filesystem.trash_dir,
        )
        return insert_child(root, parent_parts, home)

    @_operation()
    def add_user(self, username: str, full_name: str = '', password: Optional[str] = None) -> bool:
        """Create an account, its home directory and its passwd line."""
        self._ensure_writable('/etc/passwd', 'add user')
        user = self._identities.add_user(username, full_name, password)

        try:
            root = self._with_home(self._root, user)
        except FileSystemException:
            # The account only exists once its home and passwd line do
            self._identities.delete_user(username)
            raise

        self._commit(self._sync.render_into(root), identities_changed=True)
        return True

    @_operation()
    def delete_user(self, username: str) -> bool:
        """Remove an account; its files stay, owned by a name that no longer resolves."""
        self._ensure_writable('/etc/passwd', 'delete user')
        self._identities.delete_user(username)
        self._commit(self._sync.render_into(self._root), identities_changed=True)
        return True

    @_operation()
    def add_group(self, group_name: str, members: Tuple[str, ...] = ()) -> bool:
        self._ensure_writable('/etc/group', 'add group')
        self._identities.add_group(group_name, members)
        self._commit(self._sync.render_into(self._root), identities_changed=True)
        return True

    @_operation()
    def delete_group(self, group_name: str) -> bool:
        self._ensure_writable('/etc/group', 'delete group')
        self._identities.delete_group(group_name)
        self._commit(self._sync.render_into(self._root), identities_changed=True)
        return True

    @_operation()
    def reset_file_system(self) -> bool:
        """Back to factory defaults: tree, accounts, session and stored data."""
        self._ensure_writable('/', 'reset')
        if self._writer is not None:
            self._writer.cancel()
        if self._snapshots is not None:
            self._snapshots.clear()
        self._identities.reset()
        self._current_user = None
        self._commit(default_tree(self._identities.users, self._identities.groups), identities_changed=True)
        self._logger.notice("File system reset to factory defaults")
        self._notify(NotificationType.SUCCESS, 'System', 'System reset to factory defaults')
        return True
