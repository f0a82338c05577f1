"""
Migration Module

Reconciles stored data with the current release at load time,
before anything else touches the loaded tree.

When the stored version is behind, the stored tree and account
lists are merged with freshly generated defaults. The merge only
ever adds: a default path, user or group missing from storage is
added; anything already stored is kept exactly as it is.

Every load, regardless of version, also:
- gives every node a unique id
- restores the password of a default account stored without one

Author: YSNRFD
Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import Optional, Any, Iterable, List, Tuple

from aurorafs.filesystem.defaults import default_tree
from aurorafs.filesystem.node import FileNode, ensure_unique_ids
from aurorafs.logger import get_logger
from aurorafs.storage import Snapshot
from aurorafs.users.identity import User, Group, default_users, default_groups


def merge_trees(
    stored: FileNode,
    defaults: FileNode,
    path: str = '/'
) -> Tuple[FileNode, List[str]]:
    """
    Add default paths missing from ``stored``.

    Children present in both are kept from ``stored``; matching
    directories are merged recursively. New children are appended
    after the stored ones.

    Returns:
        The merged tree (``stored`` itself if nothing was added) and
        the added paths
    """
    if not stored.is_directory or not defaults.is_directory:
        return stored, []

    added: List[str] = []
    children = list(stored.children)
    changed = False

    for default_child in defaults.children:
        child_path = f"{path.rstrip('/')}/{default_child.name}"
        index = next(
            (i for i, c in enumerate(children) if c.name == default_child.name),
            None
        )
        if index is None:
            children.append(default_child)
            added.append(child_path)
            changed = True
            continue

        merged, merged_added = merge_trees(children[index], default_child, child_path)
        if merged is not children[index]:
            children[index] = merged
            added.extend(merged_added)
            changed = True

    if not changed:
        return stored, []
    return stored.with_children(children), added


def merge_users(stored: Iterable[User], defaults: Iterable[User]) -> Tuple[List[User], List[str]]:
    """Append default accounts whose username is not stored."""
    users = [u.copy() for u in stored]
    known = {u.username for u in users}
    added = []
    for user in defaults:
        if user.username not in known:
            users.append(user.copy())
            added.append(user.username)
    return users, added


def merge_groups(stored: Iterable[Group], defaults: Iterable[Group]) -> Tuple[List[Group], List[str]]:
    """Append default groups whose name is not stored."""
    groups = [g.copy() for g in stored]
    known = {g.group_name for g in groups}
    added = []
    for group in defaults:
        if group.group_name not in known:
            groups.append(group.copy())
            added.append(group.group_name)
    return groups, added


def heal_passwords(users: Iterable[User], defaults: Iterable[User]) -> Tuple[List[User], List[str]]:
    """
    Restore default passwords on default accounts stored without one.

    Older releases could persist these accounts with an empty or ``x``
    password, which left them open.
    """
    by_name = {u.username: u for u in defaults}
    healed_users = []
    healed = []
    for user in users:
        user = user.copy()
        default = by_name.get(user.username)
        if default is not None and default.has_password and not user.has_password:
            user.password = default.password
            healed.append(user.username)
        healed_users.append(user)
    return healed_users, healed


@dataclass
class MigrationReport:
    """What a load-time migration did."""
    from_version: Optional[int]
    to_version: int
    fresh: bool = False
    merged: bool = False
    added_paths: List[str] = field(default_factory=list)
    added_users: List[str] = field(default_factory=list)
    added_groups: List[str] = field(default_factory=list)
    healed_users: List[str] = field(default_factory=list)
    repaired_ids: int = 0
    fallbacks: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(
            self.merged or self.added_paths or self.added_users or self.added_groups
            or self.healed_users or self.repaired_ids or self.fallbacks
            or self.from_version != self.to_version
        )


@dataclass
class MigrationResult:
    root: FileNode
    users: List[User]
    groups: List[Group]
    report: MigrationReport

    def to_snapshot(self) -> Snapshot:
        return Snapshot(
            tree=self.root.to_dict(),
            users=[u.to_dict() for u in self.users],
            groups=[g.to_dict() for g in self.groups],
            version=self.report.to_version,
        )


class Migrator:
    """
    Turns a raw snapshot into a current tree and account lists.

    Unreadable parts of the snapshot fall back to defaults with a
    warning; migration never fails the load.

    Example:
        >>> result = Migrator(current_version=2).migrate(snapshot)
        >>> result.report.added_paths
        ['/etc/motd']
    """

    def __init__(self, current_version: int):
        self._current_version = current_version
        self._logger = get_logger('migration')

    @property
    def current_version(self) -> int:
        return self._current_version

    def _load_list(self, data: Optional[List[Any]], factory, kind: str, report: MigrationReport):
        if data is None:
            return None
        try:
            records = [factory(item) for item in data]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            self._logger.warning(
                f"Stored {kind} corrupted, reverting to defaults",
                context={'error': str(e)}
            )
            report.fallbacks.append(kind)
            return None
        if not records:
            self._logger.warning(f"Stored {kind} empty, reverting to defaults")
            report.fallbacks.append(kind)
            return None
        return records

    def _load_tree(self, data: Optional[dict[str, Any]], report: MigrationReport) -> Optional[FileNode]:
        if data is None:
            return None
        try:
            root = FileNode.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            self._logger.warning(
                "Stored filesystem corrupted, reverting to defaults",
                context={'error': str(e)}
            )
            report.fallbacks.append('tree')
            return None
        if not root.is_directory:
            self._logger.warning("Stored filesystem root is not a directory, reverting to defaults")
            report.fallbacks.append('tree')
            return None
        return root

    def migrate(self, snapshot: Optional[Snapshot]) -> MigrationResult:
        snapshot = snapshot or Snapshot()
        report = MigrationReport(from_version=snapshot.version, to_version=self._current_version)

        root = self._load_tree(snapshot.tree, report)
        users = self._load_list(snapshot.users, User.from_dict, 'users', report)
        groups = self._load_list(snapshot.groups, Group.from_dict, 'groups', report)

        report.fresh = root is None and users is None and groups is None
        if users is None:
            users = default_users()
        if groups is None:
            groups = default_groups()

        behind = snapshot.version is None or snapshot.version < self._current_version
        if root is None:
            root = default_tree(users, groups)
        elif behind:
            root, report.added_paths = merge_trees(root, default_tree(users, groups))
            report.merged = True

        if behind and not report.fresh:
            users, report.added_users = merge_users(users, default_users())
            groups, report.added_groups = merge_groups(groups, default_groups())
            report.merged = True

        root, report.repaired_ids = ensure_unique_ids(root)
        users, report.healed_users = heal_passwords(users, default_users())

        for username in report.healed_users:
            self._logger.info("Restored default password", context={'username': username})
        if report.repaired_ids:
            self._logger.warning(
                "Reassigned duplicate node ids",
                context={'count': report.repaired_ids}
            )
        if report.merged:
            self._logger.notice(
                "Migrated stored data",
                context={
                    'from': report.from_version,
                    'to': report.to_version,
                    'paths': len(report.added_paths),
                    'users': len(report.added_users),
                    'groups': len(report.added_groups),
                }
            )

        return MigrationResult(root=root, users=users, groups=groups, report=report)
