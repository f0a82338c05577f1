"""
File Node Module

The node record of the in-memory tree. Nodes are immutable: every
edit produces a new node, and the tree module rebuilds only the
path from the root to the edited node, so untouched branches keep
their identity between snapshots.

Author: YSNRFD
Version: 1.0.0
"""

import time
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Any, Iterator, List, Tuple

from aurorafs.security.permissions import (
    DEFAULT_DIR_PERMISSIONS,
    DEFAULT_FILE_PERMISSIONS,
)


class NodeType(Enum):
    """Kinds of tree nodes."""
    FILE = 'file'
    DIRECTORY = 'directory'


def new_node_id() -> str:
    """Generate an opaque, unique node identifier."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class FileNode:
    """
    A file or directory in the tree.

    A file has ``content`` and no ``children``; a directory has
    ``children`` (an ordered tuple, names unique) and no ``content``.
    ``id`` survives moves and renames; copies get new ids.
    """

    id: str
    name: str
    type: NodeType
    content: Optional[str] = None
    children: Optional[Tuple['FileNode', ...]] = None
    permissions: Optional[str] = None
    owner: str = 'root'
    group: Optional[str] = None
    size: int = 0
    modified: Optional[float] = None

    def __post_init__(self):
        if self.type == NodeType.FILE:
            if self.children is not None:
                raise ValueError(f"File node '{self.name}' cannot have children")
            if self.content is None:
                raise ValueError(f"File node '{self.name}' needs content")
            return

        if self.content is not None:
            raise ValueError(f"Directory node '{self.name}' cannot have content")
        if self.children is None:
            raise ValueError(f"Directory node '{self.name}' needs children")
        if not isinstance(self.children, tuple):
            object.__setattr__(self, 'children', tuple(self.children))

        names = [child.name for child in self.children]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate child names in '{self.name}'")

    @classmethod
    def file(
        cls,
        name: str,
        content: str = '',
        owner: str = 'root',
        group: Optional[str] = None,
        permissions: str = DEFAULT_FILE_PERMISSIONS,
        modified: Optional[float] = None,
        node_id: Optional[str] = None
    ) -> 'FileNode':
        """Build a new file node."""
        return cls(
            id=node_id or new_node_id(),
            name=name,
            type=NodeType.FILE,
            content=content,
            permissions=permissions,
            owner=owner,
            group=group,
            size=len(content),
            modified=modified if modified is not None else time.time(),
        )

    @classmethod
    def directory(
        cls,
        name: str,
        children: Tuple['FileNode', ...] = (),
        owner: str = 'root',
        group: Optional[str] = None,
        permissions: str = DEFAULT_DIR_PERMISSIONS,
        modified: Optional[float] = None,
        node_id: Optional[str] = None
    ) -> 'FileNode':
        """Build a new directory node."""
        return cls(
            id=node_id or new_node_id(),
            name=name,
            type=NodeType.DIRECTORY,
            children=tuple(children),
            permissions=permissions,
            owner=owner,
            group=group,
            modified=modified if modified is not None else time.time(),
        )

    @property
    def is_directory(self) -> bool:
        return self.type == NodeType.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.type == NodeType.FILE

    # Directory operations

    def get_child(self, name: str) -> Optional['FileNode']:
        """Get a direct child by name."""
        if not self.is_directory:
            return None
        for child in self.children:
            if child.name == name:
                return child
        return None

    def has_child(self, name: str) -> bool:
        return self.get_child(name) is not None

    def with_children(self, children) -> 'FileNode':
        return replace(self, children=tuple(children))

    def with_child_added(self, node: 'FileNode') -> 'FileNode':
        """Append a child; raises ValueError on a name clash."""
        return self.with_children(self.children + (node,))

    def with_child_removed(self, name: str) -> 'FileNode':
        return self.with_children(c for c in self.children if c.name != name)

    def with_child_replaced(self, name: str, node: 'FileNode') -> 'FileNode':
        return self.with_children(node if c.name == name else c for c in self.children)

    # Attribute edits

    def with_content(self, content: str, modified: Optional[float] = None) -> 'FileNode':
        return replace(
            self,
            content=content,
            size=len(content),
            modified=modified if modified is not None else time.time(),
        )

    def renamed(self, name: str) -> 'FileNode':
        return replace(self, name=name)

    def with_permissions(self, permissions: str) -> 'FileNode':
        return replace(self, permissions=permissions)

    def with_owner(self, owner: Optional[str] = None, group: Optional[str] = None) -> 'FileNode':
        return replace(
            self,
            owner=owner if owner else self.owner,
            group=group if group else self.group,
        )

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Convert the subtree to plain JSON-compatible data."""
        data: dict[str, Any] = {
            'id': self.id,
            'name': self.name,
            'type': self.type.value,
            'owner': self.owner,
        }
        if self.permissions is not None:
            data['permissions'] = self.permissions
        if self.group is not None:
            data['group'] = self.group
        if self.modified is not None:
            data['modified'] = self.modified
        if self.is_file:
            data['content'] = self.content
            data['size'] = self.size
        else:
            data['children'] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'FileNode':
        """
        Rebuild a subtree from stored data.

        Missing ids are generated; a stored file without content gets
        an empty one, a directory without children an empty list.

        Raises:
            ValueError: On an unknown node type or duplicate sibling names
        """
        node_type = NodeType(data.get('type', 'file'))
        common = dict(
            id=data.get('id') or new_node_id(),
            name=data['name'],
            type=node_type,
            permissions=data.get('permissions'),
            owner=data.get('owner') or 'root',
            group=data.get('group'),
            modified=_parse_timestamp(data.get('modified')),
        )
        if node_type == NodeType.FILE:
            content = data.get('content') or ''
            return cls(content=content, size=len(content), **common)
        children = tuple(cls.from_dict(child) for child in data.get('children') or [])
        return cls(children=children, **common)


def _parse_timestamp(value: Any) -> Optional[float]:
    """Stored timestamps are epoch floats; older snapshots used ISO strings."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).timestamp()
    except ValueError:
        return None


def iter_tree(root: FileNode, path: str = '/') -> Iterator[Tuple[str, FileNode]]:
    """Yield ``(absolute_path, node)`` for every node, depth first."""
    yield path, root
    if root.is_directory:
        for child in root.children:
            child_path = f"{path.rstrip('/')}/{child.name}"
            yield from iter_tree(child, child_path)


def find_node_and_parent(
    root: FileNode,
    node_id: str
) -> Optional[Tuple[FileNode, FileNode, List[str]]]:
    """
    Find a node by id.

    Returns:
        ``(node, parent, parent_parts)`` or None when the id is absent
        or belongs to the root itself (which has no parent).
    """
    stack: List[Tuple[FileNode, List[str]]] = [(root, [])]
    while stack:
        current, parts = stack.pop()
        if not current.is_directory:
            continue
        for child in current.children:
            if child.id == node_id:
                return child, current, parts
            if child.is_directory:
                stack.append((child, parts + [child.name]))
    return None


def is_descendant(node: FileNode, target_id: str) -> bool:
    """True if ``target_id`` names a node strictly inside ``node``."""
    if not node.is_directory:
        return False
    for child in node.children:
        if child.id == target_id or is_descendant(child, target_id):
            return True
    return False


def clone_subtree(
    node: FileNode,
    owner: Optional[str] = None,
    group: Optional[str] = None,
    modified: Optional[float] = None
) -> FileNode:
    """
    Deep copy a subtree with fresh ids.

    ``owner``/``group``/``modified`` override the originals on every
    copied node when given.
    """
    children = None
    if node.is_directory:
        children = tuple(clone_subtree(c, owner, group, modified) for c in node.children)
    return replace(
        node,
        id=new_node_id(),
        children=children,
        owner=owner or node.owner,
        group=group or node.group,
        modified=modified if modified is not None else node.modified,
    )


def ensure_unique_ids(root: FileNode) -> Tuple[FileNode, int]:
    """
    Reassign ids that collide with an earlier node in depth-first order.

    Returns:
        The repaired tree and the number of ids that were replaced
    """
    seen: set[str] = set()
    repaired = 0

    def visit(node: FileNode) -> FileNode:
        nonlocal repaired
        node_id = node.id
        if node_id in seen:
            node_id = new_node_id()
            repaired += 1
        seen.add(node_id)
        children = None
        if node.is_directory:
            children = tuple(visit(c) for c in node.children)
        unchanged_children = children is None or all(
            a is b for a, b in zip(children, node.children)
        )
        if node_id == node.id and unchanged_children:
            return node
        return replace(node, id=node_id, children=children)

    return visit(root), repaired
