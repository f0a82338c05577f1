"""
Tree Editing Module

Structural edits on an immutable node tree. Each edit rebuilds only
the nodes on the path from the root to the edited node and returns
the new root; every other subtree is shared with the previous root.

None of these functions check permissions.

Author: YSNRFD
Version: 1.0.0
"""

from typing import Callable, Optional, List, Sequence

from aurorafs.exceptions import NodeExistsError, NodeNotFoundError, NotADirectoryError
from aurorafs.filesystem.node import FileNode


def split_path(path: str) -> List[str]:
    """Split an absolute path into its segments."""
    return [part for part in path.split('/') if part]


def join_path(parts: Sequence[str]) -> str:
    return '/' + '/'.join(parts)


def node_at(root: FileNode, parts: Sequence[str]) -> Optional[FileNode]:
    """Walk ``parts`` from ``root``; None if any segment is missing."""
    current = root
    for part in parts:
        current = current.get_child(part)
        if current is None:
            return None
    return current


def update_at(
    root: FileNode,
    parts: Sequence[str],
    edit: Callable[[FileNode], FileNode]
) -> FileNode:
    """
    Apply ``edit`` to the node at ``parts`` and rebuild its ancestors.

    Raises:
        NodeNotFoundError: If the path does not exist
    """
    if not parts:
        return edit(root)

    child = root.get_child(parts[0])
    if child is None:
        raise NodeNotFoundError(join_path(parts))
    new_child = update_at(child, parts[1:], edit)
    if new_child is child:
        return root
    return root.with_child_replaced(parts[0], new_child)


def replace_node(root: FileNode, parts: Sequence[str], node: FileNode) -> FileNode:
    return update_at(root, parts, lambda _: node)


def insert_child(root: FileNode, dir_parts: Sequence[str], child: FileNode) -> FileNode:
    """
    Add ``child`` to the directory at ``dir_parts``.

    Raises:
        NodeNotFoundError: If the directory does not exist
        NotADirectoryError: If the target is a file
        NodeExistsError: If the name is taken
    """
    def add(directory: FileNode) -> FileNode:
        if not directory.is_directory:
            raise NotADirectoryError(join_path(dir_parts))
        if directory.has_child(child.name):
            raise NodeExistsError(join_path([*dir_parts, child.name]))
        return directory.with_child_added(child)

    return update_at(root, dir_parts, add)


def remove_child(root: FileNode, dir_parts: Sequence[str], name: str) -> FileNode:
    """
    Drop the child ``name`` (and its subtree) from a directory.

    Raises:
        NodeNotFoundError: If the directory or the child does not exist
    """
    def drop(directory: FileNode) -> FileNode:
        if not directory.has_child(name):
            raise NodeNotFoundError(join_path([*dir_parts, name]))
        return directory.with_child_removed(name)

    return update_at(root, dir_parts, drop)
