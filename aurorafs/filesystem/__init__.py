"""
AuroraFS Virtual File System Module

Provides the in-memory filesystem tree:
- Immutable file / directory nodes
- Path resolution (~, ., .., well-known folders)
- Path-copying structural edits
- The VirtualFileSystem facade with permission enforcement
"""

from .node import FileNode, NodeType, iter_tree, find_node_and_parent
from .path_resolver import PathResolver, ParsedPath, WELL_KNOWN_FOLDERS
from .tree import split_path, join_path, node_at
from .defaults import default_tree, create_user_home
from .vfs import VirtualFileSystem, OperationContext

__all__ = [
    # Nodes
    'FileNode',
    'NodeType',
    'iter_tree',
    'find_node_and_parent',
    # Path Resolver
    'PathResolver',
    'ParsedPath',
    'WELL_KNOWN_FOLDERS',
    # Tree
    'split_path',
    'join_path',
    'node_at',
    'default_tree',
    'create_user_home',
    # VFS
    'VirtualFileSystem',
    'OperationContext',
]
