"""
Path Resolver Module

Turns user-typed paths into normalized absolute paths. Resolution is
purely textual and never looks at the tree:

1. a leading ``~`` expands to the home directory
2. a well-known folder (Desktop, Documents, ...) at the start of an
   absolute path is moved under the home directory
3. relative paths are joined onto the working directory
4. ``.`` is dropped, ``..`` pops a segment (clamped at ``/``)

Author: YSNRFD
Version: 1.0.0
"""

from dataclasses import dataclass
from typing import Optional, List, Tuple


WELL_KNOWN_FOLDERS = ('Desktop', 'Documents', 'Downloads', 'Pictures', 'Music', 'Videos')


@dataclass
class ParsedPath:
    """A parsed path with its components."""
    is_absolute: bool
    components: List[str]

    def __str__(self) -> str:
        if self.is_absolute:
            return '/' + '/'.join(self.components)
        return '/'.join(self.components) if self.components else '.'


class PathResolver:
    """
    Resolves and manipulates filesystem paths.

    Example:
        >>> PathResolver.resolve('~/Documents/../Pictures/img.png', '/var', '/home/bob')
        '/home/bob/Pictures/img.png'
    """

    @staticmethod
    def parse(path: str) -> ParsedPath:
        """Split a path into components, dropping empty and ``.`` parts."""
        is_absolute = path.startswith('/')
        components = [c for c in path.split('/') if c and c != '.']
        return ParsedPath(is_absolute=is_absolute, components=components)

    @staticmethod
    def normalize(path: str) -> str:
        """
        Normalize a path by resolving . and ..

        ``..`` above the root is a silent no-op.
        """
        parsed = PathResolver.parse(path)

        result: List[str] = []
        for component in parsed.components:
            if component == '..':
                if result:
                    result.pop()
            else:
                result.append(component)

        if parsed.is_absolute:
            return '/' + '/'.join(result)
        return '/'.join(result) if result else '.'

    @staticmethod
    def join(*paths: str) -> str:
        """Join path components; an absolute component restarts the path."""
        if not paths:
            return '.'

        result = paths[0]
        for path in paths[1:]:
            if path.startswith('/'):
                result = path
            else:
                result = result.rstrip('/') + '/' + path

        return PathResolver.normalize(result)

    @staticmethod
    def expand_home(path: str, home: str) -> str:
        """Expand ``~`` and ``~/...``; ``~name`` is left alone."""
        if path == '~':
            return home
        if path.startswith('~/'):
            return home.rstrip('/') + path[1:]
        return path

    @staticmethod
    def rewrite_well_known(path: str, home: str) -> str:
        """Root ``/Documents/...`` style paths under the home directory."""
        if not path.startswith('/'):
            return path
        first, _, rest = path[1:].partition('/')
        if first not in WELL_KNOWN_FOLDERS:
            return path
        rewritten = f"{home.rstrip('/')}/{first}"
        return f"{rewritten}/{rest}" if rest else rewritten

    @staticmethod
    def resolve(path: str, cwd: str = '/', home: Optional[str] = None) -> str:
        """
        Resolve a path to a normalized absolute path.

        Args:
            path: Path as typed by the caller
            cwd: Working directory for relative paths
            home: Home directory for ``~`` and well-known folders
        """
        if home is not None:
            path = PathResolver.expand_home(path, home)
            path = PathResolver.rewrite_well_known(path, home)

        if not path.startswith('/'):
            path = cwd.rstrip('/') + '/' + path

        return PathResolver.normalize(path)

    @staticmethod
    def dirname(path: str) -> str:
        normalized = PathResolver.normalize(path)

        if '/' not in normalized:
            return '.'

        if normalized == '/':
            return '/'

        return normalized.rsplit('/', 1)[0] or '/'

    @staticmethod
    def basename(path: str) -> str:
        normalized = PathResolver.normalize(path)

        if normalized == '/':
            return '/'

        if '/' not in normalized:
            return normalized

        return normalized.rsplit('/', 1)[1]

    @staticmethod
    def split(path: str) -> Tuple[str, str]:
        """Split a path into (dirname, basename)."""
        return (PathResolver.dirname(path), PathResolver.basename(path))

    @staticmethod
    def splitext(name: str) -> Tuple[str, str]:
        """
        Split a name into stem and extension.

        A leading dot (``.bashrc``) is not an extension.
        """
        if '.' not in name or name.rfind('.') == 0:
            return (name, '')

        stem, ext = name.rsplit('.', 1)
        return (stem, '.' + ext)

    @staticmethod
    def is_absolute(path: str) -> bool:
        return path.startswith('/')

    @staticmethod
    def is_within(path: str, ancestor: str) -> bool:
        """True if ``path`` is ``ancestor`` or lies below it."""
        if ancestor == '/':
            return True
        return path == ancestor or path.startswith(ancestor.rstrip('/') + '/')
