"""
Filesystem Exceptions

Exceptions raised by the filesystem tree, path walking and the
permission engine. The public VFS surface converts them into
``False`` / ``None`` results; internal layers raise them.

Author: YSNRFD
Version: 1.0.0
"""

from typing import Optional, Any


class FileSystemException(Exception):
    """
    Base exception for all filesystem-related errors.

    Attributes:
        message: Human-readable error description
        path: File path associated with the error (if applicable)
        error_code: Numeric error code for programmatic handling
        context: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        error_code: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.error_code = error_code or 4000
        self.context = context or {}
        if path:
            self.context["path"] = path

    def __str__(self) -> str:
        base = f"[Error {self.error_code}] {self.message}"
        if self.path:
            base = f"{base} (path={self.path})"
        return base


class NodeNotFoundError(FileSystemException):
    """
    No node is reachable at the given path.

    Raised both when the node does not exist and when an intermediate
    directory cannot be traversed by the acting user; callers cannot
    tell the two apart.

    Example:
        >>> raise NodeNotFoundError("/home/bob/secret.txt")
    """

    def __init__(
        self,
        path: str,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=f"No such file or directory: {path}",
            path=path,
            error_code=4001,
            context=context
        )


class NodeExistsError(FileSystemException):
    """
    The target name is already taken in the destination directory.

    Example:
        >>> raise NodeExistsError("/tmp/a.txt")
    """

    def __init__(
        self,
        path: str,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=f"File exists: {path}",
            path=path,
            error_code=4002,
            context=context
        )


class PermissionDeniedError(FileSystemException):
    """
    The acting user lacks the permission bit the operation needs.

    Example:
        >>> raise PermissionDeniedError("/root", operation="read", user="guest")
    """

    def __init__(
        self,
        path: str,
        operation: Optional[str] = None,
        user: Optional[str] = None,
        reason: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        if user is not None:
            ctx["user"] = user
        if reason:
            ctx["reason"] = reason
        super().__init__(
            message=f"Permission denied: {path}",
            path=path,
            error_code=4003,
            context=ctx
        )
        self.operation = operation
        self.user = user
        self.reason = reason


class NotAFileError(FileSystemException):
    """
    Path is not a regular file.

    Example:
        >>> raise NotAFileError("/home/user/Documents")
    """

    def __init__(
        self,
        path: str,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=f"Not a file: {path}",
            path=path,
            error_code=4008,
            context=context
        )


class NotADirectoryError(FileSystemException):
    """
    Path is not a directory.

    Example:
        >>> raise NotADirectoryError("/etc/passwd")
    """

    def __init__(
        self,
        path: str,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=f"Not a directory: {path}",
            path=path,
            error_code=4009,
            context=context
        )


class MoveCycleError(FileSystemException):
    """
    A directory would end up inside itself or its own subtree.

    Example:
        >>> raise MoveCycleError("/home/user/a", destination="/home/user/a/b")
    """

    def __init__(
        self,
        path: str,
        destination: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if destination:
            ctx["destination"] = destination
        super().__init__(
            message=f"Cannot move a directory into itself: {path}",
            path=path,
            error_code=4010,
            context=ctx
        )
        self.destination = destination


class InvalidModeError(FileSystemException):
    """
    A chmod mode is neither three octal digits nor a valid symbolic string.

    Example:
        >>> raise InvalidModeError("9x9")
    """

    def __init__(
        self,
        mode: str,
        path: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        ctx["mode"] = mode
        super().__init__(
            message=f"Invalid mode: {mode!r}",
            path=path,
            error_code=4011,
            context=ctx
        )
        self.mode = mode


class InvalidNameError(FileSystemException):
    """
    A node name is empty, reserved, or contains a path separator.
    """

    def __init__(
        self,
        name: str,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        ctx["name"] = name
        super().__init__(
            message=f"Invalid file name: {name!r}",
            error_code=4012,
            context=ctx
        )
        self.name = name


class ReadOnlyFileSystemError(FileSystemException):
    """
    The system is in degraded (integrity-compromised) mode and refuses writes.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        super().__init__(
            message="Read-only file system",
            path=path,
            error_code=4013,
            context=ctx
        )
        self.operation = operation
