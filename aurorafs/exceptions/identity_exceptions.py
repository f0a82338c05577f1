"""
Identity Exceptions

Exceptions related to users, groups, their textual /etc files and
authentication.

Author: YSNRFD
Version: 1.0.0
"""

from typing import Optional, Any


class IdentityException(Exception):
    """
    Base exception for all identity-related errors.

    Attributes:
        message: Human-readable error description
        error_code: Numeric error code for programmatic handling
        context: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or 5000
        self.context = context or {}

    def __str__(self) -> str:
        return f"[Error {self.error_code}] {self.message}"


class IdentityParseError(IdentityException):
    """
    A passwd or group record has the wrong shape.

    Example:
        >>> raise IdentityParseError("expected 7 fields", line_number=3, line="bob:x")
    """

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        line: Optional[str] = None,
        source: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if line_number is not None:
            ctx["line_number"] = line_number
        if source:
            ctx["source"] = source
        if line_number is not None:
            message = f"{message} (line {line_number})"
        super().__init__(
            message=message,
            error_code=5001,
            context=ctx
        )
        self.line_number = line_number
        self.line = line
        self.source = source


class IdentityExistsError(IdentityException):
    """A user or group with this name already exists."""

    def __init__(
        self,
        name: str,
        kind: str = "user",
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        ctx["name"] = name
        super().__init__(
            message=f"{kind.capitalize()} '{name}' already exists",
            error_code=5002,
            context=ctx
        )
        self.name = name
        self.kind = kind


class IdentityNotFoundError(IdentityException):
    """No user or group with this name exists."""

    def __init__(
        self,
        name: str,
        kind: str = "user",
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        ctx["name"] = name
        super().__init__(
            message=f"{kind.capitalize()} '{name}' not found",
            error_code=5003,
            context=ctx
        )
        self.name = name
        self.kind = kind


class ProtectedIdentityError(IdentityException):
    """
    Reserved accounts and groups cannot be deleted.

    Example:
        >>> raise ProtectedIdentityError("root")
    """

    def __init__(
        self,
        name: str,
        kind: str = "user",
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        ctx["name"] = name
        super().__init__(
            message=f"Cannot delete protected {kind} '{name}'",
            error_code=5004,
            context=ctx
        )
        self.name = name
        self.kind = kind


class InvalidIdentityError(IdentityException):
    """A field value cannot be stored in the colon-delimited files."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if field_name:
            ctx["field"] = field_name
        super().__init__(
            message=message,
            error_code=5005,
            context=ctx
        )
        self.field_name = field_name


class AuthenticationError(IdentityException):
    """
    Authentication failure.

    Raised for an unknown user or a wrong password.

    Example:
        >>> raise AuthenticationError("Incorrect password", username="guest")
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        username: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if username:
            ctx["username"] = username
        super().__init__(
            message=message,
            error_code=5006,
            context=ctx
        )
        self.username = username
