#!/usr/bin/env python3
# CUI // SP-CTI
"""Blueprint MCP: Structured Exception Hierarchy.

Every error raised by the catalog, sandbox and retrieval layers derives from
BlueprintError so callers can tell "fix your input" (ValidationError,
InvalidUriError) apart from "access denied" (SecurityError) and "nothing
there" (BlueprintFileNotFoundError). A query that finds zero catalog matches
is NOT an error; tools render it as a message.

Usage:
    from blueprint_mcp.resilience.errors import SecurityError, ValidationError

    raise ValidationError("Blueprint name must be a non-empty string")
"""


class BlueprintError(Exception):
    """Base exception for all blueprint errors.

    Attributes:
        code: Stable machine-readable error code (e.g. "INVALID_URI").
        service: Name of the component that raised the error.
        retryable: Whether the caller should retry the operation.
    """

    code = "BLUEPRINT_ERROR"

    def __init__(self, message: str, service: str = "", retryable: bool = False):
        super().__init__(message)
        self.message = message
        self.service = service
        self.retryable = retryable

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"type": self.kind, "code": self.code, "message": self.message}


class ValidationError(BlueprintError):
    """Malformed input rejected before any catalog or filesystem access.

    Examples: bad blueprint-name format, bad path syntax, missing field.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, service: str = "validation"):
        super().__init__(message, service=service, retryable=False)


class SecurityError(BlueprintError):
    """Resolved path escapes the workspace root. Hard deny."""

    code = "SECURITY_ERROR"

    def __init__(self, message: str, service: str = "sandbox"):
        super().__init__(message, service=service, retryable=False)


class InvalidUriError(BlueprintError):
    """URI does not match blueprints://{provider}/{blueprint}/{path}."""

    code = "INVALID_URI"

    def __init__(self, uri: str):
        super().__init__(f"Invalid blueprint URI: {uri}", service="retrieval")
        self.uri = uri


class BlueprintFileNotFoundError(BlueprintError):
    """Path is safe and well-formed but no file exists there."""

    code = "FILE_NOT_FOUND"

    def __init__(self, uri: str):
        super().__init__(f"File not found: {uri}", service="retrieval")
        self.uri = uri


class BlueprintNotFoundError(BlueprintError):
    """Blueprint name is not in the catalog."""

    code = "BLUEPRINT_NOT_FOUND"

    def __init__(self, blueprint: str):
        super().__init__(f'Blueprint "{blueprint}" not found', service="catalog")
        self.blueprint = blueprint


class ConfigurationError(BlueprintError):
    """Configuration or catalog seed data is missing or inconsistent."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, config_key: str = ""):
        super().__init__(message, service="config", retryable=False)
        self.config_key = config_key
