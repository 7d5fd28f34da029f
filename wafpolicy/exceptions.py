"""Custom exception types for the Front Door firewall policy adapter.

This module defines the exception hierarchy raised by the adapter, enabling
precise error handling and contextual error messages for the host framework.

Exception Hierarchy:
    FrontDoorWafError (base)
    ├── ValidationError - Schema constraint violated before any remote call
    │   └── ResourceIdParseError - Durable identifier could not be parsed
    ├── RemoteCallError - Management API rejected or failed an operation
    │   └── NotFound - Remote object does not exist (HTTP 404)
    ├── NotFoundAfterCreate - Post-write read-back returned no identifier
    ├── ResourceAlreadyExistsError - Create hit an unmanaged existing policy
    ├── ConfigurationError - Adapter settings could not be loaded
    └── SourceParsingError - Terraform source files could not be parsed
"""

from typing import Any, Dict, Optional


class FrontDoorWafError(Exception):
    """Base class of every error the adapter and its command line raise.

    Attributes:
        message: What went wrong, phrased for the person running the command
        context: Identifies the call that failed. Adapter errors always carry
            ``operation``, ``name`` and ``resource_group``; decoding errors add
            the attribute path under ``field``.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def __str__(self) -> str:
        # Unknown parts of the identity (e.g. the resource group of an
        # unparseable ID) are left out
        details = [f"{k}={v}" for k, v in self.context.items() if v is not None]
        if not details:
            return self.message
        return f"{self.message} [{', '.join(details)}]"


class ValidationError(FrontDoorWafError):
    """Raised when configuration violates the resource schema.

    Examples:
        - More than 100 custom rules
        - Unknown action, operator or transform name
        - Both match_variable and selector set on a match condition
    """

    pass


class ResourceIdParseError(ValidationError):
    """Raised when a durable Azure resource ID cannot be parsed."""

    pass


class RemoteCallError(FrontDoorWafError):
    """Raised when the management API rejects or fails to complete a call.

    Attributes:
        status_code: HTTP status of the failing response, if any
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, context)
        self.status_code = status_code


class NotFound(RemoteCallError):
    """Raised when the remote policy does not exist.

    Delete treats this as success; read and update surface it.
    """

    pass


class NotFoundAfterCreate(FrontDoorWafError):
    """Raised when the read-back after an upsert carries no identifier."""

    pass


class ResourceAlreadyExistsError(FrontDoorWafError):
    """Raised when creating a policy that already exists remotely.

    The existing ID is available as ``resource_id`` so it can be imported.
    """

    def __init__(
        self,
        message: str,
        resource_id: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.resource_id = resource_id


class ConfigurationError(FrontDoorWafError):
    """Raised when adapter settings are missing or invalid."""

    pass


class SourceParsingError(FrontDoorWafError):
    """Raised when Terraform source parsing fails.

    Examples:
        - Invalid HCL2 syntax
        - Resource block without a label
    """

    pass
