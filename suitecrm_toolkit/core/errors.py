"""Error taxonomy for the SuiteCRM toolkit."""

from typing import Any


class ProtocolError(Exception):
    """
    Base error for everything raised while talking to SuiteCRM.

    Also raised directly when a response body cannot be decoded or the
    server answers with a fault envelope that has no more specific meaning.
    """

    def __init__(
        self,
        message: str,
        response: dict[str, Any] | None = None,
        module: str | None = None,
    ):
        super().__init__(message)
        self.response = response
        self.module = module


class CRMConnectionError(ProtocolError):
    """Raised on transport failures and non-200 HTTP responses."""

    def __init__(
        self,
        message: str,
        response: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, response=response)
        self.status_code = status_code


class AuthenticationError(ProtocolError):
    """Raised when login fails or a call is made without a session."""
    pass


class ValidationError(ProtocolError):
    """Raised when field, relationship or business rules reject input."""

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        module: str | None = None,
        response: dict[str, Any] | None = None,
    ):
        super().__init__(message, response=response, module=module)
        self.errors = list(errors or [])

    def __str__(self) -> str:
        message = super().__str__()
        if not self.errors:
            return message
        return f"{message}: " + "; ".join(self.errors)


class RecordNotFoundError(ProtocolError):
    """Raised when the server reports that a requested record does not exist."""

    def __init__(
        self,
        message: str,
        module: str | None = None,
        record_id: str | None = None,
        response: dict[str, Any] | None = None,
    ):
        super().__init__(message, response=response, module=module)
        self.record_id = record_id


class ConfigError(Exception):
    """Raised when client configuration is missing or invalid."""
    pass
