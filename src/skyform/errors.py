from typing import Any


class SkyformError(Exception):
    """
    Base class for every error raised by the engine.

    `identity` is set when the error interrupts an operation after the API
    already assigned a key, so callers can persist it.
    """

    identity: Any = None


class TransportError(SkyformError):
    """The request never produced a usable response (network or decode failure)."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"Transport failure on {self.path}: {self.message}"
        return f"Transport failure: {self.message}"


class ApiError(SkyformError):
    """
    Structured error reported by the API for any non-2xx status except 404.
    """

    def __init__(self, status: int, error_type: str, message: str, path: str):
        super().__init__(message)
        self.status = status
        self.error_type = error_type
        self.message = message
        self.path = path

    def __str__(self) -> str:
        return (
            f"Symbiosis: {self.message} "
            f"(status={self.status}, type={self.error_type}, path={self.path})"
        )


class NotFoundError(SkyformError):
    """Raised only by lookups that require the entity to exist."""

    def __init__(self, entity: str, key: Any):
        super().__init__(f"{entity} {key!r} not found")
        self.entity = entity
        self.key = key


class ValidationError(SkyformError):
    """Bad input rejected before any network call."""


class ContractError(SkyformError):
    """A success payload did not match the schema the client expects."""


class ConvergenceTimeout(SkyformError):
    """
    The deadline elapsed while polling for a terminal state.

    `identity` is the key the API assigned (if any) so callers can persist
    it even though the operation did not converge.
    """

    def __init__(
        self,
        entity: str,
        action: str,
        identity: Any = None,
        last_state: str | None = None,
        last_reason: str | None = None,
    ):
        self.entity = entity
        self.action = action
        self.identity = identity
        self.last_state = last_state
        self.last_reason = last_reason
        super().__init__(str(self))

    def __str__(self) -> str:
        target = f"{self.entity} {self.identity!r}" if self.identity else self.entity
        msg = f"Timed out waiting for {target} to converge during {self.action}"
        if self.last_state:
            msg += f" (last observed state: {self.last_state})"
        if self.last_reason:
            msg += f": {self.last_reason}"
        return msg
