from __future__ import annotations

from dataclasses import dataclass


class LerbError(RuntimeError):
    pass


class TransportError(LerbError):
    """Contacting the Bot API failed: network, HTTP status or bad payload."""

    def __init__(self, message: str, *, method: str | None = None) -> None:
        super().__init__(message)
        self.method = method


class ApiError(TransportError):
    """The Bot API answered with ``ok: false``."""

    def __init__(
        self,
        description: str,
        *,
        method: str | None = None,
        error_code: int | None = None,
    ) -> None:
        super().__init__(description, method=method)
        self.description = description
        self.error_code = error_code


class CredentialError(LerbError):
    pass


class ActionError(LerbError):
    """An advisory action (e.g. deleting a message) did not go through."""

    def __init__(self, message: str, *, action: str) -> None:
        super().__init__(message)
        self.action = action


@dataclass(frozen=True, slots=True)
class ActionResult:
    ok: bool
    error: ActionError | None = None

    @classmethod
    def success(cls) -> ActionResult:
        return cls(ok=True)

    @classmethod
    def suppressed(cls, error: ActionError) -> ActionResult:
        return cls(ok=False, error=error)
