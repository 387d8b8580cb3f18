# arriendo/domain/errors.py
from __future__ import annotations

from typing import Any, Optional


class ArriendoError(Exception):
    """
    Base for every user-facing rejection raised by the contract core.

    All of these are raised before any write and are non-retriable: the caller
    must fix the precondition and act again.
    """

    kind: str = "ArriendoError"
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.message}


class NotEntitled(ArriendoError):
    kind = "NotEntitled"
    status_code = 402


class KYCRequired(ArriendoError):
    kind = "KYCRequired"
    status_code = 428


class Forbidden(ArriendoError):
    kind = "Forbidden"
    status_code = 403


class NotFound(ArriendoError):
    kind = "NotFound"
    status_code = 404


class Conflict(ArriendoError):
    kind = "Conflict"
    status_code = 409


class InvalidState(ArriendoError):
    kind = "InvalidState"
    status_code = 409

    def __init__(self, message: str, *, expected: Any = None, actual: Optional[str] = None) -> None:
        if isinstance(expected, (list, tuple, set, frozenset)):
            expected_s = ", ".join(sorted(str(x) for x in expected))
        else:
            expected_s = str(expected) if expected is not None else None

        if expected_s is not None or actual is not None:
            message = f"{message} (esperado: {expected_s}; actual: {actual})"

        super().__init__(message)
        self.expected = expected_s
        self.actual = actual

    def as_dict(self) -> dict[str, Any]:
        out = super().as_dict()
        out["expected"] = self.expected
        out["actual"] = self.actual
        return out


class ValidationError(ArriendoError):
    kind = "ValidationError"
    status_code = 422
