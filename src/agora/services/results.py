"""Result type returned by the transactional membership procedures.

The hosted procedures answer with ``{"success": bool, "message": str}``.
:func:`parse_procedure_result` turns that payload into either
:class:`Succeeded` or :class:`Failed` so callers can branch on the type
instead of poking at a dictionary.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar


class FailureReason(StrEnum):
    """Why a procedure call did not go through."""

    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    TRANSPORT = "transport"


@dataclass(frozen=True)
class Succeeded:
    """The procedure applied its change."""

    message: str
    success: ClassVar[bool] = True


@dataclass(frozen=True)
class Failed:
    """The procedure refused or could not be reached; nothing changed."""

    message: str
    reason: FailureReason = FailureReason.CONFLICT
    success: ClassVar[bool] = False


ProcedureResult = Succeeded | Failed


def _infer_reason(message: str) -> FailureReason:
    lowered = message.lower()
    if "permission" in lowered or "not authorized" in lowered or "sign in" in lowered:
        return FailureReason.UNAUTHORIZED
    if "not found" in lowered:
        return FailureReason.NOT_FOUND
    if "invalid" in lowered:
        return FailureReason.INVALID
    return FailureReason.CONFLICT


def parse_procedure_result(payload: Any) -> ProcedureResult:
    """Build a result from a procedure's JSON answer.

    Raises:
        ValueError: If the payload is not a ``{success, message}`` object.
    """
    if not isinstance(payload, Mapping) or "success" not in payload:
        raise ValueError(f"Malformed procedure result: {payload!r}")

    message = str(payload.get("message") or "")
    if payload["success"] is True:
        return Succeeded(message=message)

    raw_reason = payload.get("reason")
    try:
        reason = FailureReason(raw_reason) if raw_reason else _infer_reason(message)
    except ValueError:
        reason = _infer_reason(message)
    return Failed(message=message, reason=reason)
