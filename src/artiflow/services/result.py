"""ServiceResult and ServiceError - what every service operation returns.

Not-found and bad input are ordinary negative results (``ok=False``), not
exceptions.  The CLI renders both shapes; ``error.code`` is stable and
machine-readable.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# Stable error codes.
NOT_FOUND = "NOT_FOUND"
INVALID_INPUT = "INVALID_INPUT"
INVALID_PATH = "INVALID_PATH"
STORAGE_IO = "STORAGE_IO"


class ServiceError(BaseModel):
    """Why an operation failed."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one service operation.

    Attributes:
        op: Operation name, e.g. ``"store_artifact"``.
        data: Payload on success (validated by a contract model).
        meta: Timing and other diagnostics, set when ``--verbose``.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: str,
        message: str,
        **detail: Any,
    ) -> ServiceResult:
        return cls(ok=False, op=op, error=ServiceError(code=code, message=message, detail=detail))
