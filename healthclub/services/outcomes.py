# healthclub/services/outcomes.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class SideEffectOutcome:
    """
    Result of a best-effort step that runs after a primary write succeeded.

    `attempted=False` means the step did not apply (e.g. no next due date).
    A failed step never changes the primary result; callers report it.
    """

    attempted: bool = False
    ok: bool = False
    error: Optional[str] = None
    payload: Any = None

    @classmethod
    def skipped(cls) -> "SideEffectOutcome":
        return cls(attempted=False, ok=False)

    @classmethod
    def succeeded(cls, payload: Any = None) -> "SideEffectOutcome":
        return cls(attempted=True, ok=True, payload=payload)

    @classmethod
    def failed(cls, error: str) -> "SideEffectOutcome":
        return cls(attempted=True, ok=False, error=error)
