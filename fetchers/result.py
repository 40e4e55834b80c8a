"""
Outcome of an isolated sub-operation: either data or the reason it failed.
Lets aggregation tell "genuinely empty" apart from "fetch failed".
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Result:
    ok: bool
    data: Any = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, data: Any) -> "Result":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, reason: str, default: Any = None) -> "Result":
        return cls(ok=False, data=default, reason=reason)

    def unwrap_or(self, default: Any) -> Any:
        return self.data if self.ok else default
