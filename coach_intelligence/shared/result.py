"""
Discriminated results returned by every invocation endpoint.

Callers branch on `success`: `Ok` carries the typed payload, `Err` carries
a message and an optional ErrorCode value.
"""

from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel

from coach_intelligence.shared.errors import ErrorCode

T = TypeVar("T")


class Ok(BaseModel, Generic[T]):
    """Successful operation result."""
    success: Literal[True] = True
    data: T


class Err(BaseModel):
    """Failed operation result."""
    success: Literal[False] = False
    error: str
    code: Optional[str] = None
    details: Optional[dict[str, Any]] = None


def err(message: str, code: Optional[ErrorCode] = None, **details: Any) -> Err:
    """Build an Err, keeping details only when given."""
    return Err(
        error=message,
        code=code.value if code else None,
        details=details or None,
    )
