"""
Result type for best-effort operations.

Side effects that run after money has moved (journal posting,
notifications) must not undo the committed movement. They return a Result
and the caller decides how to report an Err.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    error: Exception
    action: str = ""

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def attempt(action: str, fn: Callable[..., T], *args, **kwargs) -> Result:
    """Run a non-critical operation, capturing its failure as an Err."""
    try:
        return Ok(fn(*args, **kwargs))
    except Exception as exc:
        return Err(error=exc, action=action)


def log_if_failed(result: Result, logger: logging.Logger, **context) -> Result:
    if isinstance(result, Err):
        logger.warning(
            "%s failed: %s", result.action, result.error,
            extra={"action": result.action, **context},
        )
    return result
