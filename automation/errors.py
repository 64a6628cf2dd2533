"""
Errors raised by the automation engine.

All of them are recoverable: an operation that raises leaves the store,
receiver or time map exactly as it was before the call.
"""
from __future__ import annotations

from typing import Any, Optional, Tuple


class AutomationError(Exception):
    """Base class for every automation engine error."""


class OutOfRangeError(AutomationError, ValueError):
    def __init__(self, value: float, valid_range: Tuple[float, float], what: str = "value"):
        self.value = value
        self.range = valid_range
        super().__init__(
            f"{what} {value!r} is not in range from {valid_range[0]} to {valid_range[1]}"
        )


class RangeMismatchError(AutomationError):
    def __init__(self, target: Any, source: Any):
        self.target = target
        self.source = source
        super().__init__(
            f"cannot bind a receiver with {target} to a source with {source}"
        )


class CircularReferenceError(AutomationError):
    def __init__(self, owner_id: Any):
        self.owner_id = owner_id
        super().__init__(
            f"binding would make {owner_id} depend on itself"
        )


class ExistenceError(AutomationError, LookupError):
    def __init__(self, what: str, key: Any = None):
        self.key = key
        msg = what if key is None else f"{what}: {key!r}"
        super().__init__(msg)


class OverwriteError(AutomationError):
    def __init__(self, what: str, key: Any = None):
        self.key = key
        msg = what if key is None else f"{what}: {key!r}"
        super().__init__(msg)


class StoreOverflowError(AutomationError, OverflowError):
    def __init__(self, scope: Optional[Any] = None):
        self.scope = scope
        super().__init__(f"no free slot left in store {scope!r} (256 slots)")


class UnboundIdError(AutomationError):
    def __init__(self, gen_id: Any):
        self.gen_id = gen_id
        super().__init__(f"{gen_id} is not bound to a track and cannot be resolved")


class GeneratorTypeError(AutomationError, TypeError):
    """Wrong generator variant or id variant for the requested operation."""


class EmptyNetworkError(AutomationError, ValueError):
    """A combinator with no terms or a zero total weight."""
