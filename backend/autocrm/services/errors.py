"""Errors raised by the order and allocation services.

Routers translate these into HTTP responses; services never swallow them.
"""


class AllocationError(ValueError):
    """Base class for order completion / bonus allocation failures."""


class InvalidInput(AllocationError):
    """Unknown or inactive master, malformed percentages, duplicate workers."""


class InconsistentPercentages(AllocationError):
    """Assignment work percentages cannot form a distribution summing to 100."""


class DuplicateAllocation(AllocationError):
    """The order already carries an allocation; a second one is refused."""


class InvalidTransition(ValueError):
    def __init__(self, current, target, detail: str | None = None):
        self.current = current
        self.target = target
        message = detail or f"Cannot change order status from {_value(current)} to {_value(target)}"
        super().__init__(message)


class OrderLocked(ValueError):
    """Completed orders cannot be edited or deleted."""


class PersistenceFailure(RuntimeError):
    """The database rejected the write; the transaction was rolled back."""


def _value(status) -> str:
    return getattr(status, "value", str(status))
