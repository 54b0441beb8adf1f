from autocrm.models.order import OrderStatus
from autocrm.services.errors import DuplicateAllocation, InvalidTransition

# completed is terminal: bonuses are never reversed by a later transition.
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.pending: frozenset({OrderStatus.in_progress, OrderStatus.completed, OrderStatus.cancelled}),
    OrderStatus.in_progress: frozenset({OrderStatus.pending, OrderStatus.completed, OrderStatus.cancelled}),
    OrderStatus.cancelled: frozenset({OrderStatus.pending}),
    OrderStatus.completed: frozenset(),
}

COMPLETABLE_STATUSES = tuple(
    status for status, targets in ALLOWED_TRANSITIONS.items() if OrderStatus.completed in targets
)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[OrderStatus(current)]


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise unless moving from current to target is allowed."""
    current = OrderStatus(current)
    target = OrderStatus(target)
    if current == OrderStatus.completed and target == OrderStatus.completed:
        raise DuplicateAllocation("Order is already completed")
    if not can_transition(current, target):
        raise InvalidTransition(current, target)
