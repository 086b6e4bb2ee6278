"""
Order status state machine.

Orders move forward only:

    PENDING -> IN_PROGRESS -> READY -> {OUT_FOR_DELIVERY, DELIVERED}
    OUT_FOR_DELIVERY -> DELIVERED

CANCELLED is reachable from every non-terminal state. DELIVERED and CANCELLED
are terminal. Entering a status stamps its timestamp field the first time only;
nothing here ever clears one.
"""

from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Optional

from jerktracker.errors import InvalidTransitionError
from jerktracker.models.order import OrderStatus
from jerktracker.timeutil import to_naive_utc, utcnow

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset(
        {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
    ),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

STATUS_TIMESTAMPS: Dict[OrderStatus, str] = {
    OrderStatus.IN_PROGRESS: "preparing_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.OUT_FOR_DELIVERY: "out_for_delivery_at",
    OrderStatus.DELIVERED: "picked_up_at",
    OrderStatus.CANCELLED: "cancelled_at",
}

# Side data that may ride along with a status change
TRANSITION_EXTRA_FIELDS = frozenset(
    {
        "driver_name",
        "delivery_company",
        "notes",
        "estimated_time",
        "actual_time",
        "updated_by_id",
    }
)


def allowed_next(current: OrderStatus) -> FrozenSet[OrderStatus]:
    return TRANSITIONS[OrderStatus.parse(current)]


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return OrderStatus.parse(new) in allowed_next(current)


def is_terminal(status: OrderStatus) -> bool:
    return not allowed_next(status)


def transition(
    order: Mapping[str, Any],
    new_status: OrderStatus,
    extra: Optional[Mapping[str, Any]] = None,
    *,
    now: Optional[datetime] = None,
    enforce: bool = True,
) -> Dict[str, Any]:
    """
    Compute the partial update that moves ``order`` to ``new_status``.

    The returned dict is meant to be handed to ``StorageAdapter.update`` as is;
    ``order`` itself is not modified.

    Raises:
        InvalidTransitionError: ``enforce`` is set and the table does not list
            ``new_status`` as reachable from the current status.
        ValueError: ``extra`` carries a field that cannot change with a status.
    """
    current = OrderStatus.parse(order.get("status") or OrderStatus.PENDING)
    target = OrderStatus.parse(new_status)

    if enforce and target not in TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value, TRANSITIONS[current])

    extra = dict(extra or {})
    unknown = set(extra) - TRANSITION_EXTRA_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot change with a status update: {sorted(unknown)}")

    now = now or utcnow()
    changes: Dict[str, Any] = {
        key: to_naive_utc(value) if isinstance(value, datetime) else value
        for key, value in extra.items()
        if value is not None
    }
    changes["status"] = target.value
    changes["updated_at"] = now

    stamp_field = STATUS_TIMESTAMPS.get(target)
    if stamp_field and order.get(stamp_field) is None:
        changes[stamp_field] = now

    if target is OrderStatus.DELIVERED and order.get("actual_time") is None:
        changes.setdefault("actual_time", now)
    elif order.get("actual_time") is not None:
        # actual_time is only ever set once
        changes.pop("actual_time", None)

    return changes
