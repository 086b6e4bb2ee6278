"""Tests for the order status state machine"""

from datetime import datetime, timedelta

import pytest

from jerktracker import lifecycle
from jerktracker.errors import InvalidTransitionError
from jerktracker.models.order import OrderStatus

T0 = datetime(2024, 5, 1, 12, 0, 0)


def new_order(**fields):
    order = {
        "status": OrderStatus.PENDING.value,
        "preparing_at": None,
        "ready_at": None,
        "out_for_delivery_at": None,
        "picked_up_at": None,
        "cancelled_at": None,
        "actual_time": None,
    }
    order.update(fields)
    return order


def apply(order, status, minutes, **kwargs):
    changes = lifecycle.transition(order, status, now=T0 + timedelta(minutes=minutes), **kwargs)
    return {**order, **changes}


def test_pickup_flow_stamps_each_timestamp_once():
    order = new_order()
    order = apply(order, OrderStatus.IN_PROGRESS, 1)
    order = apply(order, OrderStatus.READY, 10)
    order = apply(order, OrderStatus.DELIVERED, 15)

    assert order["status"] == "DELIVERED"
    assert order["preparing_at"] == T0 + timedelta(minutes=1)
    assert order["ready_at"] == T0 + timedelta(minutes=10)
    assert order["picked_up_at"] == T0 + timedelta(minutes=15)
    assert order["actual_time"] == T0 + timedelta(minutes=15)
    assert order["out_for_delivery_at"] is None
    assert order["cancelled_at"] is None


def test_delivery_flow():
    order = new_order()
    for minutes, status in enumerate(
        [OrderStatus.IN_PROGRESS, OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED]
    ):
        order = apply(order, status, minutes, extra={"driver_name": "Marcus"} if minutes == 2 else None)

    assert order["driver_name"] == "Marcus"
    assert order["out_for_delivery_at"] == T0 + timedelta(minutes=2)
    assert order["picked_up_at"] == T0 + timedelta(minutes=3)


def test_skipping_a_state_is_rejected():
    order = apply(new_order(), OrderStatus.IN_PROGRESS, 1)

    with pytest.raises(InvalidTransitionError) as exc_info:
        lifecycle.transition(order, OrderStatus.DELIVERED)

    assert exc_info.value.status_code == 400
    assert exc_info.value.details["current"] == "IN_PROGRESS"
    assert exc_info.value.details["requested"] == "DELIVERED"
    assert exc_info.value.details["allowed"] == ["CANCELLED", "READY"]


@pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
def test_terminal_states_have_no_exits(terminal):
    assert lifecycle.is_terminal(terminal)
    with pytest.raises(InvalidTransitionError):
        lifecycle.transition(new_order(status=terminal.value), OrderStatus.PENDING)


@pytest.mark.parametrize(
    "status",
    [OrderStatus.PENDING, OrderStatus.IN_PROGRESS, OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY],
)
def test_cancel_from_any_open_state(status):
    changes = lifecycle.transition(new_order(status=status.value), OrderStatus.CANCELLED, now=T0)
    assert changes["status"] == "CANCELLED"
    assert changes["cancelled_at"] == T0


def test_backwards_move_is_rejected():
    order = new_order(status=OrderStatus.READY.value, ready_at=T0)
    assert not lifecycle.can_transition(OrderStatus.READY, OrderStatus.IN_PROGRESS)
    with pytest.raises(InvalidTransitionError):
        lifecycle.transition(order, OrderStatus.IN_PROGRESS)


def test_lenient_mode_never_overwrites_a_timestamp():
    order = new_order(status=OrderStatus.READY.value, preparing_at=T0, ready_at=T0)

    changes = lifecycle.transition(
        order, OrderStatus.IN_PROGRESS, now=T0 + timedelta(hours=1), enforce=False
    )

    assert changes["status"] == "IN_PROGRESS"
    assert "preparing_at" not in changes


def test_actual_time_is_kept_once_set():
    order = new_order(status=OrderStatus.OUT_FOR_DELIVERY.value, actual_time=T0)

    changes = lifecycle.transition(
        order,
        OrderStatus.DELIVERED,
        {"actual_time": T0 + timedelta(minutes=30)},
        now=T0 + timedelta(minutes=40),
    )

    assert "actual_time" not in changes
    assert changes["picked_up_at"] == T0 + timedelta(minutes=40)


def test_accepts_display_labels():
    changes = lifecycle.transition(new_order(), "Preparing", now=T0)
    assert changes["status"] == "IN_PROGRESS"
    assert changes["preparing_at"] == T0


def test_rejects_fields_outside_the_status_payload():
    with pytest.raises(ValueError):
        lifecycle.transition(new_order(), OrderStatus.IN_PROGRESS, {"order_number": "X"})


def test_updated_at_always_bumped():
    changes = lifecycle.transition(new_order(), OrderStatus.IN_PROGRESS, now=T0)
    assert changes["updated_at"] == T0


def test_labels_round_trip():
    for status in OrderStatus:
        assert OrderStatus.parse(status.label) is status
        assert OrderStatus.parse(status.value) is status
    assert OrderStatus.DELIVERED.label == "Picked Up"
    with pytest.raises(ValueError):
        OrderStatus.parse("Eaten")
