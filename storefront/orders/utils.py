from typing import Dict, FrozenSet

from storefront.common.custom_exceptions import InvalidStatusTransition
from storefront.schema.full_schema import OrderStatus, PaymentStatus

# current -> states it may move to (staying put is always allowed)
ORDER_STATUS_FLOW: Dict[str, FrozenSet[str]] = {
    OrderStatus.PENDING.value: frozenset({OrderStatus.DISPATCHED.value}),
    OrderStatus.DISPATCHED.value: frozenset({OrderStatus.DELIVERED.value}),
    OrderStatus.DELIVERED.value: frozenset(),
}

PAYMENT_STATUS_FLOW: Dict[str, FrozenSet[str]] = {
    PaymentStatus.NOTPAID.value: frozenset({PaymentStatus.PAID.value}),
    PaymentStatus.PAID.value: frozenset(),
}


def check_transition(flow: Dict[str, FrozenSet[str]], current: str, target: str, label: str) -> None:
    if current == target:
        return
    if target not in flow.get(current, frozenset()):
        raise InvalidStatusTransition(f"Cannot change {label} from {current} to {target}")


def line_total(quantity: int, unit_price: float) -> float:
    return round(quantity * unit_price, 2)
