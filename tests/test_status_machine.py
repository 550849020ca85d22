import pytest

from routers.change_requests.helpers import change_request_machine
from routers.orders.helpers import order_machine
from routers.products.helpers import platform_product_machine, supplier_product_machine
from utils.errors import ConflictError
from utils.status_machine import StatusMachine


def test_order_happy_path_is_allowed():
    assert order_machine.can("PENDING", "APPROVED")
    assert order_machine.can("APPROVED", "SHIPPED")
    assert order_machine.can("SHIPPED", "COMPLETED")


@pytest.mark.parametrize("current,target", [
    ("PENDING", "SHIPPED"),
    ("APPROVED", "REJECTED"),
    ("REJECTED", "APPROVED"),
    ("COMPLETED", "SHIPPED"),
    ("SHIPPED", "APPROVED"),
])
def test_order_skips_and_reversals_conflict(current, target):
    with pytest.raises(ConflictError) as exc_info:
        order_machine.check(current, target)
    assert exc_info.value.status_code == 400
    assert current in exc_info.value.message


def test_terminal_statuses():
    assert order_machine.is_terminal("REJECTED")
    assert order_machine.is_terminal("COMPLETED")
    assert not order_machine.is_terminal("PENDING")
    assert change_request_machine.is_terminal("APPROVED")
    assert change_request_machine.is_terminal("REJECTED")


def test_suppliers_cannot_delist_or_restore():
    assert supplier_product_machine.allowed_from("ACTIVE") == frozenset({"INACTIVE"})
    assert not supplier_product_machine.can("DELISTED", "ACTIVE")
    assert not supplier_product_machine.can("ACTIVE", "DELISTED")


def test_platform_delists_from_any_live_status():
    assert platform_product_machine.can("ACTIVE", "DELISTED")
    assert platform_product_machine.can("INACTIVE", "DELISTED")
    assert platform_product_machine.can("DELISTED", "ACTIVE")
    assert not platform_product_machine.can("ACTIVE", "INACTIVE")


def test_unknown_status_is_terminal():
    machine = StatusMachine("widget", {"NEW": ["DONE"]})
    assert machine.is_terminal("MISSING")
    assert machine.allowed_from("MISSING") == frozenset()
