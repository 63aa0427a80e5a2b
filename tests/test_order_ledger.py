from datetime import timedelta
from decimal import Decimal

import pytest

from apps.orders.models import CanceledOrder, ExpiredOrder, Order, OrderStatus
from apps.orders.services import ledger_service
from core.exceptions import OrderNotFound, ValidationError

from tests.helpers import TODAY


def _partitions_holding(code):
    return [
        model.__name__
        for model in (Order, ExpiredOrder, CanceledOrder)
        if model.objects.filter(order_code__iexact=code).exists()
    ]


def test_expiry_falls_back_to_registration_plus_days(make_order):
    order = make_order(expiry=TODAY + timedelta(days=5), days=30)
    order.expiry_date = None

    assert ledger_service.expiry_of(order) == order.registration_date + timedelta(days=29)
    assert ledger_service.days_remaining(order, TODAY) == 5


def test_expiry_unknown_without_dates(make_order):
    order = make_order()
    order.expiry_date = None
    order.registration_date = None

    assert ledger_service.expiry_of(order) is None
    assert ledger_service.days_remaining(order, TODAY) is None


def test_find_active_is_case_insensitive(make_order):
    make_order(order_code="MAVC001")

    assert ledger_service.find_active("mavc001").order_code == "MAVC001"
    assert ledger_service.find_active("MAVC999") is None
    assert ledger_service.find_active("") is None


def test_transition_status_is_conditional(make_order):
    make_order(order_code="MAVC001", status=OrderStatus.UNPAID)

    assert ledger_service.transition_status("MAVC001", OrderStatus.PAID, expected=OrderStatus.UNPAID) == 1
    # lần hai không còn ở trạng thái mong đợi
    assert ledger_service.transition_status("MAVC001", OrderStatus.PAID, expected=OrderStatus.UNPAID) == 0
    assert Order.objects.get(order_code="MAVC001").status == OrderStatus.PAID


def test_archive_and_remove_moves_row_once(make_order):
    original = make_order(order_code="MAVC001", status=OrderStatus.EXPIRED, expiry=TODAY - timedelta(days=1))
    original.refresh_from_db()
    values = original.business_values()

    assert ledger_service.archive_and_remove(["MAVC001"]) == ["MAVC001"]
    assert _partitions_holding("MAVC001") == ["ExpiredOrder"]

    archived = ExpiredOrder.objects.get(order_code="MAVC001")
    assert archived.business_values() == values


def test_archive_ignores_existing_archive_row(make_order):
    make_order(order_code="MAVC001", status=OrderStatus.EXPIRED, expiry=TODAY - timedelta(days=1))
    ledger_service.archive_and_remove(["MAVC001"])

    # bản ghi active trùng mã xuất hiện lại (nhập tay) rồi bị lưu trữ lần nữa
    make_order(order_code="MAVC001", status=OrderStatus.PAID, expiry=TODAY - timedelta(days=2))
    ledger_service.archive_and_remove(["MAVC001"])

    assert ExpiredOrder.objects.filter(order_code="MAVC001").count() == 1
    assert not Order.objects.filter(order_code="MAVC001").exists()


def test_only_settled_statuses_can_be_archived_as_expired(make_order):
    order = make_order(order_code="MAVC001", status=OrderStatus.UNPAID)

    with pytest.raises(ValidationError):
        ledger_service.archive_orders([order], ledger_service.ArchivePartition.EXPIRED)
    assert ExpiredOrder.objects.count() == 0


def test_unknown_partition_is_rejected(make_order):
    order = make_order()

    with pytest.raises(ValidationError):
        ledger_service.archive_orders([order], "trash")


def test_cancel_unchecked_unpaid_order_is_deleted(make_order):
    make_order(order_code="MAVL010", status=OrderStatus.UNPAID, check_flag=None)

    result = ledger_service.cancel_order("MAVL010", as_of=TODAY)

    assert result.moved_to == "deleted"
    assert _partitions_holding("MAVL010") == []


def test_cancel_nearly_expired_order_goes_to_expired_partition(make_order):
    make_order(order_code="MAVL011", status=OrderStatus.PAID, expiry=TODAY + timedelta(days=2))

    result = ledger_service.cancel_order("MAVL011", as_of=TODAY)

    assert result.moved_to == ledger_service.ArchivePartition.EXPIRED
    assert _partitions_holding("MAVL011") == ["ExpiredOrder"]


def test_cancel_active_order_records_prorated_refund(make_order):
    make_order(
        order_code="MAVL012",
        status=OrderStatus.PAID,
        expiry=TODAY + timedelta(days=20),
        days=30,
        price=90000,
    )

    result = ledger_service.cancel_order("MAVL012", as_of=TODAY)

    assert result.moved_to == ledger_service.ArchivePartition.CANCELED
    assert result.refund == Decimal("60000")
    assert _partitions_holding("MAVL012") == ["CanceledOrder"]

    canceled = CanceledOrder.objects.get(order_code="MAVL012")
    assert canceled.status == OrderStatus.PENDING_REFUND
    assert canceled.check_flag is False
    assert canceled.refund == Decimal("60000")


def test_cancel_missing_order_raises(db):
    with pytest.raises(OrderNotFound):
        ledger_service.cancel_order("MAVC404", as_of=TODAY)


def test_cancel_endpoint_requires_api_key(client, make_order):
    make_order(order_code="MAVL013")

    response = client.post("/api/orders/MAVL013/cancel")

    assert response.status_code == 403
    assert response.json() == {"message": "Invalid API key"}
    assert Order.objects.filter(order_code="MAVL013").exists()


def test_cancel_endpoint(client, make_order, api_headers):
    make_order(order_code="MAVL014", status=OrderStatus.UNPAID)

    response = client.post("/api/orders/MAVL014/cancel", **api_headers)

    assert response.status_code == 200
    assert response.json()["moved_to"] == "deleted"

    missing = client.post("/api/orders/MAVL404/cancel", **api_headers)
    assert missing.status_code == 404


def test_from_raw_normalizes_text_fields(db):
    order = Order.from_raw(
        order_code=" mavc050 ",
        registration_date="10/03/2026",
        expiry_date="2026-04-08 00:00:00",
        duration_days="30",
        cost="50.000",
        price="80,000đ",
    )

    assert order.order_code == "MAVC050"
    assert order.registration_date == TODAY
    assert order.expiry_date == TODAY + timedelta(days=29)
    assert order.duration_days == 30
    assert (order.cost, order.price) == (50000, 80000)
