import json
from datetime import timedelta

import pytest

from apps.orders.models import Order, OrderStatus
from apps.supplier.models import Supplier
from tests.helpers import API_KEY, TODAY, sign


@pytest.fixture(autouse=True)
def business_date(settings):
    """Cố định ngày nghiệp vụ cho mọi test."""
    settings.MOCK_DATE = TODAY.isoformat()
    return TODAY


@pytest.fixture
def make_order(db):
    def _make(
        order_code="MAVC001",
        status=OrderStatus.PAID,
        expiry=None,
        days=30,
        product_code="Netflix--1m",
        supplier_name="NCC A",
        cost=50000,
        price=80000,
        check_flag=None,
        **extra,
    ):
        if expiry is None:
            expiry = TODAY + timedelta(days=10)
        registration = extra.pop("registration", expiry - timedelta(days=days - 1))
        return Order.objects.create(
            order_code=order_code,
            product_code=product_code,
            customer_info=extra.pop("customer_info", "acc@example.com"),
            customer=extra.pop("customer", "Khách A"),
            contact_link=extra.pop("contact_link", "fb.com/khach-a"),
            slot=extra.pop("slot", ""),
            registration_date=registration,
            duration_days=days,
            expiry_date=expiry,
            supplier_name=supplier_name,
            cost=cost,
            price=price,
            status=status,
            check_flag=check_flag,
            **extra,
        )

    return _make


@pytest.fixture
def supplier(db):
    return Supplier.objects.create(supplier_name="NCC A")


@pytest.fixture
def post_webhook(client):
    def _post(payload, signed=True, **headers):
        body = json.dumps(payload).encode("utf-8")
        if signed:
            headers.setdefault("HTTP_X_SEPAY_SIGNATURE", sign(body))
        return client.post(
            "/api/sepay/webhook",
            data=body,
            content_type="application/json",
            **headers,
        )

    return _post


@pytest.fixture
def api_headers():
    return {"HTTP_X_API_KEY": API_KEY}
