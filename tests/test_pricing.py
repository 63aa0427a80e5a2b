from decimal import Decimal
from unittest import mock

import pytest

from apps.orders.models import ProductPrice
from apps.orders.services.pricing_service import PricingService, calc_sale_price
from apps.supplier.models import Supplier, SupplierCost


@pytest.mark.parametrize(
    "order_code, ctv, khach, promo, expected",
    [
        ("MAVC001", 120, None, None, Decimal("120000")),
        ("MAVL001", Decimal("1.2"), Decimal("1.5"), None, Decimal("180000")),
        ("MAVK001", 120, 150, 10, Decimal("162000")),
        ("MAVT001", 120, 150, None, Decimal("0")),
        ("MAVN001", 120, 150, None, Decimal("50000")),
    ],
)
def test_sale_price_by_prefix(order_code, ctv, khach, promo, expected):
    price = calc_sale_price(order_code, 50000, 100000, pct_ctv=ctv, pct_khach=khach, pct_promo=promo)

    assert price == expected


def test_quote_uses_supplier_price_list(make_order, supplier):
    product = ProductPrice.objects.create(product_name="Netflix--1m", pct_ctv=120)
    other = Supplier.objects.create(supplier_name="NCC B")
    SupplierCost.objects.create(product=product, supplier=supplier, price=Decimal("60000"))
    SupplierCost.objects.create(product=product, supplier=other, price=Decimal("70000"))
    order = make_order("MAVC010", cost=50000, price=80000)

    quote = PricingService().quote(order)

    assert quote.cost == 60000
    assert quote.price == 84000
    assert quote.product_id == product.id
    assert quote.supplier_id == supplier.id


def test_quote_without_price_list_keeps_stored_values(make_order):
    order = make_order("MAVL011", cost=50000, price=80000)

    quote = PricingService().quote(order)

    assert quote.cost == 50000
    assert quote.price == 80000


def test_quote_falls_back_when_lookup_fails(make_order):
    order = make_order("MAVC012", cost=45000, price=90000)

    with mock.patch("apps.orders.services.pricing_service.ProductPrice") as products:
        products.objects.filter.side_effect = RuntimeError("boom")
        quote = PricingService().quote(order)

    assert quote.cost == 45000
    assert quote.price == 90000
