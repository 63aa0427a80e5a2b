import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db.models import Max

from apps.orders.models import ProductPrice
from apps.supplier.models import Supplier, SupplierCost
from core.normalizers import normalize_money, round_to_thousands

logger = logging.getLogger("app.renewal")

# Tiền tố mã đơn quyết định cách tính giá bán
ORDER_PREFIX_CTV = "MAVC"
ORDER_PREFIX_LE = "MAVL"
ORDER_PREFIX_KHUYEN = "MAVK"
ORDER_PREFIX_TANG = "MAVT"
ORDER_PREFIX_NHAP = "MAVN"


@dataclass
class PriceQuote:
    cost: int
    price: int
    product_id: Optional[int] = None
    supplier_id: Optional[int] = None


def _ratio(value, default: Decimal = Decimal("1")) -> Decimal:
    """Hệ số > 10 được hiểu là phần trăm (120 -> 1.2)."""
    if value is None:
        return default
    number = Decimal(value)
    if number <= 0:
        return default
    if number > 10:
        return number / 100
    return number


def _promo_ratio(value) -> Decimal:
    if value is None:
        return Decimal("0")
    number = Decimal(value)
    if number <= 0:
        return Decimal("0")
    return number / 100 if number > 1 else number


def _first_positive(*candidates) -> int:
    for candidate in candidates:
        amount = normalize_money(candidate, fallback=0)
        if amount > 0:
            return amount
    return 0


def calc_sale_price(order_code: str, cost: int, base_price: int, pct_ctv=None, pct_khach=None, pct_promo=None) -> Decimal:
    code = (order_code or "").upper()
    ctv = _ratio(pct_ctv)
    khach = _ratio(pct_khach)
    base = Decimal(base_price or cost or 0)

    if code.startswith(ORDER_PREFIX_CTV):
        return base * ctv
    if code.startswith(ORDER_PREFIX_LE):
        return base * ctv * khach
    if code.startswith(ORDER_PREFIX_KHUYEN):
        promo = _promo_ratio(pct_promo)
        return base * ctv * khach * max(Decimal("0"), 1 - promo)
    if code.startswith(ORDER_PREFIX_TANG):
        return Decimal("0")
    if code.startswith(ORDER_PREFIX_NHAP):
        return Decimal(cost or base)
    return base


class PricingService:
    """Tính lại giá nhập / giá bán hiện tại của một đơn theo bảng giá NCC."""

    def quote(self, order, as_of: Optional[date] = None) -> PriceQuote:
        stored_cost = normalize_money(order.cost, fallback=0)
        stored_price = normalize_money(order.price, fallback=0)
        try:
            product = ProductPrice.objects.filter(product_name__iexact=(order.product_code or "").strip()).first()
            supplier = None
            if order.supplier_name:
                supplier = Supplier.objects.filter(supplier_name__iexact=order.supplier_name.strip()).first()

            supplier_cost = None
            max_cost = None
            if product is not None:
                if supplier is not None:
                    latest = (
                        SupplierCost.objects.filter(product=product, supplier=supplier)
                        .order_by("-id")
                        .first()
                    )
                    supplier_cost = latest.price if latest else None
                max_cost = SupplierCost.objects.filter(product=product).aggregate(m=Max("price"))["m"]

            cost = _first_positive(supplier_cost, stored_cost)
            base_price = _first_positive(max_cost, stored_price, cost)
            raw_price = calc_sale_price(
                order.order_code,
                cost,
                base_price,
                pct_ctv=product.pct_ctv if product else None,
                pct_khach=product.pct_khach if product else None,
                pct_promo=product.pct_promo if product else None,
            )
            if order.order_code.upper().startswith(ORDER_PREFIX_TANG):
                price = 0
            else:
                price = _first_positive(round_to_thousands(raw_price), base_price, stored_price, cost)
            return PriceQuote(
                cost=cost,
                price=price,
                product_id=product.id if product else None,
                supplier_id=supplier.id if supplier else None,
            )
        except Exception:
            logger.warning(
                "Price quote failed, using stored price",
                exc_info=True,
                extra={"context": {"order_code": order.order_code}, "channel": "renewal"},
            )
            return PriceQuote(cost=stored_cost, price=stored_price)
