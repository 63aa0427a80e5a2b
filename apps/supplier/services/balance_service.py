import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from django.db import transaction

from apps.orders.models import Order, OrderStatus, ProductPrice
from apps.supplier.models import (
    RoundEventKind,
    RoundStatus,
    Supplier,
    SupplierCost,
    SupplierPaymentRound,
    SupplierRoundEvent,
)
from core.clock import business_today
from core.exceptions import RoundNotFound, ValidationError
from core.normalizers import format_dmy, normalize_money

logger = logging.getLogger("app.supplier")


@dataclass
class EnsuredSupply:
    supplier: Optional[Supplier]
    product: Optional[ProductPrice]
    price: int


@dataclass
class SettlementResult:
    round_id: int
    supplier_id: int
    paid_amount: Decimal
    settled_orders: List[str] = field(default_factory=list)
    carryover: Decimal = Decimal("0")
    carryover_round_id: Optional[int] = None
    label: str = ""


class SupplierBalanceService:
    """
    Sổ công nợ NCC: cộng dồn giá nhập vào chu kỳ đang mở và tất toán chu kỳ.
    Các hàm không tự mở transaction trừ settle_round (entry point).
    """

    def resolve_supplier(self, name: str, create: bool = False) -> Optional[Supplier]:
        name = (name or "").strip()
        if not name:
            return None
        supplier = Supplier.objects.filter(supplier_name__iexact=name).order_by("id").first()
        if supplier is None and create:
            supplier = Supplier.objects.create(supplier_name=name)
            logger.info(
                "Supplier created from order",
                extra={"context": {"supplier_name": name, "supplier_id": supplier.id}, "channel": "supplier"},
            )
        return supplier

    def ensure_supplier_cost(self, order: Order, reference_import=None) -> EnsuredSupply:
        """
        Đảm bảo NCC và giá nhập (supplier_cost) tồn tại cho đơn.
        Giá trả về: giá NCC mới nhất, nếu chưa có thì giá nhập của đơn / số tiền chuyển khoản.
        """
        reference = normalize_money(reference_import, fallback=0)
        cost_value = normalize_money(order.cost, fallback=0)
        supplier = self.resolve_supplier(order.supplier_name, create=True)

        product = None
        if order.product_code:
            product = ProductPrice.objects.filter(product_name__iexact=order.product_code.strip()).first()

        price = cost_value or reference or 0
        if product is not None and supplier is not None:
            latest = SupplierCost.objects.filter(product=product, supplier=supplier).order_by("-id").first()
            if latest is not None:
                price = normalize_money(latest.price, fallback=0)
            elif price:
                SupplierCost.objects.create(product=product, supplier=supplier, price=price)

        return EnsuredSupply(supplier=supplier, product=product, price=price)

    def _record_event(self, payment_round, kind, amount, on_date):
        return SupplierRoundEvent.objects.create(
            payment_round=payment_round,
            kind=kind,
            amount=amount,
            occurred_on=on_date,
        )

    def open_round(self, supplier: Supplier, amount, on_date: date) -> SupplierPaymentRound:
        payment_round = SupplierPaymentRound.objects.create(
            supplier=supplier,
            import_value=amount,
            paid=0,
            round=format_dmy(on_date),
            status=RoundStatus.UNPAID,
        )
        self._record_event(payment_round, RoundEventKind.OPENED, amount, on_date)
        return payment_round

    def apply_to_balance(self, supplier: Optional[Supplier], amount, on_date: Optional[date] = None):
        """Cộng giá nhập vào chu kỳ Chưa Thanh Toán của NCC, chưa có thì mở chu kỳ mới."""
        amount = normalize_money(amount, fallback=0)
        if supplier is None or amount <= 0:
            return None
        on_date = on_date or business_today()

        open_round = (
            SupplierPaymentRound.objects.select_for_update()
            .filter(supplier=supplier, status=RoundStatus.UNPAID)
            .first()
        )
        if open_round is None:
            payment_round = self.open_round(supplier, amount, on_date)
        else:
            open_round.import_value = Decimal(open_round.import_value or 0) + amount
            open_round.save(update_fields=["import_value"])
            self._record_event(open_round, RoundEventKind.ACCRUED, amount, on_date)
            payment_round = open_round

        logger.info(
            "Supplier balance accrued",
            extra={
                "context": {
                    "supplier_id": supplier.id,
                    "round_id": payment_round.id,
                    "amount": amount,
                },
                "channel": "supplier",
            },
        )
        return payment_round

    def settle_round(self, round_id: int, paid_amount=None, as_of: Optional[date] = None) -> SettlementResult:
        """
        Tất toán một chu kỳ trong một transaction:
        1. khoá chu kỳ, lấy NCC
        2. đơn Đang Xử Lý của NCC theo ngày đăng ký (trống trước) rồi id, cộng dồn
           giá nhập khi tổng còn <= số đã trả; các đơn đó chuyển Đã Thanh Toán
        3. phần còn thiếu = tổng giá nhập đơn Đang Xử Lý - số đã trả, mở chu kỳ mới
           nếu NCC chưa có chu kỳ mở nào khác
        4. đóng chu kỳ, ghi sự kiện tất toán
        """
        as_of = as_of or business_today()
        with transaction.atomic():
            payment_round = (
                SupplierPaymentRound.objects.select_for_update()
                .select_related("supplier")
                .filter(pk=round_id)
                .first()
            )
            if payment_round is None:
                raise RoundNotFound(f"Payment round {round_id} not found")
            if payment_round.status == RoundStatus.PAID:
                raise ValidationError(f"Payment round {round_id} already settled")
            supplier = payment_round.supplier

            import_value = Decimal(payment_round.import_value or 0)
            if paid_amount is None:
                paid = import_value
            else:
                paid = Decimal(normalize_money(paid_amount, fallback=0))

            processing = list(
                Order.objects.select_for_update().filter(
                    supplier_name__iexact=supplier.supplier_name,
                    status=OrderStatus.PROCESSING,
                )
            )
            # đơn chưa có ngày đăng ký được tất toán trước
            processing.sort(key=lambda o: (o.registration_date is not None, o.registration_date or date.min, o.pk))
            total_processing = sum((Decimal(o.cost or 0) for o in processing), Decimal("0"))

            running = Decimal("0")
            covered: List[Order] = []
            for order in processing:
                cost = Decimal(order.cost or 0)
                if running + cost > paid:
                    break
                running += cost
                covered.append(order)

            if covered:
                Order.objects.filter(
                    pk__in=[o.pk for o in covered],
                    status=OrderStatus.PROCESSING,
                ).update(status=OrderStatus.PAID)

            carryover = total_processing - paid
            has_other_open = (
                SupplierPaymentRound.objects.filter(supplier=supplier, status=RoundStatus.UNPAID)
                .exclude(pk=payment_round.pk)
                .exists()
            )

            payment_round.status = RoundStatus.PAID
            payment_round.paid = paid
            payment_round.save(update_fields=["status", "paid"])
            self._record_event(payment_round, RoundEventKind.SETTLED, paid, as_of)

            carryover_round = None
            if carryover > 0 and not has_other_open:
                carryover_round = self.open_round(supplier, carryover, as_of)

        result = SettlementResult(
            round_id=payment_round.pk,
            supplier_id=supplier.pk,
            paid_amount=paid,
            settled_orders=[o.order_code for o in covered],
            carryover=carryover if carryover > 0 else Decimal("0"),
            carryover_round_id=carryover_round.pk if carryover_round else None,
            label=payment_round.display_label,
        )
        logger.info(
            "Supplier round settled",
            extra={
                "context": {
                    "round_id": result.round_id,
                    "supplier_id": result.supplier_id,
                    "paid": str(paid),
                    "settled_orders": result.settled_orders,
                    "carryover_round_id": result.carryover_round_id,
                },
                "channel": "supplier",
            },
        )
        return result
