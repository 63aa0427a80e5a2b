import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.db import transaction

from apps.orders.models import Order, OrderStatus
from apps.orders.services import ledger_service
from apps.orders.services.pricing_service import PricingService
from apps.scheduler.clients.telegram_client import get_notifier
from apps.supplier.services.balance_service import SupplierBalanceService
from core.clock import business_today
from core.normalizers import add_months_clamped, format_dmy, months_from_product

logger = logging.getLogger("app.renewal")

RENEWAL_ELIGIBLE_STATUSES = (OrderStatus.RENEWAL, OrderStatus.EXPIRED)


def renewal_window_days() -> int:
    return int(getattr(settings, "RENEWAL_WINDOW_DAYS", 4))


@dataclass
class RenewalEligibility:
    eligible: bool
    force_renewal: bool
    needs_status_reset: bool
    status_norm: str
    days_left: Optional[int]


@dataclass
class RenewalResult:
    order_code: str
    success: bool
    process_type: str  # renewal | skipped | error
    details: Any = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "order_code": self.order_code,
            "success": self.success,
            "process_type": self.process_type,
            "details": self.details,
        }


@dataclass
class RenewalBatchSummary:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)


def is_eligible_for_renewal(status, check_flag, expiry_date: Optional[date], as_of: Optional[date] = None) -> RenewalEligibility:
    """
    Đơn được gia hạn khi:
    - Cần Gia Hạn / Hết Hạn, chưa đánh dấu kiểm tra, và còn <= RENEWAL_WINDOW_DAYS ngày
      (cùng cửa sổ với job hằng ngày)
    - hoặc Đã Thanh Toán nhưng check_flag = TRUE: buộc gia hạn rồi đưa về Chưa Thanh Toán
    """
    as_of = as_of or business_today()
    status_norm = str(status or "").strip()
    days_left = (expiry_date - as_of).days if expiry_date else None

    ready = (
        status_norm in RENEWAL_ELIGIBLE_STATUSES
        and check_flag is None
        and days_left is not None
        and days_left <= renewal_window_days()
    )
    paid_needs_force = status_norm == OrderStatus.PAID and check_flag is True

    return RenewalEligibility(
        eligible=ready or paid_needs_force,
        force_renewal=paid_needs_force,
        needs_status_reset=paid_needs_force,
        status_norm=status_norm,
        days_left=days_left,
    )


def eligibility_of(order: Order, as_of: Optional[date] = None) -> RenewalEligibility:
    return is_eligible_for_renewal(
        order.status,
        order.check_flag,
        ledger_service.expiry_of(order),
        as_of=as_of,
    )


class RenewalService:
    def __init__(self, pricing=None, balance_service=None, notifier=None):
        self.pricing = pricing or PricingService()
        self.balance_service = balance_service or SupplierBalanceService()
        self.notifier = notifier or get_notifier()

    def apply_renewal(
        self,
        order_code: str,
        force_renewal: bool = False,
        needs_status_reset: bool = False,
        as_of: Optional[date] = None,
    ) -> RenewalResult:
        """
        Gia hạn đơn: ngày bắt đầu mới = hết hạn cũ + 1, hết hạn mới = bắt đầu + số tháng - 1,
        tính lại giá nhập / giá bán, đưa trạng thái về Đã Thanh Toán và cộng giá nhập
        vào công nợ NCC, tất cả trong một transaction.
        """
        as_of = as_of or business_today()
        if not order_code:
            return RenewalResult(order_code="", success=False, process_type="error", details="Thiếu mã đơn hàng")

        order = ledger_service.find_active(order_code)
        if order is None:
            return RenewalResult(order_code, False, "error", f"Không tìm thấy đơn {order_code}")

        old_expiry = ledger_service.expiry_of(order)
        if old_expiry is None:
            return RenewalResult(order.order_code, False, "error", f"Ngày hết hạn không hợp lệ cho đơn {order.order_code}")

        days_left = (old_expiry - as_of).days
        if not force_renewal and days_left > renewal_window_days():
            return RenewalResult(order.order_code, False, "skipped", f"Bỏ qua, còn {days_left} ngày")

        months = months_from_product(order.product_code)
        if not months:
            return RenewalResult(order.order_code, False, "error", "Không xác định được thời hạn sản phẩm")

        # báo giá trước khi mở transaction
        quote = self.pricing.quote(order, as_of)

        new_start = old_expiry + timedelta(days=1)
        new_expiry = add_months_clamped(new_start, months) - timedelta(days=1)
        span_days = max(1, (new_expiry - new_start).days + 1)
        new_status = OrderStatus.UNPAID if needs_status_reset else OrderStatus.PAID
        new_flag = False if needs_status_reset else None

        with transaction.atomic():
            locked = ledger_service.lock_active(order.order_code)
            if (
                locked is None
                or locked.status != order.status
                or ledger_service.expiry_of(locked) != old_expiry
            ):
                return RenewalResult(order.order_code, False, "skipped", "Đơn đã thay đổi trong lúc gia hạn")

            Order.objects.filter(pk=locked.pk, status=locked.status).update(
                registration_date=new_start,
                duration_days=span_days,
                expiry_date=new_expiry,
                cost=quote.cost,
                price=quote.price,
                status=new_status,
                check_flag=new_flag,
            )

            supplier = self.balance_service.resolve_supplier(locked.supplier_name)
            if supplier is not None and quote.cost > 0:
                self.balance_service.apply_to_balance(supplier, quote.cost, new_start)

        details = {
            "order_code": order.order_code,
            "product_code": order.product_code,
            "customer_info": order.customer_info,
            "slot": order.slot,
            "registration_date": format_dmy(new_start),
            "expiry_date": format_dmy(new_expiry),
            "supplier_name": order.supplier_name,
            "cost": quote.cost,
            "price": quote.price,
            "status": str(new_status),
            "days": span_days,
        }
        logger.info(
            "Order renewed",
            extra={
                "context": {
                    **details,
                    "months": months,
                    "force_renewal": force_renewal,
                    "needs_status_reset": needs_status_reset,
                },
                "channel": "renewal",
            },
        )

        try:
            self.notifier.notify_renewed(details)
        except Exception:
            logger.exception(
                "Renewal notification failed",
                extra={"context": {"order_code": order.order_code, "stage": "notify"}, "channel": "renewal"},
            )
        return RenewalResult(order.order_code, True, "renewal", details)

    def process_order(self, order_code: str, force: bool = False, as_of: Optional[date] = None) -> RenewalResult:
        """Đọc trạng thái mới nhất, kiểm tra điều kiện rồi gia hạn (retry thủ công / sau webhook)."""
        as_of = as_of or business_today()
        order = ledger_service.find_active(order_code)
        if order is None:
            return RenewalResult(order_code, False, "error", "not found")

        eligibility = eligibility_of(order, as_of)
        if not eligibility.eligible and not force:
            return RenewalResult(order.order_code, False, "skipped", "not eligible")

        return self.apply_renewal(
            order.order_code,
            force_renewal=force or eligibility.force_renewal,
            needs_status_reset=eligibility.needs_status_reset,
            as_of=as_of,
        )

    def find_candidates(self, as_of: Optional[date] = None) -> List[str]:
        as_of = as_of or business_today()
        candidates = []
        for order in Order.objects.exclude(order_code="").order_by("order_code"):
            if eligibility_of(order, as_of).eligible:
                candidates.append(order.order_code)
        return candidates

    def run_batch(self, order_codes: Optional[Iterable[str]] = None, force: bool = False, as_of: Optional[date] = None) -> RenewalBatchSummary:
        as_of = as_of or business_today()
        if order_codes:
            targets = []
            for code in order_codes:
                code = str(code or "").strip().upper()
                if code and code not in targets:
                    targets.append(code)
        else:
            targets = self.find_candidates(as_of)

        summary = RenewalBatchSummary(total=len(targets))
        for code in targets:
            try:
                result = self.process_order(code, force=force, as_of=as_of)
            except Exception as exc:
                logger.exception(
                    "Renewal retry failed",
                    extra={"context": {"order_code": code, "stage": "renewal"}, "channel": "renewal"},
                )
                result = RenewalResult(code, False, "error", str(exc))
            summary.results.append(result.as_dict())
            if result.success:
                summary.succeeded += 1
        summary.failed = len(summary.results) - summary.succeeded
        return summary
