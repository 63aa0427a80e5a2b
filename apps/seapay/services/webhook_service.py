import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from django.db import DatabaseError, transaction

from apps.orders.models import Order, OrderStatus
from apps.orders.services import ledger_service
from apps.seapay.services.receipt_service import PaymentReceiptService
from apps.seapay.services.renewal_service import (
    RenewalEligibility,
    RenewalService,
    eligibility_of,
)
from apps.seapay.services.transaction_parser import SepayTransaction
from apps.supplier.services.balance_service import SupplierBalanceService
from core.clock import business_today
from core.exceptions import PostCommitFailure, TransactionalFailure, ValidationError

logger = logging.getLogger("app.webhook")


@dataclass
class WebhookOutcome:
    inserted: bool
    duplicate: bool
    order_codes: List[str]
    receipt_id: Optional[int] = None
    # mã đơn đủ điều kiện gia hạn tính trước khi ghi; chỉ các mã này được gia hạn sau commit
    renewal_codes: List[str] = field(default_factory=list)
    renewed: List[str] = field(default_factory=list)
    marked_checked: List[str] = field(default_factory=list)
    post_commit_failures: List[PostCommitFailure] = field(default_factory=list)


class SepayWebhookService:
    """
    Áp dụng một thông báo SePay đã xác thực:
    một transaction cho biên nhận + công nợ NCC + trạng thái đơn, sau commit mới gia hạn.
    """

    def __init__(self, receipt_service=None, balance_service=None, renewal_service=None):
        self.receipt_service = receipt_service or PaymentReceiptService()
        self.balance_service = balance_service or SupplierBalanceService()
        self.renewal_service = renewal_service or RenewalService(balance_service=self.balance_service)

    def process(self, tx: SepayTransaction, as_of: Optional[date] = None) -> WebhookOutcome:
        if not tx.order_codes:
            raise ValidationError("Missing order code")
        as_of = as_of or business_today()

        try:
            outcome = self._apply(tx, as_of)
        except DatabaseError as exc:
            logger.exception(
                "Error saving payment",
                extra={"context": {"order_codes": tx.order_codes, "amount": tx.amount}, "channel": "webhook"},
            )
            raise TransactionalFailure(str(exc)) from exc

        if outcome.inserted:
            self._after_commit(outcome, as_of)
        return outcome

    def _apply(self, tx: SepayTransaction, as_of: date) -> WebhookOutcome:
        codes = tx.order_codes
        with transaction.atomic():
            # điều kiện gia hạn tính trên trạng thái TRƯỚC khi ghi
            eligibility: Dict[str, Optional[RenewalEligibility]] = {}
            orders: Dict[str, Order] = {}
            for code in codes:
                order = ledger_service.lock_active(code)
                if order is not None:
                    orders[code] = order
                eligibility[code] = eligibility_of(order, as_of) if order else None

            receipt = self.receipt_service.record(tx)
            outcome = WebhookOutcome(
                inserted=receipt.inserted,
                duplicate=receipt.duplicate,
                order_codes=list(codes),
                receipt_id=receipt.receipt.pk,
                renewal_codes=[c for c in codes if eligibility.get(c) and eligibility[c].eligible],
            )
            if not receipt.inserted:
                return outcome

            # nhiều mã đơn trong một lần chuyển: không tự chia số tiền
            reference_import = tx.amount if len(codes) == 1 else None
            covers_price = self._covers_price(tx, orders.values())
            for code in codes:
                state = eligibility.get(code)
                if state is None or state.eligible:
                    # đơn gia hạn sẽ cộng công nợ trong RenewalService
                    continue

                order = orders[code]
                ensured = self.balance_service.ensure_supplier_cost(order, reference_import=reference_import)
                if ensured.supplier is not None and ensured.price > 0:
                    self.balance_service.apply_to_balance(ensured.supplier, ensured.price, as_of)

                if covers_price:
                    ledger_service.transition_status(code, OrderStatus.PAID, expected=OrderStatus.UNPAID)

        return outcome

    @staticmethod
    def _covers_price(tx: SepayTransaction, orders) -> bool:
        """Số tiền chuyển đủ tổng giá bán các đơn Chưa Thanh Toán thì mới chuyển Đã Thanh Toán."""
        owed = sum(
            (Decimal(o.price or 0) for o in orders if o.status == OrderStatus.UNPAID),
            Decimal("0"),
        )
        return Decimal(tx.amount or 0) >= owed

    def _after_commit(self, outcome: WebhookOutcome, as_of: date) -> None:
        for code in outcome.order_codes:
            stage = "fetch"
            try:
                order = ledger_service.find_active(code)
                if order is None:
                    continue
                state = eligibility_of(order, as_of)
                # đơn đã cộng công nợ trong transaction thì không gia hạn lần nữa
                if code in outcome.renewal_codes and state.eligible:
                    stage = "renewal"
                    result = self.renewal_service.apply_renewal(
                        order.order_code,
                        force_renewal=state.force_renewal,
                        needs_status_reset=state.needs_status_reset,
                        as_of=as_of,
                    )
                    if result.process_type == "error":
                        raise PostCommitFailure(order.order_code, stage, str(result.details))
                    if result.success:
                        outcome.renewed.append(order.order_code)
                elif order.status == OrderStatus.UNPAID and order.check_flag is None:
                    stage = "check_flag"
                    updated = Order.objects.filter(
                        pk=order.pk, check_flag__isnull=True
                    ).update(check_flag=False)
                    if updated:
                        outcome.marked_checked.append(order.order_code)
            except Exception as exc:
                failure = exc if isinstance(exc, PostCommitFailure) else PostCommitFailure(code, stage, str(exc))
                outcome.post_commit_failures.append(failure)
                logger.error(
                    "Post-commit step failed",
                    exc_info=True,
                    extra={
                        "context": {"order_code": code, "stage": failure.stage, "error": str(failure)},
                        "channel": "webhook",
                    },
                )
