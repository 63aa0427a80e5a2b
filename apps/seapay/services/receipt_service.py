import logging
import re
from dataclasses import dataclass

from django.db import connection

from apps.seapay.models import PaymentReceipt
from apps.seapay.services.transaction_parser import SepayTransaction
from core.clock import business_today

logger = logging.getLogger("app.webhook")


@dataclass
class ReceiptResult:
    inserted: bool
    duplicate: bool
    receipt: PaymentReceipt
    event_key: str


def _key_text(value) -> str:
    return re.sub(r"\s+", " ", str(value or "").strip()).lower()


def build_event_key(tx: SepayTransaction) -> str:
    """
    Định danh sự kiện thanh toán: ưu tiên id giao dịch SePay, rồi referenceCode,
    cuối cùng là khoá ghép mã đơn|ngày|số tiền|TK nhận|người gửi|nội dung.
    """
    if tx.provider_tx_id is not None:
        return f"sepay:{tx.provider_tx_id}"
    if tx.reference_code:
        return f"ref:{_key_text(tx.reference_code)}"
    paid_date = tx.paid_date.isoformat() if tx.paid_date else ""
    return "|".join(
        [
            _key_text(tx.primary_order_code),
            paid_date,
            str(tx.amount or 0),
            _key_text(tx.account_number),
            _key_text(tx.sender),
            _key_text(tx.note),
        ]
    )


class PaymentReceiptService:
    """Ghi biên nhận idempotent; phải chạy trong transaction của webhook."""

    lock_namespace = "sepay_payment_receipt"

    def _lock(self, event_key: str) -> None:
        # khoá theo event_key để hai webhook giống nhau không chen nhau
        if connection.vendor != "postgresql":
            return
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT pg_advisory_xact_lock(hashtext(%s), hashtext(%s))",
                [self.lock_namespace, event_key],
            )

    def record(self, tx: SepayTransaction) -> ReceiptResult:
        event_key = build_event_key(tx)
        self._lock(event_key)

        receipt, created = PaymentReceipt.objects.get_or_create(
            event_key=event_key,
            defaults={
                "order_code": tx.primary_order_code,
                "order_codes": list(tx.order_codes),
                "paid_date": tx.paid_date or business_today(),
                "amount": tx.amount,
                "receiver": tx.account_number,
                "sender": tx.sender,
                "note": tx.note,
                "provider_tx_id": tx.provider_tx_id,
                "reference_code": tx.reference_code,
                "payload": tx.payload,
            },
        )

        logger.info(
            "Payment receipt recorded" if created else "Duplicate payment receipt",
            extra={
                "context": {
                    "event_key": event_key,
                    "receipt_id": receipt.pk,
                    "order_codes": tx.order_codes,
                    "amount": tx.amount,
                },
                "channel": "webhook",
            },
        )
        return ReceiptResult(inserted=created, duplicate=not created, receipt=receipt, event_key=event_key)
