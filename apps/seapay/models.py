from django.db import models


class PaymentReceipt(models.Model):
    """
    Biên nhận thanh toán từ webhook SePay. Chỉ thêm, không sửa / xoá.
    `event_key` là ranh giới idempotent: một sự kiện SePay chỉ có tối đa một dòng
    dù webhook được gửi lại bao nhiêu lần.
    """
    event_key = models.CharField(
        max_length=512,
        unique=True,
        db_comment="sepay:<id>, ref:<referenceCode> hoặc khoá ghép từ nội dung giao dịch",
    )
    order_code = models.CharField(
        max_length=64,
        db_column="id_order",
        blank=True,
        default="",
        db_comment="Mã đơn đầu tiên trong nội dung chuyển khoản",
    )
    order_codes = models.JSONField(default=list, blank=True, db_comment="Tất cả mã đơn trích được")
    paid_date = models.DateField(db_column="payment_date")
    amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    receiver = models.CharField(max_length=64, blank=True, default="", db_comment="Số tài khoản nhận")
    sender = models.CharField(max_length=128, blank=True, default="")
    note = models.TextField(blank=True, default="")
    provider_tx_id = models.BigIntegerField(null=True, blank=True, db_comment="ID giao dịch phía SePay")
    reference_code = models.CharField(max_length=128, blank=True, default="")
    payload = models.JSONField(default=dict, blank=True, db_comment="Nguyên payload webhook để đối soát")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "payment_receipt"
        db_table_comment = "Biên nhận thanh toán, ranh giới idempotent của webhook"
        indexes = [
            models.Index(fields=["order_code"], name="idx_payment_receipt_order"),
            models.Index(fields=["paid_date"], name="idx_payment_receipt_date"),
        ]

    def __str__(self):
        return f"Receipt {self.pk} - {self.order_code} - {self.amount}"
