from django.conf import settings
from django.db import models

from core.normalizers import format_dmy


class RoundStatus(models.TextChoices):
    UNPAID = "Chưa Thanh Toán", "Unpaid"
    PAID = "Đã Thanh Toán", "Paid"


class RoundEventKind(models.TextChoices):
    OPENED = "opened", "Opened"
    ACCRUED = "accrued", "Accrued"
    SETTLED = "settled", "Settled"


class Supplier(models.Model):
    supplier_name = models.CharField(max_length=255, db_comment="Tên nhà cung cấp")
    number_bank = models.CharField(max_length=64, blank=True, default="")
    bin_bank = models.CharField(max_length=32, blank=True, default="")
    active_supply = models.BooleanField(default=True)

    class Meta:
        # tên bảng cấu hình một lần lúc khởi động (SUPPLIER_TABLE)
        db_table = settings.SUPPLIER_TABLE
        indexes = [
            models.Index(fields=["supplier_name"], name="idx_supplier_name"),
        ]

    def __str__(self):
        return self.supplier_name


class SupplierCost(models.Model):
    product = models.ForeignKey(
        "orders.ProductPrice",
        on_delete=models.CASCADE,
        related_name="supplier_costs",
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.CASCADE,
        related_name="costs",
    )
    price = models.DecimalField(max_digits=18, decimal_places=2, db_comment="Giá nhập từ NCC")

    class Meta:
        db_table = "supplier_cost"
        indexes = [
            models.Index(fields=["product", "supplier"], name="idx_supplier_cost_pair"),
        ]


class SupplierPaymentRound(models.Model):
    """
    Một chu kỳ công nợ với NCC. Mỗi NCC có tối đa một chu kỳ Chưa Thanh Toán.
    Lịch sử chu kỳ nằm ở SupplierRoundEvent; `round` chỉ giữ nhãn mở chu kỳ.
    """
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        db_column="source_id",
        related_name="payment_rounds",
    )
    import_value = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=0,
        db_column="import",
        db_comment="Tổng tiền nợ NCC trong chu kỳ",
    )
    paid = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=0,
        db_comment="Số tiền đã thanh toán",
    )
    round = models.CharField(max_length=255, blank=True, default="", db_comment="Nhãn chu kỳ DD/MM/YYYY")
    status = models.CharField(max_length=32, choices=RoundStatus.choices, default=RoundStatus.UNPAID)

    class Meta:
        db_table = "payment_supply"
        constraints = [
            models.UniqueConstraint(
                fields=["supplier"],
                condition=models.Q(status="Chưa Thanh Toán"),
                name="uniq_payment_supply_open_round",
            ),
        ]

    @property
    def display_label(self) -> str:
        parts = [self.round] if self.round else []
        for event in self.events.all():
            if event.kind == RoundEventKind.SETTLED:
                parts.append(format_dmy(event.occurred_on))
        return " - ".join(parts)

    def __str__(self):
        return f"Round {self.pk} - {self.supplier_id} - {self.status}"


class SupplierRoundEvent(models.Model):
    payment_round = models.ForeignKey(
        SupplierPaymentRound,
        on_delete=models.CASCADE,
        related_name="events",
    )
    kind = models.CharField(max_length=16, choices=RoundEventKind.choices)
    amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    occurred_on = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "payment_supply_event"
        ordering = ["id"]
