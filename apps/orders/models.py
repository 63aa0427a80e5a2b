from django.db import models
from django.db.models.functions import Lower
from django.utils import timezone

from core.normalizers import int_from_text, normalize_money, parse_flexible_date


class OrderStatus(models.TextChoices):
    UNPAID = "Chưa Thanh Toán", "Unpaid"
    PROCESSING = "Đang Xử Lý", "Processing"
    PAID = "Đã Thanh Toán", "Paid"
    RENEWAL = "Cần Gia Hạn", "Renewal"
    EXPIRED = "Hết Hạn", "Expired"
    CANCELED = "Đã Hủy", "Canceled"
    REFUNDED = "Đã Hoàn", "Refunded"
    PENDING_REFUND = "Chưa Hoàn", "Pending Refund"


# Chỉ các trạng thái này mới được chuyển sang order_expired
EXPIRED_ARCHIVABLE_STATUSES = (
    OrderStatus.PAID,
    OrderStatus.RENEWAL,
    OrderStatus.EXPIRED,
)


class OrderFields(models.Model):
    """
    Các cột nghiệp vụ dùng chung cho 3 phân vùng đơn hàng:
    order_list (đang hiệu lực), order_expired, order_canceled.
    """
    order_code = models.CharField(
        max_length=64,
        db_column="id_order",
        db_comment="Mã đơn hàng (MAVC..., MAVL...), không phân biệt hoa thường",
    )
    product_code = models.CharField(
        max_length=255,
        db_column="id_product",
        blank=True,
        default="",
        db_comment="Tên gói sản phẩm, chứa thời hạn dạng --<n>m",
    )
    customer_info = models.TextField(
        db_column="information_order",
        blank=True,
        default="",
        db_comment="Thông tin tài khoản / đơn",
    )
    customer = models.CharField(max_length=255, blank=True, default="")
    contact_link = models.CharField(max_length=500, db_column="contact", blank=True, default="")
    slot = models.CharField(max_length=100, blank=True, default="")
    registration_date = models.DateField(
        null=True,
        blank=True,
        db_column="order_date",
        db_comment="Ngày đăng ký đã chuẩn hoá",
    )
    duration_days = models.IntegerField(
        null=True,
        blank=True,
        db_column="days",
        db_comment="Số ngày đăng ký",
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_column="order_expired",
        db_comment="Ngày hết hạn; nếu trống thì = order_date + days - 1",
    )
    supplier_name = models.CharField(
        max_length=255,
        db_column="supply",
        blank=True,
        default="",
        db_comment="Tên nhà cung cấp",
    )
    cost = models.DecimalField(max_digits=18, decimal_places=2, default=0, db_comment="Giá nhập")
    price = models.DecimalField(max_digits=18, decimal_places=2, default=0, db_comment="Giá bán")
    note = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
        default=OrderStatus.UNPAID,
    )
    check_flag = models.BooleanField(
        null=True,
        blank=True,
        db_comment="NULL: chưa kiểm tra; FALSE: đã kiểm tra, vẫn chưa thanh toán; TRUE: buộc gia hạn",
    )

    BUSINESS_FIELDS = (
        "order_code",
        "product_code",
        "customer_info",
        "customer",
        "contact_link",
        "slot",
        "registration_date",
        "duration_days",
        "expiry_date",
        "supplier_name",
        "cost",
        "price",
        "note",
        "status",
        "check_flag",
    )

    class Meta:
        abstract = True

    def business_values(self) -> dict:
        return {name: getattr(self, name) for name in self.BUSINESS_FIELDS}

    @classmethod
    def from_raw(cls, **raw):
        """Tạo instance từ dữ liệu text thô (form, import), chuẩn hoá ngày và số."""
        values = dict(raw)
        for name in ("registration_date", "expiry_date"):
            if name in values:
                values[name] = parse_flexible_date(values[name])
        if "duration_days" in values:
            values["duration_days"] = int_from_text(values["duration_days"])
        for name in ("cost", "price"):
            if name in values:
                values[name] = normalize_money(values[name], fallback=0)
        if values.get("order_code"):
            values["order_code"] = str(values["order_code"]).strip().upper()
        return cls(**values)

    def __str__(self):
        return f"{self.order_code} - {self.status}"


class Order(OrderFields):
    class Meta:
        db_table = "order_list"
        db_table_comment = "Đơn hàng đang hiệu lực"
        constraints = [
            models.UniqueConstraint(Lower("order_code"), name="uniq_order_list_code_ci"),
        ]
        indexes = [
            models.Index(fields=["status"], name="idx_order_list_status"),
            models.Index(fields=["supplier_name"], name="idx_order_list_supply"),
        ]


class ExpiredOrder(OrderFields):
    archived_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "order_expired"
        db_table_comment = "Đơn đã hết hạn, chuyển một chiều từ order_list"
        constraints = [
            models.UniqueConstraint(fields=["order_code"], name="uniq_order_expired_code"),
        ]


class CanceledOrder(OrderFields):
    refund = models.DecimalField(max_digits=18, decimal_places=2, default=0, db_comment="Số tiền cần hoàn")
    canceled_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "order_canceled"
        db_table_comment = "Đơn bị huỷ, chờ hoàn tiền"
        constraints = [
            models.UniqueConstraint(fields=["order_code"], name="uniq_order_canceled_code"),
        ]


class ProductPrice(models.Model):
    """Bảng giá sản phẩm: hệ số giá CTV / khách lẻ / khuyến mãi."""
    product_name = models.CharField(max_length=255, db_column="san_pham", unique=True)
    pct_ctv = models.DecimalField(max_digits=10, decimal_places=4, null=True, blank=True)
    pct_khach = models.DecimalField(max_digits=10, decimal_places=4, null=True, blank=True)
    pct_promo = models.DecimalField(max_digits=10, decimal_places=4, null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "product_price"

    def __str__(self):
        return self.product_name
