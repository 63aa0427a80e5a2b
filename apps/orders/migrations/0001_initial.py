import django.db.models.functions.text
import django.utils.timezone
from django.db import migrations, models


STATUS_CHOICES = [
    ("Chưa Thanh Toán", "Unpaid"),
    ("Đang Xử Lý", "Processing"),
    ("Đã Thanh Toán", "Paid"),
    ("Cần Gia Hạn", "Renewal"),
    ("Hết Hạn", "Expired"),
    ("Đã Hủy", "Canceled"),
    ("Đã Hoàn", "Refunded"),
    ("Chưa Hoàn", "Pending Refund"),
]


def order_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        (
            "order_code",
            models.CharField(
                db_column="id_order",
                db_comment="Mã đơn hàng (MAVC..., MAVL...), không phân biệt hoa thường",
                max_length=64,
            ),
        ),
        (
            "product_code",
            models.CharField(
                blank=True,
                db_column="id_product",
                db_comment="Tên gói sản phẩm, chứa thời hạn dạng --<n>m",
                default="",
                max_length=255,
            ),
        ),
        (
            "customer_info",
            models.TextField(
                blank=True,
                db_column="information_order",
                db_comment="Thông tin tài khoản / đơn",
                default="",
            ),
        ),
        ("customer", models.CharField(blank=True, default="", max_length=255)),
        ("contact_link", models.CharField(blank=True, db_column="contact", default="", max_length=500)),
        ("slot", models.CharField(blank=True, default="", max_length=100)),
        (
            "registration_date",
            models.DateField(blank=True, db_column="order_date", db_comment="Ngày đăng ký đã chuẩn hoá", null=True),
        ),
        (
            "duration_days",
            models.IntegerField(blank=True, db_column="days", db_comment="Số ngày đăng ký", null=True),
        ),
        (
            "expiry_date",
            models.DateField(
                blank=True,
                db_column="order_expired",
                db_comment="Ngày hết hạn; nếu trống thì = order_date + days - 1",
                null=True,
            ),
        ),
        (
            "supplier_name",
            models.CharField(blank=True, db_column="supply", db_comment="Tên nhà cung cấp", default="", max_length=255),
        ),
        ("cost", models.DecimalField(db_comment="Giá nhập", decimal_places=2, default=0, max_digits=18)),
        ("price", models.DecimalField(db_comment="Giá bán", decimal_places=2, default=0, max_digits=18)),
        ("note", models.TextField(blank=True, default="")),
        ("status", models.CharField(choices=STATUS_CHOICES, default="Chưa Thanh Toán", max_length=32)),
        (
            "check_flag",
            models.BooleanField(
                blank=True,
                db_comment="NULL: chưa kiểm tra; FALSE: đã kiểm tra, vẫn chưa thanh toán; TRUE: buộc gia hạn",
                null=True,
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=order_fields(),
            options={
                "db_table": "order_list",
                "db_table_comment": "Đơn hàng đang hiệu lực",
            },
        ),
        migrations.CreateModel(
            name="ExpiredOrder",
            fields=order_fields() + [
                ("archived_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "order_expired",
                "db_table_comment": "Đơn đã hết hạn, chuyển một chiều từ order_list",
            },
        ),
        migrations.CreateModel(
            name="CanceledOrder",
            fields=order_fields() + [
                (
                    "refund",
                    models.DecimalField(db_comment="Số tiền cần hoàn", decimal_places=2, default=0, max_digits=18),
                ),
                ("canceled_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "order_canceled",
                "db_table_comment": "Đơn bị huỷ, chờ hoàn tiền",
            },
        ),
        migrations.CreateModel(
            name="ProductPrice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_name", models.CharField(db_column="san_pham", max_length=255, unique=True)),
                ("pct_ctv", models.DecimalField(blank=True, decimal_places=4, max_digits=10, null=True)),
                ("pct_khach", models.DecimalField(blank=True, decimal_places=4, max_digits=10, null=True)),
                ("pct_promo", models.DecimalField(blank=True, decimal_places=4, max_digits=10, null=True)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "db_table": "product_price",
            },
        ),
        migrations.AddConstraint(
            model_name="order",
            constraint=models.UniqueConstraint(
                django.db.models.functions.text.Lower("order_code"), name="uniq_order_list_code_ci"
            ),
        ),
        migrations.AddIndex(
            model_name="order",
            index=models.Index(fields=["status"], name="idx_order_list_status"),
        ),
        migrations.AddIndex(
            model_name="order",
            index=models.Index(fields=["supplier_name"], name="idx_order_list_supply"),
        ),
        migrations.AddConstraint(
            model_name="expiredorder",
            constraint=models.UniqueConstraint(fields=("order_code",), name="uniq_order_expired_code"),
        ),
        migrations.AddConstraint(
            model_name="canceledorder",
            constraint=models.UniqueConstraint(fields=("order_code",), name="uniq_order_canceled_code"),
        ),
    ]
