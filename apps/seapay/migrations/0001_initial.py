from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PaymentReceipt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event_key",
                    models.CharField(
                        db_comment="sepay:<id>, ref:<referenceCode> hoặc khoá ghép từ nội dung giao dịch",
                        max_length=512,
                        unique=True,
                    ),
                ),
                (
                    "order_code",
                    models.CharField(
                        blank=True,
                        db_column="id_order",
                        db_comment="Mã đơn đầu tiên trong nội dung chuyển khoản",
                        default="",
                        max_length=64,
                    ),
                ),
                (
                    "order_codes",
                    models.JSONField(blank=True, db_comment="Tất cả mã đơn trích được", default=list),
                ),
                ("paid_date", models.DateField(db_column="payment_date")),
                ("amount", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                (
                    "receiver",
                    models.CharField(blank=True, db_comment="Số tài khoản nhận", default="", max_length=64),
                ),
                ("sender", models.CharField(blank=True, default="", max_length=128)),
                ("note", models.TextField(blank=True, default="")),
                (
                    "provider_tx_id",
                    models.BigIntegerField(blank=True, db_comment="ID giao dịch phía SePay", null=True),
                ),
                ("reference_code", models.CharField(blank=True, default="", max_length=128)),
                (
                    "payload",
                    models.JSONField(blank=True, db_comment="Nguyên payload webhook để đối soát", default=dict),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "payment_receipt",
                "db_table_comment": "Biên nhận thanh toán, ranh giới idempotent của webhook",
                "indexes": [
                    models.Index(fields=["order_code"], name="idx_payment_receipt_order"),
                    models.Index(fields=["paid_date"], name="idx_payment_receipt_date"),
                ],
            },
        ),
    ]
