import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Supplier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("supplier_name", models.CharField(db_comment="Tên nhà cung cấp", max_length=255)),
                ("number_bank", models.CharField(blank=True, default="", max_length=64)),
                ("bin_bank", models.CharField(blank=True, default="", max_length=32)),
                ("active_supply", models.BooleanField(default=True)),
            ],
            options={
                "db_table": settings.SUPPLIER_TABLE,
                "indexes": [models.Index(fields=["supplier_name"], name="idx_supplier_name")],
            },
        ),
        migrations.CreateModel(
            name="SupplierCost",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("price", models.DecimalField(db_comment="Giá nhập từ NCC", decimal_places=2, max_digits=18)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="supplier_costs",
                        to="orders.productprice",
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="costs",
                        to="supplier.supplier",
                    ),
                ),
            ],
            options={
                "db_table": "supplier_cost",
                "indexes": [models.Index(fields=["product", "supplier"], name="idx_supplier_cost_pair")],
            },
        ),
        migrations.CreateModel(
            name="SupplierPaymentRound",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "import_value",
                    models.DecimalField(
                        db_column="import",
                        db_comment="Tổng tiền nợ NCC trong chu kỳ",
                        decimal_places=2,
                        default=0,
                        max_digits=18,
                    ),
                ),
                (
                    "paid",
                    models.DecimalField(db_comment="Số tiền đã thanh toán", decimal_places=2, default=0, max_digits=18),
                ),
                (
                    "round",
                    models.CharField(blank=True, db_comment="Nhãn chu kỳ DD/MM/YYYY", default="", max_length=255),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("Chưa Thanh Toán", "Unpaid"), ("Đã Thanh Toán", "Paid")],
                        default="Chưa Thanh Toán",
                        max_length=32,
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        db_column="source_id",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_rounds",
                        to="supplier.supplier",
                    ),
                ),
            ],
            options={
                "db_table": "payment_supply",
            },
        ),
        migrations.AddConstraint(
            model_name="supplierpaymentround",
            constraint=models.UniqueConstraint(
                condition=models.Q(("status", "Chưa Thanh Toán")),
                fields=("supplier",),
                name="uniq_payment_supply_open_round",
            ),
        ),
        migrations.CreateModel(
            name="SupplierRoundEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[("opened", "Opened"), ("accrued", "Accrued"), ("settled", "Settled")],
                        max_length=16,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("occurred_on", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "payment_round",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="supplier.supplierpaymentround",
                    ),
                ),
            ],
            options={
                "db_table": "payment_supply_event",
                "ordering": ["id"],
            },
        ),
    ]
