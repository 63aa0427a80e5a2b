from django.apps import AppConfig


class SeapayConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.seapay"
    label = "seapay"
    verbose_name = "SePay Payment Receipts"
