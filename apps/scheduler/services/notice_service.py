import logging
from datetime import date
from typing import Any, Dict, List, Optional

from apps.orders.models import Order, OrderStatus
from apps.orders.services import ledger_service
from apps.orders.services.pricing_service import PricingService
from apps.scheduler.clients.telegram_client import get_notifier
from core.clock import business_today
from core.normalizers import format_dmy

logger = logging.getLogger("app.scheduler")

ZERO_DAYS = 0
FOUR_DAYS = 4

# số ngày còn lại -> (loại thông báo, trạng thái cần có)
NOTICE_RULES = {
    ZERO_DAYS: ("zero_days", OrderStatus.EXPIRED),
    FOUR_DAYS: ("four_days", OrderStatus.RENEWAL),
}


class ExpiryNoticeService:
    """Truy vấn chỉ đọc các đơn sắp/đã hết hạn và gửi một thông báo cho mỗi lần chạy."""

    def __init__(self, notifier=None, pricing=None):
        self.notifier = notifier or get_notifier()
        self.pricing = pricing or PricingService()

    def select_due(self, days: int, as_of: Optional[date] = None) -> List[Order]:
        if days not in NOTICE_RULES:
            raise ValueError(f"Unsupported notice window: {days}")
        as_of = as_of or business_today()
        _, status = NOTICE_RULES[days]
        return [
            order
            for order in Order.objects.filter(status=status).order_by("order_code")
            if ledger_service.days_remaining(order, as_of) == days
        ]

    def format_record(self, order: Order, as_of: date, quote_price: bool = False) -> Dict[str, Any]:
        price = order.price
        if quote_price:
            # đơn sắp gia hạn: báo giá theo bảng giá hiện tại
            price = self.pricing.quote(order, as_of).price
        return {
            "order_code": order.order_code,
            "product_code": order.product_code,
            "customer": order.customer,
            "contact": order.contact_link,
            "customer_info": order.customer_info,
            "slot": order.slot,
            "registration_date": format_dmy(order.registration_date),
            "expiry_date": format_dmy(ledger_service.expiry_of(order)),
            "days": order.duration_days,
            "price": price,
            "days_left": ledger_service.days_remaining(order, as_of),
        }

    def collect(self, days: int, as_of: Optional[date] = None) -> List[Dict[str, Any]]:
        as_of = as_of or business_today()
        orders = self.select_due(days, as_of)
        return [self.format_record(order, as_of, quote_price=days == FOUR_DAYS) for order in orders]

    def notify(self, days: int, as_of: Optional[date] = None, trigger: str = "cron") -> List[Dict[str, Any]]:
        as_of = as_of or business_today()
        kind, _ = NOTICE_RULES.get(days, (None, None))
        records = self.collect(days, as_of)
        logger.info(
            "Expiry notice query finished",
            extra={
                "context": {"kind": kind, "trigger": trigger, "as_of": as_of.isoformat(), "count": len(records)},
                "channel": "scheduler",
            },
        )
        if not records:
            return records

        try:
            self.notifier.notify_expiring(kind, records)
        except Exception:
            logger.exception(
                "Expiry notice delivery failed",
                extra={"context": {"kind": kind, "count": len(records)}, "channel": "notify"},
            )
        return records

    def notify_zero_days(self, as_of: Optional[date] = None, trigger: str = "cron") -> List[Dict[str, Any]]:
        return self.notify(ZERO_DAYS, as_of, trigger)

    def notify_four_days(self, as_of: Optional[date] = None, trigger: str = "cron") -> List[Dict[str, Any]]:
        return self.notify(FOUR_DAYS, as_of, trigger)
