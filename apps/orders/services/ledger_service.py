import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.orders.models import (
    CanceledOrder,
    EXPIRED_ARCHIVABLE_STATUSES,
    ExpiredOrder,
    Order,
    OrderStatus,
)
from core.clock import business_today
from core.exceptions import OrderNotFound, ValidationError

logger = logging.getLogger("app.orders")


class ArchivePartition:
    EXPIRED = "expired"
    CANCELED = "canceled"


def expiry_of(order) -> Optional[date]:
    if order.expiry_date:
        return order.expiry_date
    if order.registration_date and order.duration_days is not None:
        return order.registration_date + timedelta(days=order.duration_days - 1)
    return None


def days_remaining(order, as_of: date) -> Optional[int]:
    expiry = expiry_of(order)
    if expiry is None:
        return None
    return (expiry - as_of).days


def _code_filter(order_codes: Iterable[str]) -> Q:
    query = Q(pk__in=[])
    for code in order_codes:
        query |= Q(order_code__iexact=str(code).strip())
    return query


def find_active(order_code: str) -> Optional[Order]:
    if not order_code:
        return None
    return Order.objects.filter(order_code__iexact=order_code.strip()).first()


def lock_active(order_code: str) -> Optional[Order]:
    """Như find_active nhưng khoá dòng; phải gọi trong transaction.atomic()."""
    if not order_code:
        return None
    return (
        Order.objects.select_for_update()
        .filter(order_code__iexact=order_code.strip())
        .first()
    )


def transition_status(order_code: str, new_status: str, expected=None, **fields) -> int:
    """
    Update một dòng có điều kiện. Không tự mở transaction; caller bọc.

    expected: trạng thái bắt buộc hiện tại (một giá trị hoặc list). Hai writer
    chạy chồng nhau sẽ không áp cùng một chuyển trạng thái hai lần.
    """
    qs = Order.objects.filter(order_code__iexact=order_code.strip())
    if expected is not None:
        if isinstance(expected, (list, tuple, set)):
            qs = qs.filter(status__in=list(expected))
        else:
            qs = qs.filter(status=expected)
    updated = qs.update(status=new_status, **fields)
    logger.info(
        "Order status transition",
        extra={
            "context": {
                "order_code": order_code,
                "new_status": new_status,
                "expected": expected,
                "updated": updated,
            },
            "channel": "orders",
        },
    )
    return updated


def _archive_model(partition: str):
    if partition == ArchivePartition.EXPIRED:
        return ExpiredOrder
    if partition == ArchivePartition.CANCELED:
        return CanceledOrder
    raise ValidationError(f"Unknown archive partition: {partition}")


def archive_orders(orders: List[Order], partition: str = ArchivePartition.EXPIRED, **extra) -> List[str]:
    """
    Chèn bản sao vào phân vùng lưu trữ. Trùng mã thì bỏ qua (chạy lại không lỗi,
    không nhân bản). Trả về danh sách mã đã đưa vào lệnh insert.
    """
    model = _archive_model(partition)
    if partition == ArchivePartition.EXPIRED:
        invalid = [o.order_code for o in orders if o.status not in EXPIRED_ARCHIVABLE_STATUSES]
        if invalid:
            raise ValidationError(f"Orders not archivable as expired: {', '.join(invalid)}")

    rows = [model(**order.business_values(), **extra) for order in orders]
    model.objects.bulk_create(rows, ignore_conflicts=True)
    return [o.order_code for o in orders]


def remove_active(order_ids: List[int]) -> int:
    if not order_ids:
        return 0
    deleted, _ = Order.objects.filter(pk__in=order_ids).delete()
    return deleted


def archive_and_remove(order_codes: Iterable[str], partition: str = ArchivePartition.EXPIRED) -> List[str]:
    """Insert vào archive rồi mới xoá khỏi order_list, trong transaction của caller."""
    codes = [c for c in order_codes if c]
    if not codes:
        return []
    orders = list(Order.objects.filter(_code_filter(codes)))
    archived = archive_orders(orders, partition)
    remove_active([o.pk for o in orders])
    return archived


@dataclass
class CancelResult:
    order_code: str
    moved_to: str
    refund: Decimal = Decimal("0")


def remaining_refund(order: Order, as_of: date) -> Decimal:
    price = Decimal(order.price or 0)
    if not price:
        return Decimal("0")
    remaining = days_remaining(order, as_of)
    if not order.duration_days or remaining is None:
        return max(Decimal("0"), price.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    computed = price * max(0, remaining) / Decimal(order.duration_days)
    return max(Decimal("0"), computed.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cancel_order(order_code: str, as_of: Optional[date] = None) -> CancelResult:
    """
    Huỷ đơn:
    - chưa thanh toán và chưa kiểm tra -> xoá hẳn
    - còn dưới 4 ngày và trạng thái hợp lệ -> order_expired
    - còn lại -> order_canceled, trạng thái Chưa Hoàn kèm số tiền hoàn theo ngày còn lại
    """
    as_of = as_of or business_today()
    with transaction.atomic():
        order = lock_active(order_code)
        if order is None:
            raise OrderNotFound(f"Order {order_code} not found")

        if order.status == OrderStatus.UNPAID and order.check_flag is None:
            remove_active([order.pk])
            return CancelResult(order_code=order.order_code, moved_to="deleted")

        remaining = days_remaining(order, as_of)
        if (
            remaining is not None
            and remaining < 4
            and order.status in EXPIRED_ARCHIVABLE_STATUSES
        ):
            archive_orders([order], ArchivePartition.EXPIRED, archived_at=timezone.now())
            remove_active([order.pk])
            return CancelResult(order_code=order.order_code, moved_to=ArchivePartition.EXPIRED)

        refund = remaining_refund(order, as_of)
        order.status = OrderStatus.PENDING_REFUND
        order.check_flag = False
        archive_orders([order], ArchivePartition.CANCELED, refund=refund, canceled_at=timezone.now())
        remove_active([order.pk])

    logger.info(
        "Order canceled",
        extra={
            "context": {"order_code": order.order_code, "refund": str(refund)},
            "channel": "orders",
        },
    )
    return CancelResult(order_code=order.order_code, moved_to=ArchivePartition.CANCELED, refund=refund)
