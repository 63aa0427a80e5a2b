import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import List, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.orders.models import EXPIRED_ARCHIVABLE_STATUSES, Order, OrderStatus
from apps.orders.services import ledger_service
from apps.scheduler.clients.backup_client import PgDumpBackup
from core.clock import business_today
from core.exceptions import TransactionalFailure

logger = logging.getLogger("app.scheduler")

# còn <= số ngày này thì đơn Đã Thanh Toán chuyển sang Cần Gia Hạn
RENEWAL_NOTICE_DAYS = 4


@dataclass(frozen=True)
class MaintenanceJobState:
    last_run_at: Optional[datetime] = None
    last_run_date: Optional[date] = None
    runs: int = 0


@dataclass
class MaintenanceReport:
    as_of: date
    trigger: str
    archived: List[str] = field(default_factory=list)
    marked_renewal: List[str] = field(default_factory=list)
    deleted: int = 0
    marked_expired: List[str] = field(default_factory=list)
    backup_path: Optional[str] = None
    backup_error: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "as_of": self.as_of.isoformat(),
            "trigger": self.trigger,
            "archived": self.archived,
            "marked_renewal": self.marked_renewal,
            "deleted": self.deleted,
            "marked_expired": self.marked_expired,
            "backup_path": self.backup_path,
            "backup_error": self.backup_error,
        }


class DailyMaintenanceService:
    """
    Job hằng ngày (00:01 theo APP_TIMEZONE), tất cả trong một transaction:
    1. đơn đã quá hạn (Đã Thanh Toán / Cần Gia Hạn / Hết Hạn) -> order_expired
    2. Đã Thanh Toán còn 0..4 ngày -> Cần Gia Hạn
    3. xoá các đơn ở bước 1 khỏi order_list
    4. Cần Gia Hạn còn 0 ngày -> Hết Hạn
    Sau commit mới chạy backup; backup lỗi chỉ ghi log.
    """

    def __init__(self, backup_client=None):
        self.backup_client = backup_client

    def run(
        self,
        state: Optional[MaintenanceJobState] = None,
        as_of: Optional[date] = None,
        trigger: str = "cron",
        backup: bool = True,
    ) -> Tuple[MaintenanceReport, MaintenanceJobState]:
        state = state or MaintenanceJobState()
        as_of = as_of or business_today()
        report = MaintenanceReport(as_of=as_of, trigger=trigger)

        logger.info(
            "Daily maintenance started",
            extra={"context": {"trigger": trigger, "as_of": as_of.isoformat()}, "channel": "scheduler"},
        )
        try:
            self._apply(report, as_of)
        except DatabaseError as exc:
            logger.exception(
                "Daily maintenance failed, transaction rolled back",
                extra={"context": {"trigger": trigger, "as_of": as_of.isoformat()}, "channel": "scheduler"},
            )
            raise TransactionalFailure(str(exc)) from exc

        logger.info(
            "Daily maintenance committed",
            extra={"context": report.as_dict(), "channel": "scheduler"},
        )

        if backup and getattr(settings, "ENABLE_DB_BACKUP", False):
            self._backup(report)

        new_state = replace(
            state,
            last_run_at=timezone.now(),
            last_run_date=as_of,
            runs=state.runs + 1,
        )
        return report, new_state

    def _apply(self, report: MaintenanceReport, as_of: date) -> None:
        with transaction.atomic():
            active = list(Order.objects.select_for_update().order_by("id"))

            to_archive: List[Order] = []
            renew_ids: List[int] = []
            zero_day_ids: List[int] = []
            for order in active:
                remaining = ledger_service.days_remaining(order, as_of)
                if remaining is None:
                    continue
                if remaining < 0:
                    if order.status in EXPIRED_ARCHIVABLE_STATUSES:
                        to_archive.append(order)
                    continue
                if remaining <= RENEWAL_NOTICE_DAYS and order.status == OrderStatus.PAID:
                    renew_ids.append(order.pk)
                    report.marked_renewal.append(order.order_code)
                if remaining == 0:
                    zero_day_ids.append(order.pk)

            archived_at = timezone.now()
            report.archived = ledger_service.archive_orders(
                to_archive, ledger_service.ArchivePartition.EXPIRED, archived_at=archived_at
            )

            if renew_ids:
                Order.objects.filter(pk__in=renew_ids, status=OrderStatus.PAID).update(status=OrderStatus.RENEWAL)

            report.deleted = ledger_service.remove_active([o.pk for o in to_archive])

            expiring = Order.objects.filter(pk__in=zero_day_ids, status=OrderStatus.RENEWAL)
            report.marked_expired = list(expiring.order_by("order_code").values_list("order_code", flat=True))
            if report.marked_expired:
                expiring.update(status=OrderStatus.EXPIRED)

    def _backup(self, report: MaintenanceReport) -> None:
        client = self.backup_client or PgDumpBackup()
        try:
            path = client.run()
            report.backup_path = str(path) if path else None
        except Exception as exc:
            report.backup_error = str(exc)
            logger.error(
                "Database backup failed",
                exc_info=True,
                extra={"context": {"as_of": report.as_of.isoformat()}, "channel": "backup"},
            )
