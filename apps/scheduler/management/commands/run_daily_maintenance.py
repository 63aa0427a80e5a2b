"""
Django management command chạy job bảo trì đơn hàng hằng ngày.

Usage:
    python manage.py run_daily_maintenance [--date 2026-01-31] [--no-backup]

Setup cronjob (giờ APP_TIMEZONE):
    1 0 * * * cd /path/to/project && python manage.py run_daily_maintenance >> /var/log/maintenance.log 2>&1
"""

import logging

from django.core.management.base import BaseCommand, CommandError

from apps.scheduler.services.maintenance_service import DailyMaintenanceService
from core.exceptions import TransactionalFailure
from core.normalizers import parse_flexible_date

logger = logging.getLogger("app.scheduler")


class Command(BaseCommand):
    help = "Archive expired orders and move due orders to Renewal / Expired"

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            default=None,
            help="Business date to run for (default: today in APP_TIMEZONE or MOCK_DATE)",
        )
        parser.add_argument(
            "--no-backup",
            action="store_true",
            help="Skip the database backup after the job commits",
        )

    def handle(self, *args, **options):
        as_of = None
        if options["date"]:
            as_of = parse_flexible_date(options["date"])
            if as_of is None:
                raise CommandError(f"Invalid --date value: {options['date']}")

        service = DailyMaintenanceService()
        try:
            report, _ = service.run(as_of=as_of, trigger="command", backup=not options["no_backup"])
        except TransactionalFailure as e:
            self.stdout.write(self.style.ERROR(f"✗ Daily maintenance rolled back: {e}"))
            raise CommandError(str(e)) from e

        self.stdout.write(
            self.style.SUCCESS(
                f"✓ {report.as_of.isoformat()} | "
                f"Archived: {len(report.archived)} | "
                f"Renewal: {len(report.marked_renewal)} | "
                f"Deleted: {report.deleted} | "
                f"Expired: {len(report.marked_expired)}"
            )
        )
        if report.backup_error:
            self.stdout.write(self.style.WARNING(f"Backup failed: {report.backup_error}"))
