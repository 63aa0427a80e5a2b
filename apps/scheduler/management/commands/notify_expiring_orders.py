"""
Gửi thông báo đơn hết hạn hôm nay (--days 0) hoặc còn 4 ngày (--days 4).

Usage:
    python manage.py notify_expiring_orders --days 4 [--date 2026-01-31]

Setup cronjob (giờ APP_TIMEZONE):
    0 7 * * *  cd /path/to/project && python manage.py notify_expiring_orders --days 4
    0 18 * * * cd /path/to/project && python manage.py notify_expiring_orders --days 0
"""

from django.core.management.base import BaseCommand, CommandError

from apps.scheduler.services.notice_service import FOUR_DAYS, ZERO_DAYS, ExpiryNoticeService
from core.normalizers import parse_flexible_date


class Command(BaseCommand):
    help = "Notify orders expiring today or in four days"

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, choices=[ZERO_DAYS, FOUR_DAYS], required=True)
        parser.add_argument("--date", default=None, help="Business date (default: today)")

    def handle(self, *args, **options):
        as_of = None
        if options["date"]:
            as_of = parse_flexible_date(options["date"])
            if as_of is None:
                raise CommandError(f"Invalid --date value: {options['date']}")

        records = ExpiryNoticeService().notify(options["days"], as_of=as_of, trigger="command")
        self.stdout.write(self.style.SUCCESS(f"✓ {len(records)} order(s) with {options['days']} day(s) left"))
