# core/clock.py
import logging
from datetime import date

from django.conf import settings
from django.utils import timezone

from core.normalizers import parse_flexible_date

logger = logging.getLogger("app.scheduler")


def business_today() -> date:
    """Ngày làm việc hiện tại theo APP_TIMEZONE; MOCK_DATE ghi đè khi test."""
    mock_date = getattr(settings, "MOCK_DATE", None)
    if mock_date:
        parsed = parse_flexible_date(mock_date)
        if parsed:
            logger.warning(
                "Using MOCK_DATE as business date",
                extra={"context": {"mock_date": mock_date}, "channel": "scheduler"},
            )
            return parsed
    return timezone.localdate()
