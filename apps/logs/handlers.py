import json
import logging
import threading
from typing import Any, Dict

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, connection
from django.utils import timezone


def _json_safe(value: Dict[str, Any]) -> Dict[str, Any]:
    # Decimal / date trong context -> kiểu JSON thuần
    return json.loads(json.dumps(value or {}, cls=DjangoJSONEncoder, default=str))


class DatabaseLogHandler(logging.Handler):
    """Logging handler that persists records to the `logs` table."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - side-effect only
        try:
            values = {
                "level": record.levelname.lower(),
                "channel": getattr(record, "channel", record.name),
                "message": self.format(record),
                "context": _json_safe(getattr(record, "context", {})),
                "extra": _json_safe(getattr(record, "extra_data", {})),
                "environment": getattr(record, "environment", None) or getattr(settings, "APP_ENV", "local"),
                "created_at": timezone.now(),
            }
        except Exception:
            self.handleError(record)
            return

        def _emit_sync():
            from apps.logs.models import AppLog

            try:
                AppLog.objects.create(**values)
            except DatabaseError:
                # Table không sẵn sàng, bỏ qua để tránh crash
                return
            except Exception:  # pragma: no cover - never raise from logging
                self.handleError(record)
            finally:
                connection.close()

        # Chạy trong thread riêng: log không nằm trong transaction của request
        # nên vẫn còn sau khi transaction rollback
        thread = threading.Thread(target=_emit_sync)
        thread.daemon = True
        thread.start()
