import logging
import subprocess
import tempfile
import time
from pathlib import Path
from typing import List, Optional

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger("app.backup")


class BackupError(Exception):
    pass


class PgDumpBackup:
    """
    Sao lưu database bằng pg_dump (định dạng custom) vào BACKUP_DIR,
    xoá các bản cũ hơn BACKUP_RETENTION_DAYS ngày.
    """

    file_prefix = "db-backup-"
    file_suffix = ".dump"

    def __init__(
        self,
        database_url: Optional[str] = None,
        pg_dump_path: Optional[str] = None,
        backup_dir: Optional[str] = None,
        retention_days: Optional[int] = None,
    ):
        self.database_url = database_url or getattr(settings, "BACKUP_DATABASE_URL", "")
        self.pg_dump_path = pg_dump_path or getattr(settings, "PG_DUMP_PATH", "pg_dump")
        self.backup_dir = Path(backup_dir or getattr(settings, "BACKUP_DIR", "") or tempfile.gettempdir())
        if retention_days is None:
            retention_days = getattr(settings, "BACKUP_RETENTION_DAYS", 7)
        self.retention_days = int(retention_days)

    def run(self) -> Optional[Path]:
        if not self.database_url:
            logger.warning(
                "BACKUP_DATABASE_URL not set, backup skipped",
                extra={"context": {}, "channel": "backup"},
            )
            return None

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        stamp = timezone.now().strftime("%Y-%m-%dT%H-%M-%S")
        out_path = self.backup_dir / f"{self.file_prefix}{stamp}{self.file_suffix}"

        args = [
            self.pg_dump_path,
            f"--dbname={self.database_url}",
            "--format=custom",
            f"--file={out_path}",
        ]
        try:
            completed = subprocess.run(args, capture_output=True, text=True)
        except OSError as exc:
            raise BackupError(f"pg_dump failed: {exc}") from exc
        if completed.returncode != 0:
            raise BackupError(f"pg_dump failed: {completed.stderr.strip() or completed.returncode}")

        logger.info(
            "Database backup created",
            extra={"context": {"path": str(out_path)}, "channel": "backup"},
        )
        self.prune()
        return out_path

    def prune(self) -> List[Path]:
        if self.retention_days <= 0 or not self.backup_dir.exists():
            return []
        cutoff = time.time() - self.retention_days * 24 * 60 * 60
        removed = []
        for path in self.backup_dir.glob(f"{self.file_prefix}*{self.file_suffix}"):
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed.append(path)
        if removed:
            logger.info(
                "Old backups removed",
                extra={"context": {"count": len(removed), "retention_days": self.retention_days}, "channel": "backup"},
            )
        return removed
