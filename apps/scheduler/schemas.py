from typing import List, Optional

from ninja import Schema


class RunMaintenanceRequest(Schema):
    date: Optional[str] = None
    backup: bool = True


class MaintenanceReportOut(Schema):
    message: str
    as_of: str
    trigger: str
    archived: List[str]
    marked_renewal: List[str]
    deleted: int
    marked_expired: List[str]
    backup_path: Optional[str] = None
    backup_error: Optional[str] = None


class MessageResponse(Schema):
    message: str
