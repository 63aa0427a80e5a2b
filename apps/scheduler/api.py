from django.http import HttpRequest
from ninja import Router

from apps.scheduler.schemas import MaintenanceReportOut, MessageResponse, RunMaintenanceRequest
from apps.scheduler.services.maintenance_service import DailyMaintenanceService
from core.exceptions import TransactionalFailure
from core.normalizers import parse_flexible_date
from core.sepay_auth import SepayApiKeyAuth

router = Router()
maintenance_service = DailyMaintenanceService()


@router.post(
    "/run",
    response={200: MaintenanceReportOut, 400: MessageResponse, 500: MessageResponse},
    auth=SepayApiKeyAuth(),
)
def run_maintenance(request: HttpRequest, data: RunMaintenanceRequest):
    """Chạy job bảo trì hằng ngày ngay lập tức (thay cho cron)."""
    as_of = None
    if data.date:
        as_of = parse_flexible_date(data.date)
        if as_of is None:
            return 400, {"message": f"Invalid date: {data.date}"}

    try:
        report, _ = maintenance_service.run(as_of=as_of, trigger="manual", backup=data.backup)
    except TransactionalFailure:
        return 500, {"message": "Internal Error"}
    return 200, {"message": "OK", **report.as_dict()}
