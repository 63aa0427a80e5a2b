from django.http import HttpRequest
from ninja import Router

from apps.supplier.schemas import MessageResponse, SettleRoundRequest, SettleRoundResponse
from apps.supplier.services.balance_service import SupplierBalanceService
from core.exceptions import RoundNotFound, ValidationError
from core.sepay_auth import SepayApiKeyAuth

router = Router()
balance_service = SupplierBalanceService()


@router.post(
    "/rounds/{round_id}/settle",
    response={200: SettleRoundResponse, 400: MessageResponse, 404: MessageResponse},
    auth=SepayApiKeyAuth(),
)
def settle_round(request: HttpRequest, round_id: int, data: SettleRoundRequest):
    """Tất toán chu kỳ công nợ NCC; phần còn thiếu chuyển sang chu kỳ mới."""
    try:
        result = balance_service.settle_round(round_id, paid_amount=data.paid_amount)
    except RoundNotFound as e:
        return 404, {"message": str(e)}
    except ValidationError as e:
        return 400, {"message": str(e)}

    return 200, {
        "message": "OK",
        "round_id": result.round_id,
        "supplier_id": result.supplier_id,
        "paid_amount": result.paid_amount,
        "settled_orders": result.settled_orders,
        "carryover": result.carryover,
        "carryover_round_id": result.carryover_round_id,
        "label": result.label,
    }
