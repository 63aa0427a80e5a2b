from django.http import HttpRequest
from ninja import Router

from apps.orders.schemas import CancelOrderResponse, MessageResponse
from apps.orders.services import ledger_service
from core.exceptions import OrderNotFound
from core.sepay_auth import SepayApiKeyAuth

router = Router()


@router.post(
    "/{order_code}/cancel",
    response={200: CancelOrderResponse, 404: MessageResponse},
    auth=SepayApiKeyAuth(),
)
def cancel_order(request: HttpRequest, order_code: str):
    try:
        result = ledger_service.cancel_order(order_code)
    except OrderNotFound as e:
        return 404, {"message": str(e)}
    return 200, {
        "message": "OK",
        "order_code": result.order_code,
        "moved_to": result.moved_to,
        "refund": result.refund,
    }
