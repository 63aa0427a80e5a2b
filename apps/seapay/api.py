import json
import logging

from django.http import HttpRequest
from ninja import Router

from apps.seapay.schemas import MessageResponse, RenewalRetryRequest, RenewalRetryResponse
from apps.seapay.services.renewal_service import RenewalService
from apps.seapay.services.transaction_parser import parse_sepay_payload
from apps.seapay.services.webhook_service import SepayWebhookService
from core.exceptions import AuthenticationError, TransactionalFailure, ValidationError
from core.sepay_auth import SepayApiKeyAuth, authenticate_webhook

logger = logging.getLogger("app.webhook")

router = Router()


@router.post(
    "/webhook",
    response={200: MessageResponse, 400: MessageResponse, 403: MessageResponse, 500: MessageResponse},
)
def sepay_webhook(request: HttpRequest):
    """
    Nhận thông báo chuyển khoản từ SePay.
    Xác thực bằng chữ ký HMAC của body hoặc API key, sau đó ghi biên nhận,
    công nợ NCC và trạng thái đơn trong một transaction.
    """
    try:
        method = authenticate_webhook(request)
    except AuthenticationError as e:
        logger.warning(
            "Webhook rejected",
            extra={"context": {"path": request.path, "reason": str(e)}, "channel": "webhook"},
        )
        return 403, {"message": "Invalid Signature"}

    try:
        payload = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError):
        return 400, {"message": "Invalid JSON"}

    tx = parse_sepay_payload(payload)
    if tx is None:
        return 400, {"message": "Missing transaction"}

    logger.info(
        "Webhook received",
        extra={
            "context": {
                "auth": method,
                "order_codes": tx.order_codes,
                "amount": tx.amount,
                "provider_tx_id": tx.provider_tx_id,
            },
            "channel": "webhook",
        },
    )

    try:
        SepayWebhookService().process(tx)
    except ValidationError as e:
        return 400, {"message": str(e)}
    except TransactionalFailure:
        return 500, {"message": "Internal Error"}

    return 200, {"message": "OK"}


@router.post("/renewals/retry", response=RenewalRetryResponse, auth=SepayApiKeyAuth())
def retry_renewals(request: HttpRequest, data: RenewalRetryRequest):
    """Chạy lại gia hạn thủ công cho danh sách đơn, hoặc quét toàn bộ đơn đủ điều kiện."""
    summary = RenewalService().run_batch(order_codes=data.orders, force=data.force)
    return {
        "message": "OK",
        "total": summary.total,
        "succeeded": summary.succeeded,
        "failed": summary.failed,
        "results": summary.results,
    }
