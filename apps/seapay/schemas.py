from ninja import Schema
from typing import Any, List, Optional


class MessageResponse(Schema):
    message: str


# Webhook SePay gửi JSON tự do; các field thường gặp (tham khảo)
class SepayWebhookRequest(Schema):
    id: Optional[int] = None
    gateway: Optional[str] = None
    transactionDate: Optional[str] = None
    accountNumber: Optional[str] = None
    content: Optional[str] = None
    transferType: Optional[str] = None
    description: Optional[str] = None
    transferAmount: Optional[int] = None
    referenceCode: Optional[str] = None


class RenewalRetryRequest(Schema):
    orders: Optional[List[str]] = None
    force: bool = False


class RenewalResultOut(Schema):
    order_code: str
    success: bool
    process_type: str
    details: Any = None


class RenewalRetryResponse(Schema):
    message: str
    total: int
    succeeded: int
    failed: int
    results: List[RenewalResultOut]
