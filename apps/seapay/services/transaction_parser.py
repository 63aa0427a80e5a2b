import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from core.normalizers import int_from_text, normalize_amount, parse_flexible_date

ORDER_CODE_PATTERN = re.compile(r"MAV\w{3,}", re.IGNORECASE | re.ASCII)
SENDER_PATTERN = re.compile(r"NHAN\s+TU\s+([A-Za-z0-9]+)", re.IGNORECASE)


@dataclass
class SepayTransaction:
    content: str
    note: str
    description: str
    amount: int
    paid_date: Optional[date]
    raw_date: Optional[str]
    account_number: str = ""
    sender: str = ""
    provider_tx_id: Optional[int] = None
    reference_code: str = ""
    transfer_type: str = ""
    order_codes: List[str] = field(default_factory=list)
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def primary_order_code(self) -> str:
        return self.order_codes[0] if self.order_codes else ""


def _first(payload: Dict[str, Any], *keys, default=None):
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return default


def extract_order_codes(*texts) -> List[str]:
    """Mã MAV... trong nội dung, viết hoa, bỏ trùng, giữ thứ tự xuất hiện."""
    codes: List[str] = []
    for text in texts:
        if not text:
            continue
        for match in ORDER_CODE_PATTERN.findall(str(text)):
            code = match.upper()
            if code not in codes:
                codes.append(code)
    return codes


def extract_sender(text: Optional[str]) -> str:
    if not text:
        return ""
    match = SENDER_PATTERN.search(str(text))
    return match.group(1).strip() if match else ""


def parse_sepay_payload(payload: Optional[Dict[str, Any]]) -> Optional[SepayTransaction]:
    """
    Chuẩn hoá payload SePay (hoặc payload bọc trong "transaction").
    Trả về None nếu không có nội dung, ngày và số tiền.
    """
    if not payload or not isinstance(payload, dict):
        return None
    if isinstance(payload.get("transaction"), dict):
        payload = payload["transaction"]

    content = str(_first(payload, "content", "description", "note", "transaction_content", default="") or "")
    raw_date = _first(payload, "transactionDate", "transaction_date", "transferTime", "time")
    raw_amount = _first(payload, "transferAmount", "amount_in", "amountIn", "amount", default=0)

    if not content and not raw_date and not raw_amount:
        return None

    note = str(_first(payload, "note", "description", "content", default="") or "")
    description = str(payload.get("description") or "")

    return SepayTransaction(
        content=content,
        note=note,
        description=description,
        amount=normalize_amount(raw_amount),
        paid_date=parse_flexible_date(raw_date),
        raw_date=str(raw_date) if raw_date is not None else None,
        account_number=str(_first(payload, "accountNumber", "account_number", default="") or ""),
        sender=extract_sender(content or description),
        provider_tx_id=int_from_text(payload.get("id")),
        reference_code=str(payload.get("referenceCode") or ""),
        transfer_type=str(payload.get("transferType") or ""),
        order_codes=extract_order_codes(content, note, description),
        payload=payload,
    )
