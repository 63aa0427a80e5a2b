import hashlib
import hmac
from datetime import date

TODAY = date(2026, 3, 10)
WEBHOOK_SECRET = "test-webhook-secret"
API_KEY = "test-api-key"


def sign(body: bytes) -> str:
    return hmac.new(WEBHOOK_SECRET.encode("utf-8"), body, hashlib.sha256).hexdigest()


def sepay_payload(content="MAVC001 thanh toan", amount=80000, tx_id=900001, **overrides):
    payload = {
        "id": tx_id,
        "gateway": "MBBank",
        "transactionDate": "2026-03-10 09:15:00",
        "accountNumber": "0011223344",
        "content": content,
        "transferType": "in",
        "description": f"BankAPINotify {content}",
        "transferAmount": amount,
        "referenceCode": f"FT{tx_id}",
    }
    payload.update(overrides)
    return payload
