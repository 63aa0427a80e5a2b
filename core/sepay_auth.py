import hashlib
import hmac
import re
from typing import Optional

from django.conf import settings
from django.http import HttpRequest
from ninja.security import APIKeyHeader

from core.exceptions import AuthenticationError

SIGNATURE_HEADERS = (
    "X-SEPAY-SIGNATURE",
    "X-Signature",
    "Signature",
    "X-Webhook-Signature",
)
SIGNATURE_QUERY_PARAMS = ("signature", "sign")

_APIKEY_PREFIX = re.compile(r"^Apikey\s+(.+)$", re.IGNORECASE)


def resolve_signature(request: HttpRequest) -> Optional[str]:
    for header in SIGNATURE_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    for param in SIGNATURE_QUERY_PARAMS:
        value = request.GET.get(param)
        if value:
            return value
    return None


def verify_signature(raw_body: bytes, signature: Optional[str]) -> bool:
    secret = getattr(settings, "SEPAY_WEBHOOK_SECRET", "") or ""
    if not secret or not signature or not raw_body:
        return False
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, str(signature).strip().lower())


def extract_api_key(request: HttpRequest) -> str:
    """`Authorization: Apikey <key>`, `Authorization: <key>` hoặc `X-API-KEY: <key>`."""
    raw = (request.headers.get("Authorization") or request.headers.get("X-API-KEY") or "").strip()
    match = _APIKEY_PREFIX.match(raw)
    if match:
        return match.group(1).strip()
    if raw and not raw.lower().startswith("apikey"):
        return raw
    return ""


def is_valid_api_key(key: Optional[str]) -> bool:
    expected = (getattr(settings, "SEPAY_API_KEY", "") or "").strip()
    if not expected or not key:
        return False
    return hmac.compare_digest(str(key).strip().encode("utf-8"), expected.encode("utf-8"))


def authenticate_webhook(request: HttpRequest) -> str:
    """Trả về phương thức xác thực đã dùng; raise AuthenticationError nếu cả hai đều sai."""
    if verify_signature(request.body, resolve_signature(request)):
        return "signature"
    if is_valid_api_key(extract_api_key(request)):
        return "api_key"
    raise AuthenticationError("Invalid Signature")


class SepayApiKeyAuth(APIKeyHeader):
    """Route-level guard cho các endpoint vận hành (retry, settle, run job)."""

    param_name = "X-API-KEY"

    def _get_key(self, request: HttpRequest) -> Optional[str]:
        return extract_api_key(request) or None

    def authenticate(self, request: HttpRequest, key: Optional[str]):
        if is_valid_api_key(key):
            return "sepay-operator"
        return None
