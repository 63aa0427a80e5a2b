# core/normalizers.py
"""
Chuẩn hoá ngày / số tiền dạng text trước khi đi vào ledger.

Mọi chỗ nhận dữ liệu từ bên ngoài (webhook, import, query báo cáo) đều phải
đi qua các hàm ở đây; tầng persistence chỉ nhận date/int đã chuẩn hoá.
Không hàm nào raise.
"""
import calendar
import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

_TIME_SUFFIX = r"(?:[ T].*)?"

# (regex, thứ tự group -> (year, month, day))
_DATE_SHAPES = (
    (re.compile(r"^(\d{2})/(\d{2})/(\d{4})" + _TIME_SUFFIX + r"$"), (3, 2, 1)),
    (re.compile(r"^(\d{2})-(\d{2})-(\d{4})" + _TIME_SUFFIX + r"$"), (3, 2, 1)),
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})" + _TIME_SUFFIX + r"$"), (1, 2, 3)),
    (re.compile(r"^(\d{4})/(\d{2})/(\d{2})" + _TIME_SUFFIX + r"$"), (1, 2, 3)),
    (re.compile(r"^(\d{4})(\d{2})(\d{2})$"), (1, 2, 3)),
)

_SIGNED_INT = re.compile(r"^-?\d+$")
_DOTTED_THOUSANDS = re.compile(r"^-?\d{1,3}(\.\d{3})+$")
_CURRENCY_NOISE = re.compile(r"(vnd|vnđ|đ|₫|d$)", re.IGNORECASE)
_PRODUCT_MONTHS = re.compile(r"--(\d+)m", re.IGNORECASE)
_DASH_VARIANTS = re.compile(r"[‐-―]")
_LOOSE_MONTH_SUFFIX = re.compile(r"-+\s*(\d+)\s*m\b", re.IGNORECASE)


def parse_flexible_date(value: Any) -> Optional[date]:
    """Trả về date hoặc None nếu không khớp định dạng nào."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None

    text = str(value).strip()
    if not text:
        return None

    for pattern, (y_idx, m_idx, d_idx) in _DATE_SHAPES:
        match = pattern.match(text)
        if not match:
            continue
        try:
            return date(
                int(match.group(y_idx)),
                int(match.group(m_idx)),
                int(match.group(d_idx)),
            )
        except ValueError:
            return None
    return None


def int_from_text(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not _SIGNED_INT.match(text):
        return None
    return int(text)


def _to_decimal(text: str) -> Optional[Decimal]:
    try:
        return Decimal(text)
    except (InvalidOperation, ValueError):
        return None


def normalize_money(value: Any, fallback: Any = 0):
    """
    "1,200,000đ", "1.200.000", " 350000 VND" -> int không âm.
    Giá trị âm hoặc không đọc được -> fallback.
    """
    if value is None or isinstance(value, bool):
        return fallback

    if isinstance(value, (int, float, Decimal)):
        number = _to_decimal(str(value))
    else:
        text = str(value).strip()
        text = _CURRENCY_NOISE.sub("", text)
        text = text.replace(",", "").replace(" ", "").replace(" ", "")
        if _DOTTED_THOUSANDS.match(text):
            text = text.replace(".", "")
        number = _to_decimal(text) if text else None

    if number is None or not number.is_finite():
        return fallback
    rounded = int(number.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if rounded < 0:
        return fallback
    return rounded


def normalize_amount(value: Any) -> int:
    """Số tiền chuyển khoản: bỏ phần thập phân, chỉ giữ chữ số."""
    if value is None or isinstance(value, bool):
        return 0
    text = str(value).split(".")[0]
    digits = re.sub(r"[^\d-]", "", text)
    try:
        return int(digits)
    except ValueError:
        return 0


def round_to_thousands(value: Any) -> int:
    numeric = normalize_money(value, fallback=0)
    if not numeric:
        return 0
    remainder = numeric % 1000
    if remainder == 0:
        return numeric
    if remainder >= 500:
        return numeric + (1000 - remainder)
    return numeric - remainder


def format_dmy(value: Optional[date]) -> str:
    if not value:
        return ""
    return value.strftime("%d/%m/%Y")


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def add_months_clamped(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(value.day, last_day))


def months_from_product(product_code: Any) -> int:
    """Số tháng của gói lấy từ tên sản phẩm, ví dụ "Netflix--3m" -> 3."""
    text = _DASH_VARIANTS.sub("-", str(product_code or ""))
    text = _LOOSE_MONTH_SUFFIX.sub(lambda m: f"--{m.group(1)}m", text)
    match = _PRODUCT_MONTHS.search(text)
    return int(match.group(1)) if match else 0
