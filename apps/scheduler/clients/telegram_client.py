import html
import logging
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings

from core.normalizers import normalize_money

logger = logging.getLogger("app.notify")

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
MAX_MESSAGE_LENGTH = 4000

NOTICE_TITLES = {
    "zero_days": "⛔ ĐƠN HẾT HẠN HÔM NAY",
    "four_days": "⏰ ĐƠN CẦN GIA HẠN (CÒN 4 NGÀY)",
}


def format_currency(value: Any) -> str:
    amount = normalize_money(value, fallback=0)
    return f"{int(amount):,}".replace(",", ".") + " đ"


def _escape(value: Any) -> str:
    return html.escape(str(value or ""))


def build_renewal_message(details: Dict[str, Any]) -> str:
    lines = [
        "✅ <b>GIA HẠN TỰ ĐỘNG THÀNH CÔNG</b>",
        "──── Thông Tin Đơn Hàng ────",
        f"🪪 Mã Đơn: <code>{_escape(details.get('order_code'))}</code>",
        f"📦 Sản Phẩm: {_escape(details.get('product_code'))}",
        f"ℹ️ Thông tin: {_escape(details.get('customer_info'))}",
    ]
    if details.get("slot"):
        lines.append(f"🎯 Slot: {_escape(details['slot'])}")
    lines += [
        f"📅 Ngày Đăng Ký: {_escape(details.get('registration_date'))}",
        f"📆 Hết Hạn: {_escape(details.get('expiry_date'))}",
        f"💵 Giá Bán: {format_currency(details.get('price'))}",
        "──── Thông Tin Nhà Cung Cấp ────",
    ]
    if details.get("supplier_name"):
        lines.append(f"🏷 Nhà Cung Cấp: {_escape(details['supplier_name'])}")
    lines.append(f"💰 Giá Nhập: {format_currency(details.get('cost'))}")
    return "\n".join(lines)


def build_notice_messages(kind: str, records: List[Dict[str, Any]]) -> List[str]:
    """Gom các đơn thành một hoặc nhiều tin nhắn, mỗi tin dưới giới hạn độ dài của Telegram."""
    header = f"<b>{NOTICE_TITLES.get(kind, kind)}</b> ({len(records)} đơn)"
    blocks = []
    for record in records:
        block = [
            f"🪪 <code>{_escape(record.get('order_code'))}</code> | {_escape(record.get('product_code'))}",
            f"👤 {_escape(record.get('customer'))} {_escape(record.get('contact'))}".rstrip(),
            f"ℹ️ {_escape(record.get('customer_info'))}",
        ]
        if record.get("slot"):
            block.append(f"🎯 Slot: {_escape(record['slot'])}")
        block.append(
            f"📅 {_escape(record.get('registration_date'))} → {_escape(record.get('expiry_date'))}"
            f" ({_escape(record.get('days'))} ngày)"
        )
        block.append(f"💵 {format_currency(record.get('price'))}")
        blocks.append("\n".join(block))

    messages: List[str] = []
    current = header
    for block in blocks:
        if len(current) + len(block) + 2 > MAX_MESSAGE_LENGTH:
            messages.append(current)
            current = block
        else:
            current = f"{current}\n\n{block}"
    messages.append(current)
    return messages


class TelegramNotifier:
    """Gửi thông báo qua Telegram Bot API (sendMessage, parse_mode HTML)."""

    def __init__(self, token: str, chat_id: str, topic_id: Optional[int] = None, timeout: int = 10, session=None):
        self.token = token
        self.chat_id = chat_id
        self.topic_id = topic_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, text: str, topic_id: Optional[int] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if topic_id:
            payload["message_thread_id"] = topic_id

        response = self.session.post(
            TELEGRAM_API_URL.format(token=self.token),
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def notify_renewed(self, details: Dict[str, Any]) -> None:
        self.send(build_renewal_message(details), topic_id=self.topic_id)
        logger.info(
            "Renewal notification sent",
            extra={"context": {"order_code": details.get("order_code")}, "channel": "notify"},
        )

    def notify_expiring(self, kind: str, records: List[Dict[str, Any]]) -> None:
        if not records:
            return
        for message in build_notice_messages(kind, records):
            self.send(message)
        logger.info(
            "Expiry notice sent",
            extra={"context": {"kind": kind, "count": len(records)}, "channel": "notify"},
        )


class NullNotifier:
    """Dùng khi chưa cấu hình bot: chỉ ghi log."""

    def notify_renewed(self, details: Dict[str, Any]) -> None:
        logger.info(
            "Telegram not configured, renewal notice skipped",
            extra={"context": {"order_code": details.get("order_code")}, "channel": "notify"},
        )

    def notify_expiring(self, kind: str, records: List[Dict[str, Any]]) -> None:
        logger.info(
            "Telegram not configured, expiry notice skipped",
            extra={"context": {"kind": kind, "count": len(records)}, "channel": "notify"},
        )


def get_notifier():
    token = getattr(settings, "TELEGRAM_BOT_TOKEN", "")
    chat_id = getattr(settings, "TELEGRAM_CHAT_ID", "")
    if not token or not chat_id:
        return NullNotifier()
    return TelegramNotifier(
        token=token,
        chat_id=chat_id,
        topic_id=getattr(settings, "RENEWAL_TOPIC_ID", None),
        timeout=getattr(settings, "TELEGRAM_TIMEOUT", 10),
    )
