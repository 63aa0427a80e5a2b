# core/exceptions.py
from typing import Optional


class ReconciliationError(Exception):
    """Base cho mọi lỗi nghiệp vụ của lõi đối soát."""


class AuthenticationError(ReconciliationError):
    """Sai / thiếu chữ ký và API key. Không có side effect nào được thực hiện."""


class ValidationError(ReconciliationError):
    """Payload không suy ra được giao dịch hoặc mã đơn."""


class TransactionalFailure(ReconciliationError):
    """Lỗi DB bên trong transaction; đã rollback toàn bộ, có thể retry cả request."""


class PostCommitFailure(ReconciliationError):
    """Lỗi sau commit (gia hạn, thông báo). Chỉ log, khôi phục qua retry endpoint."""

    def __init__(self, order_code: str, stage: str, message: Optional[str] = None):
        self.order_code = order_code
        self.stage = stage
        super().__init__(message or f"{stage} failed for {order_code}")


class OrderNotFound(ReconciliationError):
    pass


class RoundNotFound(ReconciliationError):
    pass
