from decimal import Decimal
from typing import List, Optional

from ninja import Schema


class SettleRoundRequest(Schema):
    paid_amount: Optional[Decimal] = None


class SettleRoundResponse(Schema):
    message: str
    round_id: int
    supplier_id: int
    paid_amount: Decimal
    settled_orders: List[str]
    carryover: Decimal
    carryover_round_id: Optional[int] = None
    label: str


class MessageResponse(Schema):
    message: str
