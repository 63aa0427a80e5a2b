from decimal import Decimal

from ninja import Schema


class CancelOrderResponse(Schema):
    message: str
    order_code: str
    moved_to: str
    refund: Decimal


class MessageResponse(Schema):
    message: str
