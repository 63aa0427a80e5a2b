import json
from datetime import date, timedelta
from unittest import mock

from django.db import DatabaseError

from apps.orders.models import Order, OrderStatus
from apps.seapay.models import PaymentReceipt
from apps.supplier.models import SupplierPaymentRound
from tests.helpers import API_KEY, TODAY, sepay_payload, sign


def test_missing_credentials_rejected_without_side_effects(post_webhook, make_order):
    make_order(order_code="MAVC001", status=OrderStatus.UNPAID)

    response = post_webhook(sepay_payload(), signed=False)

    assert response.status_code == 403
    assert response.json() == {"message": "Invalid Signature"}
    assert PaymentReceipt.objects.count() == 0
    assert Order.objects.get(order_code="MAVC001").status == OrderStatus.UNPAID


def test_wrong_signature_rejected(post_webhook, db):
    response = post_webhook(sepay_payload(), HTTP_X_SEPAY_SIGNATURE="deadbeef")

    assert response.status_code == 403
    assert PaymentReceipt.objects.count() == 0


def test_api_key_variants_accepted(post_webhook, make_order):
    make_order(order_code="MAVC001", status=OrderStatus.UNPAID)
    make_order(order_code="MAVC002", status=OrderStatus.UNPAID)
    make_order(order_code="MAVC003", status=OrderStatus.UNPAID)

    prefixed = post_webhook(sepay_payload("MAVC001", tx_id=1), signed=False, HTTP_AUTHORIZATION=f"Apikey {API_KEY}")
    bare = post_webhook(sepay_payload("MAVC002", tx_id=2), signed=False, HTTP_AUTHORIZATION=API_KEY)
    header = post_webhook(sepay_payload("MAVC003", tx_id=3), signed=False, HTTP_X_API_KEY=API_KEY)

    assert [prefixed.status_code, bare.status_code, header.status_code] == [200, 200, 200]
    assert PaymentReceipt.objects.count() == 3


def test_signature_from_query_string(client, make_order):
    make_order(order_code="MAVC001", status=OrderStatus.UNPAID)
    body = json.dumps(sepay_payload()).encode("utf-8")

    response = client.post(
        f"/api/sepay/webhook?signature={sign(body)}",
        data=body,
        content_type="application/json",
    )

    assert response.status_code == 200


def test_missing_transaction_and_order_code(post_webhook, db):
    empty = post_webhook({})
    no_code = post_webhook(sepay_payload(content="chuyen tien", description="chuyen tien"))

    assert empty.status_code == 400
    assert empty.json() == {"message": "Missing transaction"}
    assert no_code.status_code == 400
    assert no_code.json() == {"message": "Missing order code"}
    assert PaymentReceipt.objects.count() == 0


def test_full_payment_marks_order_paid_and_accrues_supplier(post_webhook, make_order):
    make_order(order_code="MAVC001", status=OrderStatus.UNPAID, cost=50000, price=80000)

    response = post_webhook(sepay_payload(amount=80000))

    assert response.status_code == 200
    assert response.json() == {"message": "OK"}
    assert Order.objects.get(order_code="MAVC001").status == OrderStatus.PAID

    payment_round = SupplierPaymentRound.objects.get()
    assert payment_round.supplier.supplier_name == "NCC A"
    assert payment_round.import_value == 50000
    assert payment_round.round == "10/03/2026"


def test_partial_payment_leaves_order_unpaid_but_checked(post_webhook, make_order):
    make_order(order_code="MAVC001", status=OrderStatus.UNPAID, price=80000)

    response = post_webhook(sepay_payload(amount=30000))

    assert response.status_code == 200
    order = Order.objects.get(order_code="MAVC001")
    assert order.status == OrderStatus.UNPAID
    assert order.check_flag is False
    assert PaymentReceipt.objects.count() == 1


def test_one_transfer_for_several_orders(post_webhook, make_order):
    make_order(order_code="MAVC001", status=OrderStatus.UNPAID, cost=20000, price=50000)
    make_order(order_code="MAVC002", status=OrderStatus.UNPAID, cost=30000, price=60000)

    response = post_webhook(sepay_payload(content="MAVC001 MAVC002", amount=110000))

    assert response.status_code == 200
    assert set(Order.objects.values_list("status", flat=True)) == {OrderStatus.PAID}
    assert SupplierPaymentRound.objects.get().import_value == 50000
    assert PaymentReceipt.objects.get().order_codes == ["MAVC001", "MAVC002"]


def test_duplicate_delivery_is_acknowledged_once(post_webhook, make_order):
    make_order(order_code="MAVC001", status=OrderStatus.UNPAID, cost=50000)
    payload = sepay_payload()

    first = post_webhook(payload)
    second = post_webhook(payload)

    assert first.status_code == second.status_code == 200
    assert PaymentReceipt.objects.count() == 1
    assert SupplierPaymentRound.objects.get().import_value == 50000


def test_database_failure_rolls_back_everything(post_webhook, make_order):
    make_order(order_code="MAVC001", status=OrderStatus.UNPAID)

    with mock.patch(
        "apps.seapay.services.webhook_service.ledger_service.transition_status",
        side_effect=DatabaseError("connection lost"),
    ):
        response = post_webhook(sepay_payload())

    assert response.status_code == 500
    assert response.json() == {"message": "Internal Error"}
    assert PaymentReceipt.objects.count() == 0
    assert SupplierPaymentRound.objects.count() == 0
    assert Order.objects.get(order_code="MAVC001").status == OrderStatus.UNPAID


def test_payment_for_due_order_renews_it(post_webhook, make_order, supplier):
    make_order(
        order_code="MAVC001",
        status=OrderStatus.RENEWAL,
        expiry=TODAY + timedelta(days=2),
        product_code="Netflix--1m",
        cost=50000,
        price=80000,
    )

    response = post_webhook(sepay_payload(amount=80000))

    assert response.status_code == 200
    order = Order.objects.get(order_code="MAVC001")
    assert order.status == OrderStatus.PAID
    assert order.check_flag is None
    assert order.registration_date == date(2026, 3, 13)
    assert order.expiry_date == date(2026, 4, 12)
    assert order.duration_days == 31

    # công nợ chỉ cộng một lần, bởi bước gia hạn
    payment_round = SupplierPaymentRound.objects.get(supplier=supplier)
    assert payment_round.import_value == 50000
    assert payment_round.events.count() == 1


def test_forced_renewal_resets_order_to_unpaid(post_webhook, make_order, supplier):
    make_order(
        order_code="MAVC001",
        status=OrderStatus.PAID,
        expiry=TODAY + timedelta(days=20),
        check_flag=True,
    )

    post_webhook(sepay_payload())

    order = Order.objects.get(order_code="MAVC001")
    assert order.status == OrderStatus.UNPAID
    assert order.check_flag is False
    assert order.registration_date == TODAY + timedelta(days=21)


def test_paying_flagged_unpaid_order_credits_supplier_once(post_webhook, make_order, supplier):
    expiry = TODAY + timedelta(days=20)
    make_order(
        order_code="MAVC500",
        status=OrderStatus.UNPAID,
        expiry=expiry,
        check_flag=True,
        cost=50000,
        price=80000,
    )

    response = post_webhook(sepay_payload("MAVC500 thanh toan", amount=80000))

    assert response.status_code == 200
    order = Order.objects.get(order_code="MAVC500")
    assert order.status == OrderStatus.PAID
    assert order.expiry_date == expiry

    payment_round = SupplierPaymentRound.objects.get(supplier=supplier)
    assert payment_round.import_value == 50000
    assert [e.kind for e in payment_round.events.all()] == ["opened"]


def test_post_commit_failure_still_acknowledged(post_webhook, make_order):
    make_order(order_code="MAVC001", status=OrderStatus.RENEWAL, expiry=TODAY + timedelta(days=1))

    with mock.patch(
        "apps.seapay.services.webhook_service.RenewalService.apply_renewal",
        side_effect=RuntimeError("pricing unavailable"),
    ):
        response = post_webhook(sepay_payload())

    assert response.status_code == 200
    assert PaymentReceipt.objects.count() == 1
    order = Order.objects.get(order_code="MAVC001")
    assert order.status == OrderStatus.RENEWAL
    assert order.expiry_date == TODAY + timedelta(days=1)


def test_unknown_order_code_still_records_receipt(post_webhook, db):
    response = post_webhook(sepay_payload(content="MAVC999 thanh toan"))

    assert response.status_code == 200
    assert PaymentReceipt.objects.get().order_code == "MAVC999"
    assert SupplierPaymentRound.objects.count() == 0
