from datetime import timedelta
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError, IntegrityError

from apps.orders.models import ExpiredOrder, Order, OrderStatus
from apps.scheduler.services.maintenance_service import DailyMaintenanceService, MaintenanceJobState
from apps.scheduler.services.notice_service import ExpiryNoticeService
from core.exceptions import TransactionalFailure
from tests.helpers import API_KEY, TODAY


@pytest.fixture
def service():
    return DailyMaintenanceService(backup_client=mock.Mock())


@pytest.fixture
def mixed_orders(make_order):
    def _days(n):
        return TODAY + timedelta(days=n)

    make_order(order_code="MAVC001", status=OrderStatus.PAID, expiry=_days(-1))
    make_order(order_code="MAVC002", status=OrderStatus.RENEWAL, expiry=_days(-3))
    make_order(order_code="MAVC003", status=OrderStatus.EXPIRED, expiry=_days(-1))
    make_order(order_code="MAVC004", status=OrderStatus.UNPAID, expiry=_days(-5))
    make_order(order_code="MAVC005", status=OrderStatus.PAID, expiry=_days(0))
    make_order(order_code="MAVC006", status=OrderStatus.PAID, expiry=_days(4))
    make_order(order_code="MAVC007", status=OrderStatus.PAID, expiry=_days(5))
    make_order(order_code="MAVC008", status=OrderStatus.RENEWAL, expiry=_days(0))
    make_order(order_code="MAVC009", status=OrderStatus.RENEWAL, expiry=_days(2))


def _statuses():
    return dict(Order.objects.values_list("order_code", "status"))


def test_daily_job_applies_all_steps(service, mixed_orders):
    report, _ = service.run(as_of=TODAY, backup=False)

    assert sorted(report.archived) == ["MAVC001", "MAVC002", "MAVC003"]
    assert report.deleted == 3
    assert sorted(report.marked_renewal) == ["MAVC005", "MAVC006"]
    assert report.marked_expired == ["MAVC005", "MAVC008"]

    assert sorted(ExpiredOrder.objects.values_list("order_code", flat=True)) == ["MAVC001", "MAVC002", "MAVC003"]
    assert _statuses() == {
        "MAVC004": OrderStatus.UNPAID,
        "MAVC005": OrderStatus.EXPIRED,
        "MAVC006": OrderStatus.RENEWAL,
        "MAVC007": OrderStatus.PAID,
        "MAVC008": OrderStatus.EXPIRED,
        "MAVC009": OrderStatus.RENEWAL,
    }


def test_rerun_on_same_day_changes_nothing(service, mixed_orders):
    service.run(as_of=TODAY, backup=False)
    before = _statuses()

    report, _ = service.run(as_of=TODAY, backup=False)

    assert report.archived == []
    assert report.marked_expired == []
    assert _statuses() == before
    assert ExpiredOrder.objects.count() == 3


def test_failure_rolls_back_every_step(service, mixed_orders):
    before = _statuses()

    with mock.patch(
        "apps.scheduler.services.maintenance_service.ledger_service.remove_active",
        side_effect=DatabaseError("lock timeout"),
    ):
        with pytest.raises(TransactionalFailure):
            service.run(as_of=TODAY, backup=False)

    assert _statuses() == before
    assert Order.objects.count() == 9
    assert ExpiredOrder.objects.count() == 0
    service.backup_client.run.assert_not_called()


def test_archive_insert_failure_rolls_back_batch(service, mixed_orders):
    before = _statuses()
    insert = ExpiredOrder.objects.bulk_create

    def _fail_after_first_row(rows, **kwargs):
        insert(rows[:1], **kwargs)
        raise IntegrityError("duplicate key value violates unique constraint")

    with mock.patch.object(ExpiredOrder.objects, "bulk_create", side_effect=_fail_after_first_row):
        with pytest.raises(TransactionalFailure):
            service.run(as_of=TODAY, backup=False)

    assert Order.objects.count() == 9
    assert ExpiredOrder.objects.count() == 0
    assert _statuses() == before
    assert _statuses()["MAVC005"] == OrderStatus.PAID
    assert _statuses()["MAVC008"] == OrderStatus.RENEWAL


def test_backup_runs_after_commit(settings, service, db):
    settings.ENABLE_DB_BACKUP = True
    service.backup_client.run.return_value = "/tmp/db-backup.dump"

    report, _ = service.run(as_of=TODAY)

    service.backup_client.run.assert_called_once()
    assert report.backup_path == "/tmp/db-backup.dump"


def test_backup_failure_is_only_reported(settings, service, make_order):
    settings.ENABLE_DB_BACKUP = True
    service.backup_client.run.side_effect = RuntimeError("pg_dump not found")
    make_order(order_code="MAVC001", status=OrderStatus.PAID, expiry=TODAY - timedelta(days=1))

    report, _ = service.run(as_of=TODAY)

    assert report.backup_error == "pg_dump not found"
    assert ExpiredOrder.objects.filter(order_code="MAVC001").exists()


def test_backup_disabled(settings, service, db):
    settings.ENABLE_DB_BACKUP = False

    service.run(as_of=TODAY)

    service.backup_client.run.assert_not_called()


def test_job_state_is_returned_not_mutated(service, db):
    state = MaintenanceJobState()

    _, first = service.run(state, as_of=TODAY, backup=False)
    _, second = service.run(first, as_of=TODAY + timedelta(days=1), backup=False)

    assert state.runs == 0 and state.last_run_date is None
    assert first.runs == 1 and first.last_run_date == TODAY
    assert second.runs == 2 and second.last_run_date == TODAY + timedelta(days=1)
    assert second.last_run_at is not None


def test_order_expiring_today_walks_through_expiry(service, make_order):
    """Cần Gia Hạn hết hạn ngày D: ngày D chuyển Hết Hạn và được báo một lần, ngày D+1 vào order_expired."""
    original = make_order(order_code="MAVL777", status=OrderStatus.RENEWAL, expiry=TODAY, price=120000)
    original.refresh_from_db()
    notifier = mock.Mock()
    notices = ExpiryNoticeService(notifier=notifier)

    service.run(as_of=TODAY, backup=False)
    assert Order.objects.get(order_code="MAVL777").status == OrderStatus.EXPIRED

    records = notices.notify_zero_days(as_of=TODAY)
    assert [r["order_code"] for r in records] == ["MAVL777"]
    notifier.notify_expiring.assert_called_once()

    service.run(as_of=TODAY + timedelta(days=1), backup=False)

    assert not Order.objects.filter(order_code="MAVL777").exists()
    archived = ExpiredOrder.objects.get(order_code="MAVL777")
    expected = {**original.business_values(), "status": OrderStatus.EXPIRED}
    assert archived.business_values() == expected
    assert notices.notify_zero_days(as_of=TODAY + timedelta(days=1)) == []


def test_command(mixed_orders):
    out = StringIO()

    call_command("run_daily_maintenance", "--date", "10/03/2026", "--no-backup", stdout=out)

    assert "Archived: 3" in out.getvalue()
    assert ExpiredOrder.objects.count() == 3


def test_command_rejects_bad_date(db):
    with pytest.raises(CommandError):
        call_command("run_daily_maintenance", "--date", "yesterday", "--no-backup", stdout=StringIO())


def test_manual_run_endpoint(client, mixed_orders):
    unauthorized = client.post("/api/scheduler/run", data={}, content_type="application/json")
    assert unauthorized.status_code == 403

    response = client.post(
        "/api/scheduler/run",
        data={"date": "2026-03-10", "backup": False},
        content_type="application/json",
        HTTP_X_API_KEY=API_KEY,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["trigger"] == "manual"
    assert sorted(body["archived"]) == ["MAVC001", "MAVC002", "MAVC003"]

    bad = client.post(
        "/api/scheduler/run",
        data={"date": "not-a-date"},
        content_type="application/json",
        HTTP_X_API_KEY=API_KEY,
    )
    assert bad.status_code == 400
