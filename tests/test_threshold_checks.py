from datetime import datetime, timezone

import pytest
from conftest import NOW, PERIOD, fixed_clock, make_group, make_individual_budget, spend

from spendwatch.core.errors import NotFoundError
from spendwatch.models import AlertStatus, Channel, Threshold
from spendwatch.services.monitor import build_monitor
from spendwatch.services.period import to_sql_ts


def _alerts(db, user_id, **filters):
    return db.list_alerts(user_id, limit=500, **filters)


def _thresholds(results):
    return sorted({r.threshold for r in results})


def test_ninety_five_percent_fires_seventy_and_ninety(db, monitor, alice, email_sender, sms_sender):
    budget_id = make_individual_budget(db, alice, limit=50000)
    spend(db, 47500, user_id=alice)

    results = monitor.check_thresholds(budget_id)

    assert _thresholds(results) == [70, 90]
    assert all(r.status is AlertStatus.SENT for r in results)
    # email + sms per threshold
    assert len(results) == 4
    assert len(email_sender.sent) == 2
    assert len(sms_sender.sent) == 2


def test_overspent_budget_fires_all_thresholds_in_one_check(db, monitor, alice):
    budget_id = make_individual_budget(db, alice, limit=50000)
    spend(db, 62000, user_id=alice)

    results = monitor.check_thresholds(budget_id)

    assert _thresholds(results) == [70, 90, 100]
    rows = _alerts(db, alice)
    assert {r["percentage_used"] for r in rows} == {124.0}
    assert {r["spent"] for r in rows} == {62000}
    assert {r["budget_limit"] for r in rows} == {50000}
    assert {r["period_key"] for r in rows} == {"2026-10"}


def test_spend_just_under_threshold_stays_silent(db, monitor, alice, email_sender, sms_sender):
    budget_id = make_individual_budget(db, alice, limit=100000)
    spend(db, 69996, user_id=alice)

    assert monitor.check_thresholds(budget_id) == []
    assert _alerts(db, alice) == []
    assert email_sender.sent == [] and sms_sender.sent == []

    spend(db, 4, user_id=alice)
    assert _thresholds(monitor.check_thresholds(budget_id)) == [70]


def test_repeated_check_does_not_resend(db, monitor, alice, email_sender):
    budget_id = make_individual_budget(db, alice, limit=50000)
    spend(db, 47500, user_id=alice)

    monitor.check_thresholds(budget_id)
    again = monitor.check_thresholds(budget_id)

    assert again == []
    assert len(_alerts(db, alice, status=AlertStatus.SENT, threshold=90)) == 2
    assert len(email_sender.sent) == 2


def test_only_new_thresholds_fire_as_spend_grows(db, monitor, alice):
    budget_id = make_individual_budget(db, alice, limit=10000)
    spend(db, 7500, user_id=alice)
    assert _thresholds(monitor.check_thresholds(budget_id)) == [70]

    spend(db, 3000, user_id=alice)
    assert _thresholds(monitor.check_thresholds(budget_id)) == [90, 100]


def test_below_lowest_threshold_sends_nothing(db, monitor, alice):
    budget_id = make_individual_budget(db, alice, limit=10000)
    spend(db, 6999, user_id=alice)
    assert monitor.check_thresholds(budget_id) == []


def test_sent_alert_from_previous_period_does_not_block(db, monitor, alice):
    budget_id = make_individual_budget(db, alice, limit=10000)
    spend(db, 9500, user_id=alice)
    db.insert_alert(
        user_id=alice,
        budget_id=budget_id,
        group_id=None,
        channel=Channel.EMAIL,
        threshold=90,
        status=AlertStatus.SENT,
        spent=9500,
        budget_limit=10000,
        percentage_used=95.0,
        period_key="2026-09",
        created_at="2026-09-28T10:00:00.000Z",
        sent_at="2026-09-28T10:00:00.000Z",
    )
    assert _thresholds(monitor.check_thresholds(budget_id)) == [70, 90]


def test_failed_only_threshold_is_retried_on_next_check(db, settings, alice, sms_sender):
    from conftest import RecordingEmailSender, RecordingSmsSender

    failing = build_monitor(
        db,
        settings,
        email_sender=RecordingEmailSender(fail_for={"alice@example.com"}),
        sms_sender=RecordingSmsSender(fail_for={"+15550100"}),
        clock=fixed_clock,
    )
    budget_id = make_individual_budget(db, alice, limit=10000)
    spend(db, 7200, user_id=alice)

    first = failing.check_thresholds(budget_id)
    assert [r.status for r in first] == [AlertStatus.FAILED, AlertStatus.FAILED]

    healthy = build_monitor(
        db, settings, email_sender=RecordingEmailSender(), sms_sender=sms_sender, clock=fixed_clock
    )
    second = healthy.check_thresholds(budget_id)
    assert [r.status for r in second] == [AlertStatus.SENT, AlertStatus.SENT]
    assert len(_alerts(db, alice)) == 4


def test_claimed_threshold_is_skipped(db, monitor, alice):
    budget_id = make_individual_budget(db, alice, limit=10000)
    spend(db, 9500, user_id=alice)
    assert db.claim_threshold(budget_id, Threshold.SEVENTY, PERIOD.key) is True

    results = monitor.check_thresholds(budget_id)

    assert _thresholds(results) == [90]


def test_overlapping_check_does_not_duplicate(db, settings, alice):
    from conftest import RecordingSmsSender
    from spendwatch.services.notifications import EmailSender

    budget_id = make_individual_budget(db, alice, limit=10000)
    spend(db, 7500, user_id=alice)
    nested_results = []

    class OverlappingEmailSender(EmailSender):
        """Starts a second check of the same budget while the first is mid-send."""

        def __init__(self):
            self.calls = 0

        def send_email(self, address, subject, body, html=None):
            self.calls += 1
            if self.calls == 1:
                nested_results.extend(monitor.check_thresholds(budget_id))

    sender = OverlappingEmailSender()
    monitor = build_monitor(
        db, settings, email_sender=sender, sms_sender=RecordingSmsSender(), clock=fixed_clock
    )
    results = monitor.check_thresholds(budget_id)

    assert nested_results == []
    assert sender.calls == 1
    assert len(results) == 2


def test_group_fan_out_resolves_members_at_check_time(db, monitor, alice, email_sender):
    bob = db.create_user("Bob", email="bob@example.com")
    carol = db.create_user("Carol", email="carol@example.com")
    group_id = make_group(db, alice, bob, carol)
    budget_id = db.create_budget("GROUP", "Groceries", 10000, group_id=group_id)
    spend(db, 7000, group_id=group_id)

    results = [r for r in monitor.check_thresholds(budget_id) if r.channel is Channel.EMAIL]

    assert sorted(r.user_id for r in results) == sorted([alice, bob, carol])
    for user_id in (alice, bob, carol):
        rows = _alerts(db, user_id)
        email_rows = [r for r in rows if r["channel"] == "EMAIL"]
        assert len(email_rows) == 1
        assert email_rows[0]["group_id"] == group_id
        assert (email_rows[0]["spent"], email_rows[0]["budget_limit"], email_rows[0]["percentage_used"]) == (
            7000,
            10000,
            70.0,
        )

    dave = db.create_user("Dave", email="dave@example.com")
    db.add_group_member(group_id, dave)
    db.remove_group_member(group_id, carol)
    spend(db, 2000, group_id=group_id)

    later = monitor.check_thresholds(budget_id)
    notified = {r.user_id for r in later}
    assert dave in notified
    assert carol not in notified


def test_inactive_budget_is_not_checked(db, monitor, alice, email_sender):
    budget_id = make_individual_budget(db, alice, limit=100)
    spend(db, 500, user_id=alice)
    db.update_budget(budget_id, is_active=False)

    assert monitor.check_thresholds(budget_id) == []
    assert email_sender.sent == []


def test_missing_budget_raises_not_found(monitor):
    with pytest.raises(NotFoundError):
        monitor.check_thresholds(999)
    with pytest.raises(NotFoundError):
        monitor.get_status(999)


def test_get_status_uses_current_period(db, monitor, alice):
    budget_id = make_individual_budget(db, alice, limit=50000)
    spend(db, 47500, user_id=alice)
    spend(db, 10000, user_id=alice, when=datetime(2026, 9, 15, tzinfo=timezone.utc))

    status = monitor.get_status(budget_id)

    assert status.total_spent_this_period == 47500
    assert status.remaining == 2500
    assert status.percentage_used == 95.0


def test_alert_timestamps_come_from_clock(db, monitor, alice):
    budget_id = make_individual_budget(db, alice, limit=100)
    spend(db, 80, user_id=alice)
    monitor.check_thresholds(budget_id)

    row = _alerts(db, alice)[0]
    assert row["created_at"] == to_sql_ts(NOW)
    assert row["sent_at"] == to_sql_ts(NOW)


def test_sweep_checks_every_active_budget(db, monitor, alice):
    bob = db.create_user("Bob", email="bob@example.com")
    first = make_individual_budget(db, alice, limit=100)
    second = make_individual_budget(db, bob, limit=100)
    idle = make_individual_budget(db, bob, limit=100, name="Idle")
    db.update_budget(idle, is_active=False)
    spend(db, 95, user_id=alice)
    spend(db, 75, user_id=bob)

    written = monitor.check_all_active()

    # alice: (70, 90) x (email, sms); bob: 70 x email on his one active budget
    assert written == 5
    assert {r["budget_id"] for r in _alerts(db, bob)} == {second}
    assert {r["budget_id"] for r in _alerts(db, alice)} == {first}
