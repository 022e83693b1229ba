from datetime import date, datetime, timedelta, timezone

import pytest

from wacrm.db import models
from wacrm.services import report_service
from wacrm.services.report_service import InvalidReportPeriodError, kanban_column


def _at(day: int, hour: int = 9, month: int = 3):
    return datetime(2026, month, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def workflows(db_session, owner_context):
    _, company, _ = owner_context
    onboarding = models.WorkflowDefinition(company_id=company.id, name="Onboarding", status="Active")
    survey = models.WorkflowDefinition(company_id=company.id, name="Survey", status="Active")
    db_session.add_all([onboarding, survey])
    db_session.commit()
    return onboarding, survey


def _execution(db, definition, status, started, minutes=None, error=None, **fields):
    execution = models.WorkflowExecution(
        workflow_definition_id=definition.id,
        status=status,
        started_at=started,
        ended_at=started + timedelta(minutes=minutes) if minutes is not None else None,
        error_message=error,
        **fields,
    )
    db.add(execution)
    db.commit()
    return execution


def test_daily_statistics(db_session, owner_context, workflows):
    _, company, _ = owner_context
    onboarding, survey = workflows
    _execution(db_session, onboarding, "Completed", _at(10), minutes=10)
    _execution(db_session, onboarding, "Completed", _at(10, 11), minutes=20)
    failed = _execution(db_session, survey, "Failed", _at(10, 12), minutes=5, error="Timeout")
    _execution(db_session, survey, "Running", _at(10, 13))
    _execution(db_session, survey, "Completed", _at(11), minutes=1)
    db_session.add(models.WorkflowStepExecution(
        workflow_execution_id=failed.id, step_index=1, step_type="sendWhatsApp",
        status="Failed", started_at=_at(10, 12), is_waiting=False,
    ))
    db_session.commit()

    report = report_service.workflow_execution_daily(db_session, company.id, date(2026, 3, 10), date(2026, 3, 10))

    stats = report["statistics"]
    assert stats["total"] == 4
    assert stats["completed"] == 2
    assert stats["failed"] == 1
    assert stats["running"] == 1
    assert stats["success_rate"] == pytest.approx(66.67)
    assert stats["failure_rate"] == pytest.approx(33.33)
    assert stats["avg_duration"] == pytest.approx(11.67)
    assert report["by_workflow_type"][0]["count"] == 2
    assert report["error_steps"][0]["step_type"] == "sendWhatsApp"
    assert report["error_steps"][0]["error_count"] == 1
    assert [e["error_message"] for e in report["failed_executions"]] == ["Timeout"]


def test_daily_range_validation():
    with pytest.raises(InvalidReportPeriodError):
        report_service.daily_date_range(date(2026, 3, 2), date(2026, 3, 1))
    start, end = report_service.daily_date_range(date(2026, 3, 1), None)
    assert end - start == timedelta(days=1)


def test_empty_day_has_zero_rates(db_session, owner_context):
    _, company, _ = owner_context
    report = report_service.workflow_execution_daily(db_session, company.id, date(2026, 1, 1), date(2026, 1, 1))
    assert report["statistics"]["total"] == 0
    assert report["statistics"]["success_rate"] == 0.0
    assert report["statistics"]["avg_duration"] == 0.0


def test_monthly_performance_and_trends(db_session, owner_context, workflows):
    _, company, _ = owner_context
    onboarding, survey = workflows
    _execution(db_session, onboarding, "Completed", _at(1), minutes=4)
    _execution(db_session, onboarding, "Completed", _at(2), minutes=6)
    _execution(db_session, survey, "Failed", _at(2, 10), error=None)
    _execution(db_session, survey, "Completed", _at(15, month=2), minutes=2)

    report = report_service.workflow_performance_monthly(db_session, company.id, 2026, 3)

    assert report["total_executions"] == 3
    assert report["success_rate"] == pytest.approx(66.67)
    assert report["avg_duration"] == pytest.approx(5.0)
    assert len(report["daily_trend"]) == 31
    assert report["daily_trend"][1] == {"date": "2026-03-02", "execution_count": 2, "success_rate": 50.0}
    assert report["failure_reasons"] == [{"reason": "Execution failed", "count": 1}]
    assert report["workflow_performance"][0]["workflow_name"] == "Onboarding"
    assert report["previous_month_total"] == 1
    assert report["previous_month_success_rate"] == 100.0
    assert report["trends"]["executions"] == 200.0
    assert report["trends"]["success_rate"] == pytest.approx(-33.33)


@pytest.mark.parametrize("year, month", [(2026, 13), (2026, 0), (0, 5), (9999, 12)])
def test_monthly_rejects_bad_period(db_session, owner_context, year, month):
    _, company, _ = owner_context
    with pytest.raises(InvalidReportPeriodError):
        report_service.workflow_performance_monthly(db_session, company.id, year, month)


def test_first_month_of_year_one_has_no_previous_month(db_session, owner_context):
    _, company, _ = owner_context
    report = report_service.workflow_performance_monthly(db_session, company.id, 1, 1)
    assert report["previous_month_total"] == 0


def test_january_compares_with_previous_december(db_session, owner_context, workflows):
    _, company, _ = owner_context
    onboarding, _ = workflows
    _execution(db_session, onboarding, "Completed", datetime(2025, 12, 31, 23, tzinfo=timezone.utc), minutes=1)
    report = report_service.workflow_performance_monthly(db_session, company.id, 2026, 1)
    assert report["total_executions"] == 0
    assert report["previous_month_total"] == 1
    assert report["trends"]["executions"] == -100.0


class _Row:
    def __init__(self, status, is_waiting=False):
        self.status = status
        self.is_waiting = is_waiting


@pytest.mark.parametrize("status,is_waiting,column", [
    ("Running", False, "running"),
    ("Waiting", True, "waiting"),
    ("Running", True, "waiting"),
    ("Completed", False, "completed"),
    ("completed_with_warnings", False, "completed"),
    ("Failed", False, "failed"),
    ("Error", False, "failed"),
    ("Cancelled", False, "failed"),
])
def test_kanban_column(status, is_waiting, column):
    assert kanban_column(_Row(status, is_waiting)) == column


def test_kanban_groups_recent_executions(db_session, owner_context, workflows):
    _, company, _ = owner_context
    onboarding, _ = workflows
    now = datetime.now(timezone.utc)
    _execution(db_session, onboarding, "Running", now - timedelta(hours=1))
    _execution(db_session, onboarding, "Waiting", now - timedelta(hours=2), is_waiting=True, waiting_for_user="6011")
    _execution(db_session, onboarding, "Completed", now - timedelta(hours=48), minutes=1)

    board = report_service.execution_kanban(db_session, company.id, hours=24)

    assert board["counts"] == {"running": 1, "waiting": 1, "completed": 0, "failed": 0}
    assert board["columns"]["waiting"][0]["waiting_for_user"] == "6011"


def test_contacts_summary(db_session, owner_context):
    _, company, _ = owner_context
    db_session.add_all([
        models.Contact(company_id=company.id, name="A", hashtags="vip"),
        models.Contact(company_id=company.id, name="B", is_active=False),
    ])
    db_session.commit()
    summary = report_service.contacts_summary(db_session, company.id)
    assert summary["contacts"] == {"total": 2, "active": 1, "inactive": 1}
    assert summary["broadcasts"] == {"total_broadcasts": 0, "messages_sent": 0, "messages_failed": 0}
    assert set(summary) == {"contacts", "groups", "hashtags", "broadcasts"}
