"""
Workflow execution reports and the contact dashboard summary.

Status matching is substring based and case-insensitive so custom runtime
statuses ("Completed", "completed_with_warnings", "Error") are counted.
"""
from __future__ import annotations

import calendar
import uuid
from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from wacrm.db import models
from wacrm.db.models.base import now_utc
from wacrm.db.repositories import broadcast_groups as group_repo
from wacrm.db.repositories import broadcasts as broadcast_repo
from wacrm.db.repositories import contacts as contact_repo
from wacrm.db.repositories import hashtags as hashtag_repo
from wacrm.db.repositories import workflows as workflow_repo

UNNAMED_WORKFLOW = "Unnamed workflow"
KANBAN_COLUMNS = ("running", "waiting", "completed", "failed")


class InvalidReportPeriodError(ValueError):
    pass


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _status(execution) -> str:
    return (execution.status or "").lower()


def is_running(execution) -> bool:
    return "running" in _status(execution)


def is_completed(execution) -> bool:
    return "complete" in _status(execution)


def is_failed(execution) -> bool:
    status = _status(execution)
    return "fail" in status or "error" in status


def is_waiting(execution) -> bool:
    return bool(execution.is_waiting) or "wait" in _status(execution)


def duration_minutes(execution) -> Optional[float]:
    started, ended = _as_utc(execution.started_at), _as_utc(execution.ended_at)
    if started is None or ended is None:
        return None
    return (ended - started).total_seconds() / 60.0


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _average(values: Iterable[Optional[float]]) -> float:
    present = [v for v in values if v is not None]
    return round(sum(present) / len(present), 2) if present else 0.0


def _workflow_name(execution) -> str:
    definition = execution.workflow_definition
    return definition.name if definition is not None and definition.name else UNNAMED_WORKFLOW


def _day_bounds(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def daily_date_range(date_from: Optional[date], date_to: Optional[date]) -> Tuple[datetime, datetime]:
    """Half-open ``[start, end)`` covering whole UTC days; defaults to today."""
    today = now_utc().date()
    start_day = date_from or date_to or today
    end_day = date_to or date_from or today
    if end_day < start_day:
        raise InvalidReportPeriodError("date_from must not be after date_to")
    return _day_bounds(start_day), _day_bounds(end_day) + timedelta(days=1)


def workflow_execution_daily(
    db: Session,
    company_id: uuid.UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> Dict[str, Any]:
    start, end = daily_date_range(date_from, date_to)
    executions = workflow_repo.get_executions_between(db, company_id, start, end)

    completed = sum(1 for e in executions if is_completed(e))
    failed = sum(1 for e in executions if is_failed(e))
    finished = completed + failed

    by_type: Dict[str, Dict[str, Any]] = {}
    for execution in executions:
        name = _workflow_name(execution)
        row = by_type.setdefault(name, {"workflow_name": name, "count": 0, "success_count": 0, "failed_count": 0})
        row["count"] += 1
        row["success_count"] += int(is_completed(execution))
        row["failed_count"] += int(is_failed(execution))
    by_workflow_type = sorted(by_type.values(), key=lambda r: r["count"], reverse=True)

    step_groups: Dict[str, Dict[str, Any]] = {}
    for step in workflow_repo.get_failed_steps_between(db, company_id, start, end):
        name = step.step_type or "unknown"
        group = step_groups.setdefault(name, {"step_type": name, "error_count": 0, "last_error_time": None})
        group["error_count"] += 1
        started = _as_utc(step.started_at)
        if started is not None and (group["last_error_time"] is None or started > group["last_error_time"]):
            group["last_error_time"] = started
    error_steps = sorted(step_groups.values(), key=lambda g: g["error_count"], reverse=True)[:10]

    failed_executions = [
        {
            "id": e.id,
            "workflow_definition_id": e.workflow_definition_id,
            "workflow_name": _workflow_name(e),
            "status": e.status,
            "started_at": _as_utc(e.started_at),
            "ended_at": _as_utc(e.ended_at),
            "duration": duration_minutes(e),
            "error_message": e.error_message,
            "current_step": e.current_step,
        }
        for e in sorted((e for e in executions if is_failed(e)), key=lambda e: _as_utc(e.started_at), reverse=True)[:100]
    ]

    return {
        "statistics": {
            "total": len(executions),
            "running": sum(1 for e in executions if is_running(e)),
            "completed": completed,
            "failed": failed,
            "waiting": sum(1 for e in executions if is_waiting(e)),
            "success_rate": _rate(completed, finished),
            "failure_rate": _rate(failed, finished),
            "avg_duration": _average(duration_minutes(e) for e in executions),
        },
        "by_workflow_type": by_workflow_type,
        "top_workflows": by_workflow_type[:10],
        "error_steps": error_steps,
        "failed_executions": failed_executions,
        "date_range": {"from": start, "to": end - timedelta(seconds=1)},
    }


def _month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        return start, datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    return start, datetime(year, month + 1, 1, tzinfo=timezone.utc)


def _success_rate(executions: List[Any]) -> float:
    completed = sum(1 for e in executions if is_completed(e))
    failed = sum(1 for e in executions if is_failed(e))
    return _rate(completed, completed + failed)


def _completed_avg_duration(executions: Iterable[Any]) -> float:
    return _average(duration_minutes(e) for e in executions if is_completed(e))


def workflow_performance_monthly(
    db: Session,
    company_id: uuid.UUID,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> Dict[str, Any]:
    today = now_utc()
    year = today.year if year is None else year
    month = today.month if month is None else month
    if not 1 <= month <= 12:
        raise InvalidReportPeriodError("month must be between 1 and 12")
    # _month_bounds reaches into year + 1
    if not 1 <= year <= 9998:
        raise InvalidReportPeriodError("year must be between 1 and 9998")

    start, end = _month_bounds(year, month)
    if month > 1:
        previous_start, _ = _month_bounds(year, month - 1)
    elif year > 1:
        previous_start, _ = _month_bounds(year - 1, 12)
    else:
        previous_start = start
    current = workflow_repo.get_executions_between(db, company_id, start, end)
    previous = workflow_repo.get_executions_between(db, company_id, previous_start, start)

    success_rate = _success_rate(current)
    previous_rate = _success_rate(previous)
    total, previous_total = len(current), len(previous)

    grouped: Dict[Tuple[int, str], List[Any]] = defaultdict(list)
    for execution in current:
        grouped[(execution.workflow_definition_id, _workflow_name(execution))].append(execution)
    performance = sorted(
        (
            {
                "workflow_id": workflow_id,
                "workflow_name": name,
                "execution_count": len(items),
                "success_count": sum(1 for e in items if is_completed(e)),
                "failed_count": sum(1 for e in items if is_failed(e)),
                "success_rate": _success_rate(items),
                "avg_duration": _completed_avg_duration(items),
            }
            for (workflow_id, name), items in grouped.items()
        ),
        key=lambda row: row["execution_count"],
        reverse=True,
    )
    top_workflows = [
        {k: row[k] for k in ("workflow_id", "workflow_name", "execution_count")} for row in performance[:20]
    ]

    by_day: Dict[date, List[Any]] = defaultdict(list)
    for execution in current:
        by_day[_as_utc(execution.started_at).date()].append(execution)
    daily_trend = []
    for day in range(1, calendar.monthrange(year, month)[1] + 1):
        items = by_day.get(date(year, month, day), [])
        daily_trend.append({
            "date": date(year, month, day).isoformat(),
            "execution_count": len(items),
            "success_rate": _success_rate(items),
        })

    reasons = Counter(
        e.error_message or ("Execution failed" if "fail" in _status(e) else "Execution error")
        for e in current
        if is_failed(e)
    )
    failure_reasons = [{"reason": reason, "count": count} for reason, count in reasons.most_common(10)]

    if previous_total:
        execution_trend = round((total - previous_total) / previous_total * 100, 2)
    else:
        execution_trend = 100.0 if total else 0.0
    rate_trend = round(success_rate - previous_rate, 2) if previous_rate else success_rate

    return {
        "total_executions": total,
        "success_rate": success_rate,
        "avg_duration": _completed_avg_duration(current),
        "top_workflows": top_workflows,
        "daily_trend": daily_trend,
        "failure_reasons": failure_reasons,
        "workflow_performance": performance,
        "previous_month_total": previous_total,
        "previous_month_success_rate": previous_rate,
        "trends": {"executions": execution_trend, "success_rate": rate_trend},
        "month_range": {"from": start, "to": end - timedelta(seconds=1)},
    }


def kanban_column(execution) -> str:
    if is_waiting(execution) and not (is_completed(execution) or is_failed(execution)):
        return "waiting"
    if is_completed(execution):
        return "completed"
    if is_failed(execution) or "cancel" in _status(execution):
        return "failed"
    return "running"


def execution_kanban(db: Session, company_id: uuid.UUID, hours: int = 24) -> Dict[str, Any]:
    end = now_utc()
    start = end - timedelta(hours=max(1, hours))
    columns: Dict[str, List[Dict[str, Any]]] = {name: [] for name in KANBAN_COLUMNS}
    for execution in workflow_repo.get_executions_between(db, company_id, start, end + timedelta(seconds=1)):
        columns[kanban_column(execution)].append({
            "id": execution.id,
            "workflow_definition_id": execution.workflow_definition_id,
            "workflow_name": _workflow_name(execution),
            "status": execution.status,
            "current_step": execution.current_step,
            "started_at": _as_utc(execution.started_at),
            "ended_at": _as_utc(execution.ended_at),
            "waiting_since": _as_utc(execution.waiting_since),
            "waiting_for_user": execution.waiting_for_user,
            "created_by": execution.created_by,
            "error_message": execution.error_message,
        })
    return {
        "columns": columns,
        "counts": {name: len(items) for name, items in columns.items()},
        "time_range": {"from": start, "to": end},
    }


def contacts_summary(db: Session, company_id: uuid.UUID) -> Dict[str, Any]:
    return {
        "contacts": contact_repo.get_contact_statistics(db, company_id),
        "groups": group_repo.get_group_statistics(db, company_id),
        "hashtags": hashtag_repo.get_hashtag_statistics(db, company_id),
        "broadcasts": broadcast_repo.get_broadcast_totals(db, company_id),
    }
