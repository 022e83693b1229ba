"""
Reporting endpoints polled by the dashboards.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from wacrm.api.deps import CompanyContext, get_company_context
from wacrm.db.database import get_db
from wacrm.services import report_service
from wacrm.services.report_service import InvalidReportPeriodError

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/daily/workflow-execution")
def daily_workflow_execution(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    try:
        return report_service.workflow_execution_daily(db, ctx.company_id, date_from, date_to)
    except InvalidReportPeriodError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/monthly/workflow-performance")
def monthly_workflow_performance(
    year: Optional[int] = None,
    month: Optional[int] = None,
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    try:
        return report_service.workflow_performance_monthly(db, ctx.company_id, year, month)
    except InvalidReportPeriodError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/contacts/summary")
def contacts_summary(
    db: Session = Depends(get_db),
    ctx: CompanyContext = Depends(get_company_context),
):
    return report_service.contacts_summary(db, ctx.company_id)
