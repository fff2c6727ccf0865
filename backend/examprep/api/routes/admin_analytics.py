"""Admin dashboard: analytics, upcoming events and referral KPIs."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlmodel import Session

from ... import schemas, services
from ...auth import require_admin
from ...database import get_session
from ...enums import ExamCategory
from ..params import positive_int

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/analytics/overview", response_model=schemas.AnalyticsOverview)
def analytics_overview(
    exam: Optional[ExamCategory] = None,
    range_: Optional[str] = Query(None, alias="range"),
    db: Session = Depends(get_session),
):
    return services.AnalyticsService(db).overview(exam, range_)


@router.get("/analytics/time-series", response_model=schemas.AnalyticsTimeSeries)
def analytics_time_series(
    request: Request,
    metric: str = Query(..., min_length=1),
    exam: Optional[ExamCategory] = None,
    range_: Optional[str] = Query(None, alias="range"),
):
    return request.app.state.insights.time_series(metric, exam, range_)


@router.get("/analytics/subject-accuracy", response_model=schemas.SubjectAccuracyResponse)
def analytics_subject_accuracy(request: Request, exam: Optional[ExamCategory] = None):
    return request.app.state.insights.subject_accuracy(exam)


@router.get("/analytics/weak-topics", response_model=schemas.WeakTopicsResponse)
def analytics_weak_topics(request: Request, exam: Optional[ExamCategory] = None, limit: Optional[str] = None):
    """Weakest topics; a missing or unusable `limit` means 5."""
    return request.app.state.insights.weak_topics(exam, positive_int(limit, 5))


@router.get("/events/upcoming", response_model=schemas.AdminEventsResponse)
def upcoming_events(request: Request, exam: Optional[ExamCategory] = None):
    return request.app.state.insights.upcoming_events(exam)


@router.get("/referrals/summary", response_model=schemas.AdminReferralSummary)
def referral_summary(request: Request, range_: Optional[str] = Query(None, alias="range")):
    return request.app.state.insights.referral_summary(range_)
