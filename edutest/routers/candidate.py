from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from edutest.database import get_db
from edutest.models.roles import Role
from edutest.models.session import COMPLETED, FINISHED_STATUSES, IN_PROGRESS, TestSession
from edutest.models.test import Test, TestAssignment
from edutest.models.user import User
from edutest.schemas.dashboard import DashboardOut, PerformanceSummaryOut, RecentTestOut, UpcomingTestOut
from edutest.utils.auth import require_roles
from edutest.utils.scoring import is_qualified

router = APIRouter(prefix="/candidate", tags=["Candidate"])

RECENT_LIMIT = 5


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db), me: User = Depends(require_roles(Role.CANDIDATE))):
    finished = (
        db.query(TestSession)
        .filter(TestSession.user_id == me.id, TestSession.status.in_(FINISHED_STATUSES))
        .order_by(TestSession.submitted_at.desc())
        .all()
    )

    recent = [
        RecentTestOut(
            id=s.id,
            test_id=s.test_id,
            name=s.test.name,
            submitted_on=s.submitted_at.date() if s.submitted_at else None,
            status="Completed" if s.status == COMPLETED else "Auto-submitted",
            score=f"{s.score:g}/{s.max_score}",
            percentage=s.percentage,
            review_status=s.review_status,
            cutoff_mark=s.test.cutoff_mark,
            scheduled_date=s.test.scheduled_date,
            scheduled_time=s.test.scheduled_time,
            qualified=is_qualified(s.percentage, s.test.cutoff_mark, s.max_score),
        )
        for s in finished[:RECENT_LIMIT]
    ]

    # assigned tests that can still be taken or resumed
    states = {
        row.test_id: row.status
        for row in db.query(TestSession.test_id, TestSession.status).filter(TestSession.user_id == me.id).all()
    }
    assigned = (
        db.query(Test)
        .join(TestAssignment, TestAssignment.test_id == Test.id)
        .filter(TestAssignment.candidate_id == me.id)
        .order_by(Test.scheduled_date, Test.scheduled_time)
        .all()
    )
    upcoming = [
        UpcomingTestOut(
            id=t.id,
            name=t.name,
            description=t.description,
            time_limit=t.time_limit,
            num_questions=t.num_questions,
            cutoff_mark=t.cutoff_mark,
            scheduled_date=t.scheduled_date,
            scheduled_time=t.scheduled_time,
            status="In Progress" if states.get(t.id) == IN_PROGRESS else "Scheduled",
        )
        for t in assigned
        if states.get(t.id, IN_PROGRESS) == IN_PROGRESS
    ]

    total_score = sum(s.score for s in finished)
    total_max = sum(s.max_score for s in finished)
    average = round(total_score / total_max * 100, 2) if total_max > 0 else 0.0

    return DashboardOut(
        recent_tests=recent,
        upcoming_tests=upcoming,
        performance_summary=PerformanceSummaryOut(
            total_tests=db.query(TestSession).filter(TestSession.user_id == me.id).count(),
            average_score=average,
            tests_completed=len(finished),
        ),
    )
