from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from edutest.database import get_db
from edutest.models.roles import Role
from edutest.models.session import FINISHED_STATUSES, TestSession
from edutest.models.user import User
from edutest.schemas.dashboard import CandidateOverviewOut
from edutest.schemas.session import ReviewStatusRequest, ReviewStatusResponse
from edutest.schemas.test import AssignRequest, AssignResponse, ScheduleUpdateRequest, ScheduleUpdateResponse
from edutest.utils import session_engine, test_bank
from edutest.utils.auth import require_roles

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/candidates", response_model=List[CandidateOverviewOut])
def list_candidates(db: Session = Depends(get_db), admin: User = Depends(require_roles(Role.ADMIN))):
    """All candidates with their latest session and the number of completed tests."""
    candidates = db.query(User).filter(User.role == Role.CANDIDATE).order_by(User.created_at).all()

    out = []
    for c in candidates:
        last = (
            db.query(TestSession)
            .filter(TestSession.user_id == c.id, TestSession.submitted_at.isnot(None))
            .order_by(TestSession.submitted_at.desc())
            .first()
        )
        completed = (
            db.query(TestSession)
            .filter(TestSession.user_id == c.id, TestSession.status.in_(FINISHED_STATUSES))
            .count()
        )
        out.append(
            CandidateOverviewOut(
                id=c.id,
                name=c.name,
                email=c.email,
                last_test_result_id=last.id if last else None,
                test_status=last.review_status if last else "N/A",
                total_score=last.score if last else 0.0,
                tests_completed=completed,
            )
        )
    return out


@router.post("/tests/assign", response_model=AssignResponse)
def assign_test(
    payload: AssignRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(Role.ADMIN)),
):
    test = test_bank.get_test(db, payload.test_id)
    test = test_bank.assign_to_candidate(db, test, payload.candidate_id)
    return AssignResponse(message="Test assigned successfully", test_id=test.id, assigned_to=test.assigned_to)


@router.put("/tests/{test_id}/schedule", response_model=ScheduleUpdateResponse)
def update_schedule(
    test_id: str,
    payload: ScheduleUpdateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(Role.ADMIN)),
):
    test = test_bank.get_test(db, test_id)
    test = test_bank.update_schedule(
        db,
        test,
        cutoff_mark=payload.cutoff_mark,
        scheduled_date=payload.scheduled_date,
        scheduled_time=payload.scheduled_time,
    )
    return ScheduleUpdateResponse(
        message="Test details updated successfully",
        test_id=test.id,
        cutoff_mark=test.cutoff_mark,
        scheduled_date=test.scheduled_date,
        scheduled_time=test.scheduled_time,
    )


@router.put("/sessions/{session_id}/review-status", response_model=ReviewStatusResponse)
def update_review_status(
    session_id: str,
    payload: ReviewStatusRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(Role.ADMIN)),
):
    session = session_engine.get_session(db, session_id)
    session = session_engine.set_review_status(db, session, payload.review_status)
    return ReviewStatusResponse(
        message="Test session review status updated",
        session_id=session.id,
        review_status=session.review_status,
    )
