from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from edutest.database import get_db
from edutest.models.roles import Role
from edutest.models.user import User
from edutest.schemas.session import AbandonResponse, ProgressRequest, ProgressResponse, SessionResultOut
from edutest.utils import session_engine
from edutest.utils.auth import ensure_can_view_session, require_roles

router = APIRouter(prefix="/sessions", tags=["Session"])


@router.put("/{session_id}/progress", response_model=ProgressResponse)
def save_progress(
    session_id: str,
    payload: ProgressRequest,
    db: Session = Depends(get_db),
    candidate: User = Depends(require_roles(Role.CANDIDATE)),
):
    session = session_engine.get_session(db, session_id)
    ensure_can_view_session(candidate, session)
    session = session_engine.save_progress(
        db,
        session,
        session.test,
        answers=[
            {"question_id": a.question_id, "chosen_option_index": a.chosen_answer_index, "remark": a.remark}
            for a in payload.answers
        ],
        current_question_index=payload.current_question_index,
    )
    return ProgressResponse(
        session_id=session.id,
        status=session.status,
        current_question_index=session.current_question_index,
        remaining_time=session.remaining_time,
        saved_answers=len(session.answers),
    )


@router.post("/{session_id}/abandon", response_model=AbandonResponse)
def abandon(
    session_id: str,
    db: Session = Depends(get_db),
    candidate: User = Depends(require_roles(Role.CANDIDATE)),
):
    session = session_engine.get_session(db, session_id)
    ensure_can_view_session(candidate, session)
    session = session_engine.abandon_session(db, session)
    return AbandonResponse(session_id=session.id, status=session.status)


@router.get("/{session_id}/result", response_model=SessionResultOut)
def get_result(
    session_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.ADMIN, Role.CANDIDATE)),
):
    session = session_engine.get_session(db, session_id)
    ensure_can_view_session(user, session)
    return session_engine.build_result(session)
