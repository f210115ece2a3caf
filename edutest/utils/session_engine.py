"""Per-candidate test attempts.

States::

    (none) --start--> in-progress --submit--> completed
                                  --submit after the deadline / timer--> auto-submitted
                                  --abandon--> abandoned

The session row exists from the moment the candidate starts, answers are saved
as the candidate goes, and the deadline is computed from the server's own
``started_at``. Client-reported times are only logged. One attempt per
candidate and test (unique constraint); a finished session is never rescored.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from edutest import config
from edutest.models.session import (
    ABANDONED, AUTO_SUBMITTED, COMPLETED, FINISHED_STATUSES, IN_PROGRESS, REVIEW_STATUSES,
    SessionAnswer, TestSession,
)
from edutest.models.test import Test
from edutest.models.user import User
from edutest.schemas.session import QuestionResultOut, SessionResultOut
from edutest.utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from edutest.utils.scoring import UNATTEMPTED, ScoreResult, score_answers
from edutest.utils.test_bank import is_assigned

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    # naive UTC, the way the DateTime columns store it
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def elapsed_seconds(session: TestSession, now: datetime) -> float:
    return (now - session.started_at).total_seconds()


def remaining_seconds(session: TestSession, test: Test, now: datetime) -> int:
    return max(0, int(test.time_limit * 60 - elapsed_seconds(session, now)))


def is_past_deadline(session: TestSession, test: Test, now: datetime) -> bool:
    """True once the time limit plus the grace period has run out."""
    return elapsed_seconds(session, now) > test.time_limit * 60 + config.SUBMIT_GRACE_SECONDS


def get_session(db: Session, session_id: str) -> TestSession:
    session = db.get(TestSession, session_id)
    if not session:
        raise NotFoundError("Test session not found")
    return session


def find_session(db: Session, test_id: str, candidate_id: str) -> Optional[TestSession]:
    return (
        db.query(TestSession)
        .filter(TestSession.test_id == test_id, TestSession.user_id == candidate_id)
        .first()
    )


def saved_answers(session: TestSession) -> List[Dict[str, Any]]:
    return [
        {"question_id": a.question_id, "chosen_option_index": a.chosen_option_index, "remark": a.remark}
        for a in session.answers
    ]


def _check_no_duplicates(answers: Sequence[Dict[str, Any]]) -> None:
    seen = set()
    for a in answers:
        qid = a["question_id"]
        if qid in seen:
            raise ValidationError(f"Question {qid} answered more than once.")
        seen.add(qid)


def _claim(db: Session, session: TestSession, status: str, now: datetime) -> None:
    """
    Moves the row out of in-progress with a conditional UPDATE, so of two
    concurrent finalizers exactly one wins. The loser gets ConflictError.
    """
    rows = (
        db.query(TestSession)
        .filter(TestSession.id == session.id, TestSession.status == IN_PROGRESS)
        .update({TestSession.status: status, TestSession.finished_at: now}, synchronize_session=False)
    )
    if rows != 1:
        db.rollback()
        raise ConflictError("Test session has already been finalized.")
    db.refresh(session)


def _finalize(
    db: Session,
    session: TestSession,
    test: Test,
    answers: Sequence[Dict[str, Any]],
    status: str,
    now: datetime,
) -> ScoreResult:
    result = score_answers(test.questions, answers, test.negative_marking_ratio)

    _claim(db, session, status, now)

    positions = {q.id: q.position for q in test.questions}
    unknown_offset = len(test.questions)
    rows = []
    for i, a in enumerate(result.answers):
        rows.append(
            SessionAnswer(
                position=positions.get(a.question_id, unknown_offset + i),
                question_id=a.question_id,
                chosen_option_index=a.chosen_option_index,
                remark=a.remark,
                is_correct=a.is_correct,
                score_earned=a.score_earned,
            )
        )
    session.answers = rows
    session.score = result.score
    session.max_score = result.max_score
    session.percentage = result.percentage
    session.submitted_at = now
    session.remaining_time = remaining_seconds(session, test, now)
    db.commit()
    db.refresh(session)

    logger.info(
        "Session %s %s: score=%s/%s (%s%%) correct=%d wrong=%d unattempted=%d",
        session.id, status, result.score, result.max_score, result.percentage,
        result.correct, result.wrong, result.unattempted,
    )
    return result


def _expire(db: Session, session: TestSession, test: Test, now: datetime) -> ScoreResult:
    logger.warning("Session %s ran past its deadline, scoring saved progress", session.id)
    return _finalize(db, session, test, saved_answers(session), AUTO_SUBMITTED, now)


def start_session(db: Session, test: Test, candidate: User, now: datetime | None = None) -> TestSession:
    """Creates the in-progress session, or hands back the existing one to resume."""
    now = now or utcnow()
    if not is_assigned(test, candidate.id):
        raise ForbiddenError("This test is not assigned to you.")

    existing = find_session(db, test.id, candidate.id)
    if existing is None:
        session = TestSession(
            id=str(uuid4()),
            user_id=candidate.id,
            test_id=test.id,
            started_at=now,
            max_score=test.num_questions,
            status=IN_PROGRESS,
            current_question_index=0,
            remaining_time=test.time_limit * 60,
        )
        db.add(session)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = find_session(db, test.id, candidate.id)
            if existing is None:
                raise
        else:
            db.refresh(session)
            logger.info("Session %s started: candidate=%s test=%s", session.id, candidate.id, test.id)
            return session

    if existing.status != IN_PROGRESS:
        raise ConflictError("You have already attempted this test.")
    if is_past_deadline(existing, test, now):
        _expire(db, existing, test, now)
        raise ConflictError("Time is up for this test; it was submitted automatically.")

    existing.remaining_time = remaining_seconds(existing, test, now)
    db.commit()
    db.refresh(existing)
    logger.info("Session %s resumed with %ss left", existing.id, existing.remaining_time)
    return existing


def _check_options_exist(test: Test, answers: Sequence[Dict[str, Any]]) -> None:
    for a in answers:
        q = test.question_by_id(a["question_id"])
        chosen = a["chosen_option_index"]
        if q is not None and chosen != UNATTEMPTED and not 0 <= chosen < len(q.options):
            raise ValidationError(f"Option {chosen} does not exist for question {q.id}.")


def _check_answers_belong(test: Test, answers: Sequence[Dict[str, Any]]) -> None:
    for a in answers:
        if test.question_by_id(a["question_id"]) is None:
            raise ValidationError(f"Question {a['question_id']} is not part of this test.")
    _check_options_exist(test, answers)


def save_progress(
    db: Session,
    session: TestSession,
    test: Test,
    answers: Sequence[Dict[str, Any]],
    current_question_index: int,
    now: datetime | None = None,
) -> TestSession:
    """Stores answers given so far plus the resume cursor. Nothing is scored here."""
    now = now or utcnow()
    if session.status != IN_PROGRESS:
        raise ConflictError("Test session is no longer in progress.")
    if is_past_deadline(session, test, now):
        _expire(db, session, test, now)
        raise ConflictError("Time is up for this test; it was submitted automatically.")
    if not 0 <= current_question_index < test.num_questions:
        raise ValidationError("Current question index is out of range.")

    _check_no_duplicates(answers)
    _check_answers_belong(test, answers)

    by_qid = {a.question_id: a for a in session.answers}
    for a in answers:
        row = by_qid.get(a["question_id"])
        if row is None:
            q = test.question_by_id(a["question_id"])
            row = SessionAnswer(question_id=q.id, position=q.position)
            session.answers.append(row)
        row.chosen_option_index = a["chosen_option_index"]
        row.remark = a.get("remark") or ""

    session.current_question_index = current_question_index
    session.remaining_time = remaining_seconds(session, test, now)
    db.commit()
    db.refresh(session)
    return session


def submit_session(
    db: Session,
    test: Test,
    candidate: User,
    answers: Sequence[Dict[str, Any]],
    auto_submitted: bool = False,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    now: datetime | None = None,
) -> Dict[str, Any]:
    """
    Scores and closes the candidate's in-progress session.

    Answers arriving after the deadline (plus grace) are ignored and the saved
    progress is scored instead. Returns the submission summary.
    """
    now = now or utcnow()
    session = find_session(db, test.id, candidate.id)
    if session is None:
        raise NotFoundError("No test session in progress; start the test first.")
    if session.status != IN_PROGRESS:
        raise ConflictError("You have already attempted this test.")

    _check_no_duplicates(answers)

    if start_time is not None:
        drift = abs((_as_naive_utc(start_time) - session.started_at).total_seconds())
        if drift > config.SUBMIT_GRACE_SECONDS:
            logger.info("Session %s: client start time differs from server by %.0fs", session.id, drift)
    if end_time is not None and _as_naive_utc(end_time) > now:
        logger.info("Session %s: client end time is in the future", session.id)

    if is_past_deadline(session, test, now):
        logger.warning(
            "Session %s submitted %.0fs after start, limit is %d min; using saved progress",
            session.id, elapsed_seconds(session, now), test.time_limit,
        )
        to_score = saved_answers(session)
        status = AUTO_SUBMITTED
    else:
        _check_options_exist(test, answers)
        to_score = list(answers)
        overtime = elapsed_seconds(session, now) > test.time_limit * 60
        status = AUTO_SUBMITTED if (auto_submitted or overtime) else COMPLETED

    result = _finalize(db, session, test, to_score, status, now)
    return {
        "session_id": session.id,
        "status": session.status,
        "score": session.score,
        "percentage": session.percentage,
        "correct_answers": result.correct,
        "wrong_answers": result.wrong,
        "unattempted": result.unattempted,
        "cutoff_mark": test.cutoff_mark,
    }


def abandon_session(db: Session, session: TestSession, now: datetime | None = None) -> TestSession:
    now = now or utcnow()
    if session.status != IN_PROGRESS:
        raise ConflictError("Test session is no longer in progress.")
    _claim(db, session, ABANDONED, now)
    session.score = 0.0
    session.percentage = 0.0
    session.remaining_time = 0
    db.commit()
    db.refresh(session)
    logger.info("Session %s abandoned", session.id)
    return session


def build_result(session: TestSession) -> SessionResultOut:
    """Review view of a finished session, rebuilt from the stored answers."""
    if session.status not in FINISHED_STATUSES:
        raise ConflictError("Results are not available for this session.")

    test = session.test
    questions: List[QuestionResultOut] = []
    for a in session.answers:
        q = test.question_by_id(a.question_id)
        if q is None:
            logger.warning("Question %s not found in test %s", a.question_id, test.id)
            continue
        questions.append(
            QuestionResultOut(
                id=q.id,
                question_text=q.text,
                options=q.options,
                user_answer=a.chosen_option_index,
                correct_answer=q.correct_option_index,
                is_correct=bool(a.is_correct),
                remark=a.remark,
                score_earned=a.score_earned or 0.0,
            )
        )

    return SessionResultOut(
        id=session.id,
        test_name=test.name,
        candidate_name=session.user.name,
        candidate_email=session.user.email,
        score=session.score,
        max_score=session.max_score,
        percentage=session.percentage,
        total_questions=test.num_questions,
        correct_answers=sum(1 for q in questions if q.is_correct),
        wrong_answers=sum(1 for q in questions if not q.is_correct and q.user_answer != UNATTEMPTED),
        unattempted=sum(1 for q in questions if q.user_answer == UNATTEMPTED),
        negative_marks_ratio=test.negative_marking_ratio,
        questions=questions,
        submitted_at=session.submitted_at,
        review_status=session.review_status,
        cutoff_mark=test.cutoff_mark,
        scheduled_date=test.scheduled_date,
        scheduled_time=test.scheduled_time,
    )


def set_review_status(db: Session, session: TestSession, review_status: str) -> TestSession:
    if review_status not in REVIEW_STATUSES:
        raise ValidationError(f"Review status must be one of: {', '.join(REVIEW_STATUSES)}.")
    session.review_status = review_status
    db.commit()
    db.refresh(session)
    logger.info("Session %s review status set to %s", session.id, review_status)
    return session
