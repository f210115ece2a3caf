from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from edutest.database import get_db
from edutest.models.roles import Role
from edutest.models.test import Test
from edutest.models.user import User
from edutest.schemas.session import StartTestResponse, SubmitAnswersRequest, SubmitResponse, AnswerItem
from edutest.schemas.test import TestCreateRequest, TestCreateResponse, TestSummaryOut
from edutest.utils import session_engine, test_bank
from edutest.utils.auth import require_roles
from edutest.utils.question_generator import QuestionGenerator, get_question_generator

router = APIRouter(prefix="/tests", tags=["Tests"])


@router.post("", response_model=TestCreateResponse, status_code=status.HTTP_201_CREATED)
def create_test(
    payload: TestCreateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(Role.ADMIN)),
    generator: QuestionGenerator = Depends(get_question_generator),
):
    """
    Generates the question bank from the notes, then stores the test.
    Generation runs first: if it fails nothing is written.
    """
    test_bank.validate_test_settings(
        payload.name, payload.time_limit, payload.negative_marking_ratio, payload.cutoff_mark
    )
    questions = generator.generate(payload.notes_content, payload.num_questions)

    test = test_bank.create_test(
        db,
        creator=admin,
        name=payload.name,
        description=payload.description,
        time_limit=payload.time_limit,
        negative_marking_ratio=payload.negative_marking_ratio,
        cutoff_mark=payload.cutoff_mark,
        questions=questions,
        notes_content=payload.notes_content,
    )
    return TestCreateResponse(
        message="Test created and questions generated successfully!",
        test_id=test.id,
        test_name=test.name,
        num_questions=test.num_questions,
    )


@router.get("", response_model=List[TestSummaryOut])
def list_tests(db: Session = Depends(get_db), admin: User = Depends(require_roles(Role.ADMIN))):
    tests = db.query(Test).order_by(Test.created_at.desc()).all()
    return [test_bank.summarize_test(t) for t in tests]


@router.get("/{test_id}")
def get_test(
    test_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.ADMIN, Role.CANDIDATE)),
):
    test = test_bank.get_test(db, test_id)
    return test_bank.project_test(test, user).model_dump(by_alias=True, mode="json")


@router.post("/{test_id}/start", response_model=StartTestResponse)
def start_test(
    test_id: str,
    db: Session = Depends(get_db),
    candidate: User = Depends(require_roles(Role.CANDIDATE)),
):
    test = test_bank.get_test(db, test_id)
    session = session_engine.start_session(db, test, candidate)
    return StartTestResponse(
        session_id=session.id,
        test_id=test.id,
        status=session.status,
        time_limit=test.time_limit,
        started_at=session.started_at,
        current_question_index=session.current_question_index,
        remaining_time=session.remaining_time,
        answers=[
            AnswerItem(question_id=a.question_id, chosen_answer_index=a.chosen_option_index, remark=a.remark)
            for a in session.answers
        ],
    )


@router.post("/{test_id}/submit", response_model=SubmitResponse, status_code=status.HTTP_201_CREATED)
def submit_test(
    test_id: str,
    payload: SubmitAnswersRequest,
    db: Session = Depends(get_db),
    candidate: User = Depends(require_roles(Role.CANDIDATE)),
):
    test = test_bank.get_test(db, test_id)
    summary = session_engine.submit_session(
        db,
        test,
        candidate,
        answers=[
            {"question_id": a.question_id, "chosen_option_index": a.chosen_answer_index, "remark": a.remark}
            for a in payload.user_answers
        ],
        auto_submitted=payload.auto_submitted,
        start_time=payload.start_time,
        end_time=payload.end_time,
    )
    return SubmitResponse(**summary)
