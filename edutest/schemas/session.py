from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from edutest.schemas.base import CamelModel


class AnswerItem(CamelModel):
    question_id: str
    chosen_answer_index: int = Field(default=-1, ge=-1)
    remark: str = ""


class StartTestResponse(CamelModel):
    session_id: str
    test_id: str
    status: str
    time_limit: int
    started_at: datetime
    current_question_index: int
    remaining_time: int
    answers: List[AnswerItem] = []


class ProgressRequest(CamelModel):
    answers: List[AnswerItem] = []
    current_question_index: int = Field(default=0, ge=0)


class ProgressResponse(CamelModel):
    session_id: str
    status: str
    current_question_index: int
    remaining_time: int
    saved_answers: int


class SubmitAnswersRequest(CamelModel):
    user_answers: List[AnswerItem] = []
    # reported by the client timer; advisory only
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    auto_submitted: bool = False


class SubmitResponse(CamelModel):
    message: str = "Test submitted successfully!"
    session_id: str
    status: str
    score: float
    percentage: float
    correct_answers: int
    wrong_answers: int
    unattempted: int
    cutoff_mark: float


class AbandonResponse(CamelModel):
    session_id: str
    status: str


class QuestionResultOut(CamelModel):
    id: str
    question_text: str
    options: List[str]
    user_answer: int
    correct_answer: int
    is_correct: bool
    remark: str
    score_earned: float


class SessionResultOut(CamelModel):
    id: str
    test_name: str
    candidate_name: str
    candidate_email: str
    score: float
    max_score: int
    percentage: float
    total_questions: int
    correct_answers: int
    wrong_answers: int
    unattempted: int
    negative_marks_ratio: float
    questions: List[QuestionResultOut]
    submitted_at: Optional[datetime] = None
    review_status: str
    cutoff_mark: float
    scheduled_date: date
    scheduled_time: str


class ReviewStatusRequest(CamelModel):
    review_status: str


class ReviewStatusResponse(CamelModel):
    message: str
    session_id: str
    review_status: str
