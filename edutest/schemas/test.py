from datetime import date
from typing import List, Optional

from pydantic import Field

from edutest.schemas.base import CamelModel


class TestCreateRequest(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    notes_content: str = Field(min_length=1)
    num_questions: int = Field(ge=1, le=100)
    time_limit: int
    negative_marking_ratio: float = 0.0
    cutoff_mark: float = 0.0


class TestCreateResponse(CamelModel):
    message: str
    test_id: str
    test_name: str
    num_questions: int


class QuestionPublicOut(CamelModel):
    id: str
    question_text: str
    options: List[str]


class QuestionFullOut(QuestionPublicOut):
    correct_option_index: int


class TestPublicOut(CamelModel):
    """What a candidate (or any admin other than the author) gets: no answer key, no notes."""
    id: str
    name: str
    description: Optional[str] = None
    num_questions: int
    time_limit: int
    negative_marking_ratio: float
    cutoff_mark: float
    scheduled_date: date
    scheduled_time: str
    questions: List[QuestionPublicOut]


class TestFullOut(TestPublicOut):
    notes_content: str
    created_by: str
    assigned_to: List[str]
    questions: List[QuestionFullOut]


class TestSummaryOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    created_by: str
    num_questions: int
    time_limit: int
    negative_marking_ratio: float
    cutoff_mark: float
    scheduled_date: date
    scheduled_time: str
    assigned_count: int


class AssignRequest(CamelModel):
    candidate_id: str
    test_id: str


class AssignResponse(CamelModel):
    message: str
    test_id: str
    assigned_to: List[str]


class ScheduleUpdateRequest(CamelModel):
    cutoff_mark: Optional[float] = None
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None


class ScheduleUpdateResponse(CamelModel):
    message: str
    test_id: str
    cutoff_mark: float
    scheduled_date: date
    scheduled_time: str
