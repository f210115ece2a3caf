from datetime import date
from typing import List, Optional

from edutest.schemas.base import CamelModel


class RecentTestOut(CamelModel):
    id: str
    test_id: str
    name: str
    submitted_on: Optional[date] = None
    status: str
    score: str
    percentage: float
    review_status: str
    cutoff_mark: float
    scheduled_date: date
    scheduled_time: str
    qualified: bool


class UpcomingTestOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    time_limit: int
    num_questions: int
    cutoff_mark: float
    scheduled_date: date
    scheduled_time: str
    status: str = "Scheduled"


class PerformanceSummaryOut(CamelModel):
    total_tests: int
    average_score: float
    tests_completed: int


class DashboardOut(CamelModel):
    recent_tests: List[RecentTestOut]
    upcoming_tests: List[UpcomingTestOut]
    performance_summary: PerformanceSummaryOut


class CandidateOverviewOut(CamelModel):
    id: str
    name: str
    email: str
    last_test_result_id: Optional[str] = None
    test_status: str = "N/A"
    total_score: float = 0.0
    tests_completed: int = 0
