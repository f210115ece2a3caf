from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, Float, Boolean, Text, DateTime, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from edutest.database import Base

IN_PROGRESS = "in-progress"
COMPLETED = "completed"
AUTO_SUBMITTED = "auto-submitted"
ABANDONED = "abandoned"

SESSION_STATUSES = (IN_PROGRESS, COMPLETED, AUTO_SUBMITTED, ABANDONED)
FINISHED_STATUSES = (COMPLETED, AUTO_SUBMITTED)

PENDING_REVIEW = "Pending Review"
REVIEWED = "Reviewed"
REVIEW_STATUSES = (PENDING_REVIEW, REVIEWED)


class TestSession(Base):
    __tablename__ = "test_sessions"

    id = Column(String, primary_key=True)

    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    user = relationship("User", back_populates="sessions")

    test_id = Column(String, ForeignKey("tests.id"), nullable=False, index=True)
    test = relationship("Test")

    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    finished_at = Column(DateTime, nullable=True)
    submitted_at = Column(DateTime, nullable=True)

    score = Column(Float, nullable=False, default=0.0)
    max_score = Column(Integer, nullable=False)
    percentage = Column(Float, nullable=False, default=0.0)

    status = Column(String, nullable=False, default=IN_PROGRESS)
    review_status = Column(String, nullable=False, default=PENDING_REVIEW)

    # resume cursor
    current_question_index = Column(Integer, nullable=False, default=0)
    remaining_time = Column(Integer, nullable=False, default=0)   # seconds

    answers = relationship(
        "SessionAnswer",
        back_populates="session",
        order_by="SessionAnswer.position",
        cascade="all, delete-orphan",
    )

    # one attempt per candidate and test
    __table_args__ = (
        UniqueConstraint("user_id", "test_id", name="uq_session_user_test"),
    )


class SessionAnswer(Base):
    __tablename__ = "session_answers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String, ForeignKey("test_sessions.id"), nullable=False, index=True)
    session = relationship("TestSession", back_populates="answers")

    position = Column(Integer, nullable=False)
    # not a foreign key: a submitted id may not belong to the test
    question_id = Column(String, nullable=False)
    chosen_option_index = Column(Integer, nullable=False, default=-1)
    remark = Column(Text, nullable=False, default="")

    # filled once on submission
    is_correct = Column(Boolean, nullable=True)
    score_earned = Column(Float, nullable=True)
