from datetime import datetime, date

from sqlalchemy import (
    Column, String, Integer, Float, Text, Date, DateTime, ForeignKey, JSON, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from edutest.database import Base


class Test(Base):
    __tablename__ = "tests"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    created_by_id = Column(String, ForeignKey("users.id"), nullable=False)
    created_by = relationship("User")

    # source text the questions were generated from; never shown to candidates
    notes_content = Column(Text, nullable=False, default="")

    num_questions = Column(Integer, nullable=False)
    time_limit = Column(Integer, nullable=False)                    # minutes
    negative_marking_ratio = Column(Float, nullable=False, default=0.0)
    cutoff_mark = Column(Float, nullable=False, default=0.0)

    scheduled_date = Column(Date, nullable=False, default=date.today)
    scheduled_time = Column(String, nullable=False, default="00:00")  # HH:MM

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    questions = relationship(
        "Question",
        back_populates="test",
        order_by="Question.position",
        cascade="all, delete-orphan",
    )
    assignments = relationship("TestAssignment", back_populates="test", cascade="all, delete-orphan")

    @property
    def assigned_to(self) -> list[str]:
        return [a.candidate_id for a in self.assignments]

    def question_by_id(self, question_id: str):
        return next((q for q in self.questions if q.id == question_id), None)


class Question(Base):
    __tablename__ = "questions"

    id = Column(String, primary_key=True, index=True)
    test_id = Column(String, ForeignKey("tests.id"), nullable=False, index=True)
    test = relationship("Test", back_populates="questions")

    position = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)            # list[str], at least two
    correct_option_index = Column(Integer, nullable=False)


class TestAssignment(Base):
    __tablename__ = "test_assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    test_id = Column(String, ForeignKey("tests.id"), nullable=False, index=True)
    test = relationship("Test", back_populates="assignments")

    candidate_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("test_id", "candidate_id", name="uq_assignment_test_candidate"),
    )
