"""Tests for the session state machine."""

from datetime import timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from edutest import models
from edutest.models.session import ABANDONED, AUTO_SUBMITTED, COMPLETED, IN_PROGRESS, REVIEWED
from edutest.utils import session_engine
from edutest.utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from edutest.utils.scoring import count_outcomes


def answers_for(test, chosen):
    """chosen: list of option indexes, one per question in order (-1 = skip)."""
    return [
        {"question_id": q.id, "chosen_option_index": c, "remark": ""}
        for q, c in zip(test.questions, chosen)
    ]


@pytest.fixture
def t0():
    return session_engine.utcnow()


class TestStartSession:
    def test_creates_in_progress_session(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        assert session.status == IN_PROGRESS
        assert session.started_at == t0
        assert session.remaining_time == 600
        assert session.max_score == 4

    def test_not_assigned_is_forbidden(self, db_session, sample_test, other_candidate):
        with pytest.raises(ForbiddenError):
            session_engine.start_session(db_session, sample_test, other_candidate)

    def test_resume_returns_same_session(self, db_session, assigned_test, candidate, t0):
        first = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        again = session_engine.start_session(db_session, assigned_test, candidate, now=t0 + timedelta(minutes=4))
        assert again.id == first.id
        assert again.remaining_time == 360
        assert db_session.query(models.TestSession).count() == 1

    def test_restart_after_submit_conflicts(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        session_engine.submit_session(db_session, assigned_test, candidate, [], now=t0 + timedelta(minutes=1))
        with pytest.raises(ConflictError):
            session_engine.start_session(db_session, assigned_test, candidate)

    def test_resume_after_deadline_auto_submits(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        session_engine.save_progress(
            db_session, session, assigned_test, answers_for(assigned_test, [1]), 1, now=t0 + timedelta(minutes=2)
        )
        with pytest.raises(ConflictError):
            session_engine.start_session(db_session, assigned_test, candidate, now=t0 + timedelta(minutes=30))
        db_session.refresh(session)
        assert session.status == AUTO_SUBMITTED
        assert session.score == 1.0


class TestSaveProgress:
    def test_saves_answers_and_cursor(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        session_engine.save_progress(
            db_session, session, assigned_test, answers_for(assigned_test, [1, 0]), 2, now=t0 + timedelta(seconds=90)
        )
        assert session.current_question_index == 2
        assert session.remaining_time == 510
        assert [a.chosen_option_index for a in session.answers] == [1, 0]
        assert all(a.is_correct is None for a in session.answers)

        # later save overwrites the earlier choice
        session_engine.save_progress(
            db_session, session, assigned_test, answers_for(assigned_test, [3]), 3, now=t0 + timedelta(minutes=3)
        )
        assert [a.chosen_option_index for a in session.answers] == [3, 0]

    def test_rejects_foreign_question(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        with pytest.raises(ValidationError):
            session_engine.save_progress(
                db_session, session, assigned_test,
                [{"question_id": "ghost", "chosen_option_index": 0, "remark": ""}], 0, now=t0,
            )

    def test_rejects_option_out_of_range(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        with pytest.raises(ValidationError):
            session_engine.save_progress(db_session, session, assigned_test, answers_for(assigned_test, [7]), 0, now=t0)

    def test_rejects_cursor_out_of_range(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        with pytest.raises(ValidationError):
            session_engine.save_progress(db_session, session, assigned_test, [], 4, now=t0)

    def test_rejected_after_deadline(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        with pytest.raises(ConflictError):
            session_engine.save_progress(
                db_session, session, assigned_test, answers_for(assigned_test, [1]), 0, now=t0 + timedelta(minutes=11)
            )
        assert session.status == AUTO_SUBMITTED


class TestSubmitSession:
    def test_worked_example(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        summary = session_engine.submit_session(
            db_session, assigned_test, candidate,
            answers_for(assigned_test, [1, 0, -1, 0]),
            now=t0 + timedelta(minutes=5),
        )
        assert summary["status"] == COMPLETED
        assert summary["score"] == 1.75
        assert summary["percentage"] == 43.75
        assert (summary["correct_answers"], summary["wrong_answers"], summary["unattempted"]) == (2, 1, 1)
        assert summary["cutoff_mark"] == 2

    def test_stored_answers_round_trip_counts(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        summary = session_engine.submit_session(
            db_session, assigned_test, candidate, answers_for(assigned_test, [1, 1]), now=t0 + timedelta(minutes=1)
        )
        session = session_engine.get_session(db_session, summary["session_id"])
        counts = count_outcomes(session.answers)
        assert counts == {
            "correct": summary["correct_answers"],
            "wrong": summary["wrong_answers"],
            "unattempted": summary["unattempted"],
        }
        assert len(session.answers) == 4
        assert session.score == sum(a.score_earned for a in session.answers)

    def test_without_start(self, db_session, assigned_test, candidate):
        with pytest.raises(NotFoundError):
            session_engine.submit_session(db_session, assigned_test, candidate, [])

    def test_second_submit_conflicts(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        session_engine.submit_session(db_session, assigned_test, candidate, [], now=t0)
        with pytest.raises(ConflictError):
            session_engine.submit_session(db_session, assigned_test, candidate, [], now=t0)
        assert db_session.query(models.TestSession).count() == 1

    def test_concurrent_submit_only_one_wins(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        other = sessionmaker(bind=db_session.get_bind())()
        try:
            other_test = other.get(models.Test, assigned_test.id)
            other_candidate = other.get(models.User, candidate.id)
            stale = session_engine.find_session(other, other_test.id, other_candidate.id)
            assert stale.status == IN_PROGRESS

            session_engine.submit_session(db_session, assigned_test, candidate, answers_for(assigned_test, [1]), now=t0)
            with pytest.raises(ConflictError):
                session_engine.submit_session(other, other_test, other_candidate, answers_for(other_test, [0]), now=t0)
        finally:
            other.close()

        assert db_session.query(models.TestSession).count() == 1
        session = session_engine.find_session(db_session, assigned_test.id, candidate.id)
        assert session.status == COMPLETED
        assert session.score == 1.0

    def test_option_out_of_range_rejected(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        with pytest.raises(ValidationError):
            session_engine.submit_session(db_session, assigned_test, candidate, answers_for(assigned_test, [9]), now=t0)
        assert session.status == IN_PROGRESS

    def test_duplicate_answers_rejected(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        qid = assigned_test.questions[0].id
        dup = [
            {"question_id": qid, "chosen_option_index": 1, "remark": ""},
            {"question_id": qid, "chosen_option_index": 2, "remark": ""},
        ]
        with pytest.raises(ValidationError):
            session_engine.submit_session(db_session, assigned_test, candidate, dup, now=t0)

    def test_unknown_question_tolerated(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        answers = answers_for(assigned_test, [1]) + [{"question_id": "ghost", "chosen_option_index": 2, "remark": ""}]
        summary = session_engine.submit_session(db_session, assigned_test, candidate, answers, now=t0)
        assert summary["score"] == 1.0
        assert summary["unattempted"] == 3
        ghost = [a for a in session_engine.get_session(db_session, summary["session_id"]).answers
                 if a.question_id == "ghost"][0]
        assert ghost.is_correct is False
        assert ghost.score_earned == 0

    def test_client_timeout_flag(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        summary = session_engine.submit_session(
            db_session, assigned_test, candidate, [], auto_submitted=True, now=t0 + timedelta(minutes=10)
        )
        assert summary["status"] == AUTO_SUBMITTED

    def test_late_submit_scores_saved_progress(self, db_session, assigned_test, candidate, t0):
        """Answers sent after the deadline are ignored; what was saved in time counts."""
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        session_engine.save_progress(
            db_session, session, assigned_test, answers_for(assigned_test, [1, 2]), 1, now=t0 + timedelta(minutes=5)
        )
        summary = session_engine.submit_session(
            db_session, assigned_test, candidate,
            answers_for(assigned_test, [1, 2, 1, 0]),
            now=t0 + timedelta(minutes=20),
        )
        assert summary["status"] == AUTO_SUBMITTED
        assert summary["score"] == 2.0
        assert summary["unattempted"] == 2

    def test_client_times_are_not_trusted(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        summary = session_engine.submit_session(
            db_session, assigned_test, candidate, answers_for(assigned_test, [1]),
            start_time=t0 + timedelta(minutes=19), end_time=t0 + timedelta(minutes=20),
            now=t0 + timedelta(minutes=20),
        )
        assert summary["status"] == AUTO_SUBMITTED
        assert summary["score"] == 0


class TestAbandon:
    def test_abandon(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        session_engine.abandon_session(db_session, session, now=t0)
        assert session.status == ABANDONED
        with pytest.raises(ConflictError):
            session_engine.abandon_session(db_session, session)
        with pytest.raises(ConflictError):
            session_engine.build_result(session)


class TestResult:
    def test_build_result(self, db_session, assigned_test, candidate, t0):
        session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        summary = session_engine.submit_session(
            db_session, assigned_test, candidate, answers_for(assigned_test, [1, 0, -1, 0]), now=t0
        )
        session = session_engine.get_session(db_session, summary["session_id"])
        result = session_engine.build_result(session).model_dump(by_alias=True)

        assert result["candidateName"] == "Asha"
        assert result["candidateEmail"] == "asha@example.com"
        assert result["totalQuestions"] == 4
        assert result["maxScore"] == 4
        assert result["negativeMarksRatio"] == 0.25
        assert (result["correctAnswers"], result["wrongAnswers"], result["unattempted"]) == (2, 1, 1)
        assert [q["userAnswer"] for q in result["questions"]] == [1, 0, -1, 0]
        assert [q["correctAnswer"] for q in result["questions"]] == [1, 2, 1, 0]
        assert result["reviewStatus"] == "Pending Review"

    def test_in_progress_has_no_result(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        with pytest.raises(ConflictError):
            session_engine.build_result(session)

    def test_review_status(self, db_session, assigned_test, candidate, t0):
        session = session_engine.start_session(db_session, assigned_test, candidate, now=t0)
        session_engine.set_review_status(db_session, session, REVIEWED)
        assert session.review_status == REVIEWED
        with pytest.raises(ValidationError):
            session_engine.set_review_status(db_session, session, "Approved")
