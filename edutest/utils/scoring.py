from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

logger = logging.getLogger(__name__)

UNATTEMPTED = -1


@dataclass(frozen=True)
class AnswerResult:
    question_id: str
    chosen_option_index: int
    remark: str
    is_correct: bool
    score_earned: float
    known: bool = True     # False when question_id is not part of the test


@dataclass
class ScoreResult:
    answers: List[AnswerResult] = field(default_factory=list)
    score: float = 0.0
    max_score: int = 0
    percentage: float = 0.0
    correct: int = 0
    wrong: int = 0
    unattempted: int = 0

    def summary(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "max_score": self.max_score,
            "percentage": self.percentage,
            "correct": self.correct,
            "wrong": self.wrong,
            "unattempted": self.unattempted,
        }


def score_answers(
    questions: Sequence[Any],
    answers: Iterable[Dict[str, Any]],
    negative_marking_ratio: float,
) -> ScoreResult:
    """
    questions: the test's questions (objects with `id` and `correct_option_index`)
    answers: [{question_id, chosen_option_index, remark}]
    negative_marking_ratio: points deducted for a wrong answer (0..1)

    Each question is worth one point. A wrong answer costs `negative_marking_ratio`,
    an unattempted one (-1) costs nothing. Questions the candidate never sent are
    appended as unattempted. An answer pointing at a question that is not in the
    test scores zero and is reported, it does not abort the submission.
    The result depends on the arguments only.
    """
    by_id = {q.id: q for q in questions}
    max_score = len(by_id)

    out = ScoreResult(max_score=max_score)
    raw_score = 0.0
    seen: set[str] = set()

    for a in answers:
        qid = str(a.get("question_id"))
        chosen = int(a.get("chosen_option_index", UNATTEMPTED))
        remark = a.get("remark") or ""
        q = by_id.get(qid)

        if q is None:
            logger.warning("Answer references question %s which is not part of the test", qid)
            out.answers.append(AnswerResult(qid, chosen, remark, False, 0.0, known=False))
            continue

        seen.add(qid)
        if chosen == UNATTEMPTED:
            is_correct, earned = False, 0.0
            out.unattempted += 1
        elif chosen == q.correct_option_index:
            is_correct, earned = True, 1.0
            out.correct += 1
        else:
            is_correct, earned = False, -float(negative_marking_ratio)
            out.wrong += 1

        raw_score += earned
        out.answers.append(AnswerResult(qid, chosen, remark, is_correct, earned))

    for q in questions:
        if q.id not in seen:
            out.answers.append(AnswerResult(q.id, UNATTEMPTED, "", False, 0.0))
            out.unattempted += 1

    out.score = round(raw_score, 2)
    out.percentage = round(raw_score / max_score * 100, 2) if max_score else 0.0
    return out


def cutoff_percentage(cutoff_mark: float, max_score: int) -> float:
    """Cutoff expressed on the percentage scale: cutoff_mark / max_score * 100."""
    if not max_score:
        return 0.0
    return cutoff_mark / max_score * 100


def is_qualified(percentage: float, cutoff_mark: float, max_score: int) -> bool:
    # the result page compares percentage against the cutoff re-derived from max_score
    return percentage >= cutoff_percentage(cutoff_mark, max_score)


def count_outcomes(answers: Iterable[Any]) -> Dict[str, int]:
    """Rebuild correct/wrong/unattempted counts from stored answers."""
    counts = {"correct": 0, "wrong": 0, "unattempted": 0}
    for a in answers:
        if a.chosen_option_index == UNATTEMPTED:
            counts["unattempted"] += 1
        elif a.is_correct:
            counts["correct"] += 1
        else:
            counts["wrong"] += 1
    return counts
