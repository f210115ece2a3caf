"""Client for the external text-to-MCQ generation service.

The service receives source text and a desired count and answers with a JSON
array of ``{questionText, options, correctAnswerIndex}`` items. Generated
questions always carry exactly four options. Anything else is treated as a
failed generation: the caller must not create a test from a partial set.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from edutest import config
from edutest.utils.errors import UpstreamGenerationError

logger = logging.getLogger(__name__)

OPTIONS_PER_QUESTION = 4


def validate_generated(items: Any, desired_count: int) -> List[Dict[str, Any]]:
    """
    Checks the raw service payload and returns questions in the internal shape
    ``{text, options, correct_option_index}``, truncated to `desired_count`.
    Fewer questions than requested are accepted.
    """
    if not isinstance(items, list) or not items:
        raise UpstreamGenerationError("Generator did not return a valid array of questions or it was empty.")

    out: List[Dict[str, Any]] = []
    for index, q in enumerate(items):
        if not isinstance(q, dict):
            raise UpstreamGenerationError(f"Generator returned malformed question at index {index}.")
        text = q.get("questionText")
        options = q.get("options")
        correct = q.get("correctAnswerIndex")
        if (
            not isinstance(text, str) or not text.strip()
            or not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION
            or not all(isinstance(o, str) and o.strip() for o in options)
            or isinstance(correct, bool) or not isinstance(correct, int)
            or not 0 <= correct < OPTIONS_PER_QUESTION
        ):
            logger.warning("Generated question %d has unexpected format: %r", index, q)
            raise UpstreamGenerationError(f"Generator returned malformed question at index {index}.")
        out.append({"text": text, "options": list(options), "correct_option_index": correct})

    if len(out) < desired_count:
        logger.warning("Generator returned %d questions, %d requested", len(out), desired_count)
    return out[:desired_count]


class QuestionGenerator:
    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ):
        self.url = url or config.GENERATOR_URL
        self.api_key = api_key if api_key is not None else config.GENERATOR_API_KEY
        self.timeout = timeout if timeout is not None else config.GENERATOR_TIMEOUT
        self._client = client

    def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        if self._client is not None:
            return self._client.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.url, json=payload, headers=headers)

    def generate(self, source_text: str, desired_count: int) -> List[Dict[str, Any]]:
        """Returns between 1 and `desired_count` validated questions or raises UpstreamGenerationError."""
        payload = {"source_text": source_text, "num_questions": desired_count}
        try:
            resp = self._post(payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as e:
            raise UpstreamGenerationError(
                f"Question generation timed out after {self.timeout:g}s."
            ) from e
        except httpx.HTTPStatusError as e:
            raise UpstreamGenerationError(
                f"Question generation failed with status {e.response.status_code}."
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamGenerationError(f"Question generation failed: {e}") from e
        except ValueError as e:
            raise UpstreamGenerationError("Generator returned a response that is not JSON.") from e

        if isinstance(data, dict) and "questions" in data:
            data = data["questions"]
        return validate_generated(data, desired_count)


def get_question_generator() -> QuestionGenerator:
    return QuestionGenerator()
