import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from exam_client.api_client import ApiError
from exam_client.quiz_state import QuizAttempt, utc_now


logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to submit quiz"


class SubmissionState(enum.Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionResult:
    score: int
    total_questions: int
    percentage: Optional[str] = None
    time_taken: Optional[int] = None

    @classmethod
    def from_api(cls, data: dict) -> "SubmissionResult":
        return cls(
            score=int(data["score"]),
            total_questions=int(data["totalQuestions"]),
            percentage=data.get("percentage"),
            time_taken=data.get("timeTaken"),
        )


class SubmissionPipeline:
    """Turns an attempt into exactly one scoring request.

    Manual submits with unanswered questions and time left go through
    ``confirm``; timer-driven submits never do, and may take over while a
    confirmation is still pending. The busy state is set under the lock
    before the request goes out, so a second trigger during the request is a
    no-op. Failures return to IDLE with the attempt untouched.
    """

    def __init__(
        self,
        api,
        attempt: QuizAttempt,
        confirm: Callable[[int], bool],
        on_complete: Callable[[SubmissionResult], None],
        on_error: Callable[[str], None],
        clock: Callable[[], datetime] = utc_now,
    ):
        self._api = api
        self._attempt = attempt
        self._confirm = confirm
        self._on_complete = on_complete
        self._on_error = on_error
        self._clock = clock
        self._lock = threading.Lock()
        self.state = SubmissionState.IDLE
        self.result: Optional[SubmissionResult] = None
        self.last_error: Optional[str] = None
        self.requests_sent = 0

    def _begin(self, auto: bool) -> dict:
        # Caller holds the lock. The answer snapshot is frozen here.
        self.state = SubmissionState.SUBMITTING
        snapshot = self._attempt.answers.snapshot()
        return self._attempt.build_payload(snapshot, submitted_at=self._clock(), auto=auto)

    def submit(self, auto: bool = False) -> Optional[SubmissionResult]:
        with self._lock:
            if self.state in (SubmissionState.SUBMITTING, SubmissionState.COMPLETED):
                logger.debug("Submit ignored while %s", self.state.value)
                return None
            if self.state is SubmissionState.CONFIRMING and not auto:
                return None
            unanswered = self._attempt.unanswered_count
            needs_confirmation = not auto and unanswered > 0 and self._attempt.timer.remaining > 0
            if needs_confirmation:
                self.state = SubmissionState.CONFIRMING
            else:
                payload = self._begin(auto)

        if needs_confirmation:
            accepted = self._confirm(unanswered)
            with self._lock:
                if self.state is not SubmissionState.CONFIRMING:
                    # The timer submitted while we were waiting.
                    return None
                if not accepted:
                    self.state = SubmissionState.IDLE
                    return None
                payload = self._begin(auto)

        return self._send(payload)

    def _send(self, payload: dict) -> Optional[SubmissionResult]:
        self.requests_sent += 1
        logger.info("Submitting exam %s for %s (auto=%s)", payload["examId"], payload["usn"], payload["autoSubmitted"])
        try:
            result = SubmissionResult.from_api(self._api.submit_quiz(payload))
        except ApiError as exc:
            logger.warning("Submission failed: %s", exc.message)
            return self._fail(exc.server_message or GENERIC_FAILURE)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Unreadable submission result: %r", exc)
            return self._fail(GENERIC_FAILURE)
        except Exception:
            with self._lock:
                self.state = SubmissionState.IDLE
            raise

        with self._lock:
            self.state = SubmissionState.COMPLETED
            self.result = result
            self.last_error = None
        self._on_complete(result)
        return result

    def _fail(self, message: str) -> None:
        with self._lock:
            self.state = SubmissionState.FAILED
            self.last_error = message
        try:
            self._on_error(message)
        finally:
            with self._lock:
                self.state = SubmissionState.IDLE
