import logging
import random
from typing import Callable, Optional

from exam_client.paper import ExamPaper, Student
from exam_client.quiz_state import CountdownTimer, QuizAttempt, utc_now
from exam_client.submission import SubmissionPipeline, SubmissionResult, SubmissionState
from exam_client.ticker import IntervalTicker


logger = logging.getLogger(__name__)


class QuizExamView:
    """Owns one exam attempt from mount to close.

    ``notify(message, severity)`` is the toast sink, ``confirm(unanswered)``
    the blocking "submit anyway?" prompt. ``close`` always cancels the ticker;
    a submission that finishes after close is discarded.
    """

    def __init__(
        self,
        paper: ExamPaper,
        student: Student,
        api,
        confirm: Callable[[int], bool],
        notify: Callable[[str, str], None],
        on_complete: Optional[Callable[[SubmissionResult], None]] = None,
        shuffle: bool = False,
        ticker_factory=IntervalTicker,
        clock=utc_now,
        rng: Optional[random.Random] = None,
    ):
        order = list(range(len(paper.questions)))
        if shuffle:
            (rng or random.Random()).shuffle(order)

        self.notify = notify
        self._on_complete = on_complete
        self.timer = CountdownTimer(paper.duration, on_expire=self._on_expire, on_warning=notify)
        self.attempt = QuizAttempt(paper, student, self.timer, order=order, started_at=clock())
        self.pipeline = SubmissionPipeline(
            api,
            self.attempt,
            confirm=confirm,
            on_complete=self._completed,
            on_error=self._failed,
            clock=clock,
        )
        self._ticker = ticker_factory(1.0, self.timer.tick)
        self.mounted = False
        self.closed = False
        self.result: Optional[SubmissionResult] = None

    # Lifecycle

    def mount(self) -> None:
        self.mounted = True
        self.timer.start()
        if not self.timer.expired:
            self._ticker.start()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.timer.stop()
        if self.mounted:
            self._ticker.cancel()

    @property
    def finished(self) -> bool:
        return self.closed or self.pipeline.state is SubmissionState.COMPLETED

    # Learner actions

    @property
    def current_index(self) -> int:
        return self.attempt.navigation.current

    @property
    def current_question(self):
        return self.attempt.current_question

    @property
    def selected(self) -> Optional[str]:
        return self.attempt.answers.selected(self.current_index)

    @property
    def progress(self) -> float:
        return (self.current_index + 1) / self.attempt.question_count * 100

    def select_option(self, letter: str) -> None:
        self.attempt.select(letter)

    def next(self) -> int:
        return self.attempt.navigation.next()

    def previous(self) -> int:
        return self.attempt.navigation.previous()

    def jump_to(self, index: int) -> int:
        return self.attempt.navigation.jump_to(index)

    def submit(self) -> Optional[SubmissionResult]:
        return self.pipeline.submit(auto=False)

    # Callbacks

    def _on_expire(self) -> None:
        logger.info("Time is up for exam %s, submitting", self.attempt.paper.id)
        self.pipeline.submit(auto=True)

    def _completed(self, result: SubmissionResult) -> None:
        if self.closed:
            logger.info("Exam view already closed, discarding result %s/%s", result.score, result.total_questions)
            return
        self.result = result
        self.notify(f"Quiz submitted! Score: {result.score}/{result.total_questions}", "success")
        self.close()
        if self._on_complete:
            self._on_complete(result)

    def _failed(self, message: str) -> None:
        if self.closed:
            return
        self.notify(message, "error")
