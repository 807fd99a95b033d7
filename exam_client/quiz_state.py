"""State held by one quiz attempt.

Everything here is plain in-memory state with explicit transition methods.
Nothing is persisted: an attempt lives as long as its exam view.
"""
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from exam_client.paper import ExamPaper, Student


# remaining seconds -> (message, severity)
TIME_WARNINGS = {
    300: ("5 minutes remaining!", "warning"),
    60: ("1 minute remaining!", "error"),
}


def format_time(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


class AnswerStore:
    def __init__(self):
        self._answers: Dict[int, str] = {}

    def select(self, index: int, letter: str) -> None:
        # Caller limits letters to the rendered options.
        self._answers[index] = letter

    def selected(self, index: int) -> Optional[str]:
        return self._answers.get(index)

    @property
    def answered_count(self) -> int:
        return len(self._answers)

    def unanswered_count(self, total: int) -> int:
        return total - self.answered_count

    def snapshot(self) -> Dict[int, str]:
        return dict(self._answers)


class NavigationController:
    def __init__(self, question_count: int):
        if question_count < 1:
            raise ValueError("An exam needs at least one question")
        self.question_count = question_count
        self.current = 0

    @property
    def is_first(self) -> bool:
        return self.current == 0

    @property
    def is_last(self) -> bool:
        return self.current == self.question_count - 1

    def next(self) -> int:
        if not self.is_last:
            self.current += 1
        return self.current

    def previous(self) -> int:
        if not self.is_first:
            self.current -= 1
        return self.current

    def jump_to(self, index: int) -> int:
        if not 0 <= index < self.question_count:
            raise IndexError(f"Question {index + 1} does not exist")
        self.current = index
        return self.current


class CountdownTimer:
    """Counts down one second per tick and fires ``on_expire`` exactly once."""

    def __init__(
        self,
        duration_minutes: int,
        on_expire: Callable[[], None],
        on_warning: Optional[Callable[[str, str], None]] = None,
    ):
        self.remaining = int(duration_minutes) * 60
        self.expired = False
        self.stopped = False
        self._on_expire = on_expire
        self._on_warning = on_warning

    @property
    def display(self) -> str:
        return format_time(self.remaining)

    def start(self) -> None:
        # A zero-length exam is over before the first tick.
        if self.remaining <= 0:
            self._expire()

    def stop(self) -> None:
        self.stopped = True

    def tick(self) -> None:
        if self.stopped or self.expired:
            return
        self.remaining -= 1
        warning = TIME_WARNINGS.get(self.remaining)
        if warning and self._on_warning:
            self._on_warning(*warning)
        if self.remaining <= 0:
            self._expire()

    def _expire(self) -> None:
        self.remaining = 0
        self.expired = True
        self.stopped = True
        self._on_expire()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QuizAttempt:
    """One learner's pass over an exam.

    ``order`` maps display position to the question's index in the exam, so
    a shuffled presentation still reports answers in exam order.
    """

    def __init__(
        self,
        paper: ExamPaper,
        student: Student,
        timer: CountdownTimer,
        order: Optional[Sequence[int]] = None,
        started_at: Optional[datetime] = None,
    ):
        self.paper = paper
        self.student = student
        self.timer = timer
        self.order: List[int] = list(order) if order is not None else list(range(len(paper.questions)))
        if sorted(self.order) != list(range(len(paper.questions))):
            raise ValueError("Question order must be a permutation of the exam's questions")
        self.answers = AnswerStore()
        self.navigation = NavigationController(len(paper.questions))
        self.started_at = started_at or utc_now()

    @property
    def question_count(self) -> int:
        return len(self.order)

    @property
    def unanswered_count(self) -> int:
        return self.answers.unanswered_count(self.question_count)

    @property
    def current_question(self):
        return self.paper.questions[self.order[self.navigation.current]]

    def select(self, letter: str) -> None:
        self.answers.select(self.navigation.current, letter)

    def ordered_answers(self, snapshot: Dict[int, str]):
        by_exam_index = {self.order[shown]: letter for shown, letter in snapshot.items()}
        return [{"selectedOption": by_exam_index.get(index)} for index in range(self.question_count)]

    def build_payload(self, snapshot: Dict[int, str], submitted_at: datetime, auto: bool) -> dict:
        return {
            "examId": self.paper.id,
            "studentName": self.student.name,
            "usn": self.student.usn,
            "answers": self.ordered_answers(snapshot),
            "startedAt": self.started_at.isoformat(),
            "submittedAt": submitted_at.isoformat(),
            "autoSubmitted": auto,
            "autoSubmitReason": "timeout" if auto else "manual",
        }
