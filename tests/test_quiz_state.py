import pytest

from exam_client.paper import ExamPaper, Question, Student
from exam_client.quiz_state import AnswerStore, CountdownTimer, NavigationController, QuizAttempt, format_time


def _paper(count=3, duration=1):
    questions = tuple(
        Question(text=f"Question {i + 1}", options={"A": "a", "B": "b", "C": "c", "D": "d"}) for i in range(count)
    )
    return ExamPaper(id=7, name="Mock", code="MOCK", duration=duration, questions=questions)


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0:00"), (59, "0:59"), (60, "1:00"), (605, "10:05"), (-4, "0:00")],
)
def test_format_time(seconds, expected):
    assert format_time(seconds) == expected


@pytest.mark.parametrize("minutes", [1, 2, 6])
def test_timer_expires_exactly_once_at_the_last_tick(minutes):
    expired_at = []
    ticks = {"n": 0}
    timer = CountdownTimer(minutes, on_expire=lambda: expired_at.append(ticks["n"]))
    timer.start()

    for _ in range(minutes * 60 - 1):
        ticks["n"] += 1
        timer.tick()
    assert expired_at == []

    ticks["n"] += 1
    timer.tick()
    assert expired_at == [minutes * 60]

    for _ in range(5):
        timer.tick()
    assert expired_at == [minutes * 60]
    assert timer.remaining == 0
    assert timer.display == "0:00"


def test_timer_warnings_fire_once_at_300_and_60():
    warnings = []
    timer = CountdownTimer(6, on_expire=lambda: None, on_warning=lambda msg, sev: warnings.append((timer.remaining, msg, sev)))

    for _ in range(6 * 60):
        timer.tick()

    assert warnings == [
        (300, "5 minutes remaining!", "warning"),
        (60, "1 minute remaining!", "error"),
    ]


def test_timer_starting_at_five_minutes_never_announces_five_minutes():
    warnings = []
    timer = CountdownTimer(5, on_expire=lambda: None, on_warning=lambda msg, sev: warnings.append(msg))
    for _ in range(5 * 60):
        timer.tick()
    assert warnings == ["1 minute remaining!"]


def test_zero_length_timer_expires_on_start():
    expired = []
    timer = CountdownTimer(0, on_expire=lambda: expired.append(True))
    timer.start()
    timer.tick()
    assert expired == [True]


def test_stopped_timer_ignores_ticks():
    timer = CountdownTimer(1, on_expire=lambda: None)
    timer.tick()
    timer.stop()
    timer.tick()
    assert timer.remaining == 59


def test_navigation_stays_in_bounds():
    nav = NavigationController(3)

    assert nav.previous() == 0
    assert nav.next() == 1
    assert nav.next() == 2
    assert nav.next() == 2
    assert nav.jump_to(0) == 0
    assert nav.previous() == 0

    with pytest.raises(IndexError):
        nav.jump_to(3)
    with pytest.raises(IndexError):
        nav.jump_to(-1)
    assert nav.current == 0


def test_navigation_needs_questions():
    with pytest.raises(ValueError):
        NavigationController(0)


def test_answer_store_overwrites_and_counts():
    store = AnswerStore()
    store.select(0, "A")
    store.select(0, "C")
    store.select(2, "B")

    assert store.selected(0) == "C"
    assert store.selected(1) is None
    assert store.answered_count == 2
    assert store.unanswered_count(4) == 2


def test_selection_survives_navigation():
    attempt = QuizAttempt(_paper(), Student("Asha", "1AB"), CountdownTimer(1, on_expire=lambda: None))

    attempt.navigation.jump_to(1)
    attempt.select("D")
    attempt.navigation.next()
    attempt.navigation.previous()

    assert attempt.answers.selected(attempt.navigation.current) == "D"
    assert attempt.unanswered_count == 2


def test_shuffled_answers_are_reported_in_exam_order():
    attempt = QuizAttempt(
        _paper(3),
        Student("Asha", "1AB"),
        CountdownTimer(1, on_expire=lambda: None),
        order=[2, 0, 1],
    )
    attempt.select("A")  # shown first, exam question 3
    attempt.navigation.next()
    attempt.select("B")  # shown second, exam question 1

    assert attempt.current_question.text == "Question 1"
    assert attempt.ordered_answers(attempt.answers.snapshot()) == [
        {"selectedOption": "B"},
        {"selectedOption": None},
        {"selectedOption": "A"},
    ]


def test_order_must_be_a_permutation():
    with pytest.raises(ValueError):
        QuizAttempt(_paper(3), Student("Asha", "1AB"), CountdownTimer(1, on_expire=lambda: None), order=[0, 0, 1])
