import random
from datetime import datetime, timezone

from exam_client.api_client import ApiError
from exam_client.paper import ExamPaper, Question, Student
from exam_client.quiz_exam import QuizExamView
from exam_client.submission import SubmissionState


class FakeTicker:
    instances = []

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False
        FakeTicker.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self, times=1):
        for _ in range(times):
            if self.cancelled:
                return
            self.callback()


class FakeApi:
    def __init__(self, error=None):
        self.payloads = []
        self.error = error

    def submit_quiz(self, payload):
        self.payloads.append(payload)
        if self.error:
            raise self.error
        answered = sum(1 for item in payload["answers"] if item["selectedOption"])
        return {"score": answered, "totalQuestions": len(payload["answers"]), "percentage": "50.00", "timeTaken": 1}


def _paper(count=2, duration=1):
    questions = tuple(Question(f"Q{i + 1}", {"A": "a", "B": "b", "C": "c", "D": "d"}) for i in range(count))
    return ExamPaper(id=3, name="Mock", code="MOCK", duration=duration, questions=questions)


def _view(api=None, confirm=None, paper=None, **kwargs):
    notes = []
    completed = []
    view = QuizExamView(
        paper or _paper(),
        Student("Asha Rao", "1AB21CS001"),
        api or FakeApi(),
        confirm=confirm or (lambda unanswered: True),
        notify=lambda message, severity: notes.append((message, severity)),
        on_complete=completed.append,
        ticker_factory=FakeTicker,
        clock=lambda: datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc),
        **kwargs,
    )
    return view, notes, completed


def test_mount_starts_and_close_cancels_the_ticker():
    view, _, _ = _view()
    view.mount()
    ticker = FakeTicker.instances[-1]

    assert ticker.started and ticker.interval == 1.0
    view.close()
    assert ticker.cancelled
    assert view.finished


def test_timer_expiry_auto_submits_once_and_tears_down():
    api = FakeApi()
    view, notes, completed = _view(api=api, confirm=lambda n: False)
    view.mount()
    ticker = FakeTicker.instances[-1]
    view.select_option("B")

    ticker.fire(59)
    assert api.payloads == []
    ticker.fire(1)

    assert len(api.payloads) == 1
    assert api.payloads[0]["answers"] == [{"selectedOption": "B"}, {"selectedOption": None}]
    assert api.payloads[0]["autoSubmitReason"] == "timeout"
    assert ticker.cancelled
    assert completed[0].score == 1
    assert ("1 minute remaining!", "error") not in notes
    assert notes[-1] == ("Quiz submitted! Score: 1/2", "success")

    ticker.callback()
    assert len(api.payloads) == 1


def test_warnings_reach_the_toast_sink():
    view, notes, _ = _view(paper=_paper(duration=6))
    view.mount()
    FakeTicker.instances[-1].fire(5 * 60)

    assert notes == [("5 minutes remaining!", "warning"), ("1 minute remaining!", "error")]
    assert view.timer.display == "1:00"


def test_manual_submit_closes_the_view():
    view, _, completed = _view()
    view.mount()
    view.select_option("A")
    view.next()
    view.select_option("C")

    result = view.submit()

    assert result.score == 2
    assert view.result == result
    assert completed == [result]
    assert FakeTicker.instances[-1].cancelled
    assert view.pipeline.state is SubmissionState.COMPLETED


def test_failed_submit_keeps_the_attempt_alive():
    api = FakeApi(error=ApiError("HTTP 500", status=500, server_message="Internal server error"))
    view, notes, completed = _view(api=api)
    view.mount()
    view.select_option("A")

    assert view.submit() is None

    assert notes[-1] == ("Internal server error", "error")
    assert completed == []
    assert not view.finished
    assert not FakeTicker.instances[-1].cancelled
    assert view.selected == "A"


def test_result_arriving_after_close_is_discarded():
    holder = {}

    class LateApi(FakeApi):
        def submit_quiz(self, payload):
            # The learner navigates away while the request is in flight.
            holder["view"].close()
            return super().submit_quiz(payload)

    view, notes, completed = _view(api=LateApi())
    holder["view"] = view
    view.mount()
    view.select_option("A")
    view.next()
    view.select_option("B")

    view.submit()

    assert completed == []
    assert view.result is None
    assert notes == []


def test_zero_minute_exam_submits_on_mount_without_ticking():
    api = FakeApi()
    view, _, completed = _view(api=api, paper=_paper(duration=0))

    view.mount()

    assert len(api.payloads) == 1
    assert not FakeTicker.instances[-1].started
    assert len(completed) == 1


def test_shuffle_presents_a_permutation_and_reports_exam_order():
    api = FakeApi()
    view, _, _ = _view(api=api, paper=_paper(count=4), shuffle=True, rng=random.Random(3))
    order = list(view.attempt.order)
    assert sorted(order) == [0, 1, 2, 3]

    view.mount()
    view.jump_to(order.index(2))
    view.select_option("D")
    view.submit()

    assert api.payloads[0]["answers"][2] == {"selectedOption": "D"}
    assert sum(1 for item in api.payloads[0]["answers"] if item["selectedOption"]) == 1


def test_navigation_and_progress():
    view, _, _ = _view(paper=_paper(count=4))
    view.mount()

    view.previous()
    assert view.current_index == 0
    view.jump_to(3)
    view.next()
    assert view.current_index == 3
    assert view.progress == 100.0
    assert view.current_question.text == "Q4"
