import threading

import pytest
from click.testing import CliRunner

import exam_client.cli as cli_module
from exam_client.api_client import ApiError
from exam_client.paper import ExamPaper, Question


class FakeApi:
    def __init__(self, submitted=False, paper=None):
        self.submitted = submitted
        self.paper = paper or ExamPaper(
            id=9,
            name="Aptitude",
            code="APT",
            duration=10,
            questions=(Question("2 + 2?", {"A": "3", "B": "4", "C": "5", "D": "22"}),),
        )
        self.payloads = []

    def get_exam_by_code(self, code):
        if code.upper() != self.paper.code:
            raise ApiError("Exam not found or inactive", status=404, server_message="Exam not found or inactive")
        return self.paper

    def has_submitted(self, exam_id, usn):
        return self.submitted

    def submit_quiz(self, payload):
        self.payloads.append(payload)
        score = sum(1 for item in payload["answers"] if item["selectedOption"] == "B")
        return {"score": score, "totalQuestions": 1, "percentage": f"{score * 100:.2f}", "timeTaken": 0}


@pytest.fixture
def fake_api(monkeypatch):
    api = FakeApi()
    monkeypatch.setattr(cli_module, "ExamApiClient", lambda url: api)
    return api


def test_take_answers_and_submits(fake_api):
    result = CliRunner().invoke(
        cli_module.cli,
        ["take", "--code", "apt", "--name", "Asha Rao", "--usn", "1ab21cs001", "--no-shuffle"],
        input="b\ns\n",
    )

    assert result.exit_code == 0, result.output
    assert "Score: 1/1 (100.00%)" in result.output
    assert fake_api.payloads[0]["usn"] == "1AB21CS001"
    assert fake_api.payloads[0]["answers"] == [{"selectedOption": "B"}]


def test_take_confirms_before_submitting_unanswered(fake_api):
    result = CliRunner().invoke(
        cli_module.cli,
        ["take", "--code", "APT", "--name", "Asha", "--usn", "1AB", "--no-shuffle"],
        input="s\nn\ns\ny\n",
    )

    assert result.exit_code == 0, result.output
    assert result.output.count("unanswered questions. Submit anyway?") == 2
    assert len(fake_api.payloads) == 1
    assert fake_api.payloads[0]["answers"] == [{"selectedOption": None}]


def test_take_refuses_repeat_attempts(fake_api):
    fake_api.submitted = True

    result = CliRunner().invoke(cli_module.cli, ["take", "--code", "APT", "--name", "Asha", "--usn", "1AB"])

    assert result.exit_code == 1
    assert "You have already submitted this exam" in result.output
    assert fake_api.payloads == []


def test_take_reports_unknown_exam(fake_api):
    result = CliRunner().invoke(cli_module.cli, ["take", "--code", "NOPE", "--name", "Asha", "--usn", "1AB"])

    assert result.exit_code == 1
    assert "Exam not found or inactive" in result.output


def test_quitting_discards_the_attempt(fake_api):
    result = CliRunner().invoke(
        cli_module.cli,
        ["take", "--code", "APT", "--name", "Asha", "--usn", "1AB", "--no-shuffle"],
        input="a\nq\ny\n",
    )

    assert result.exit_code == 1
    assert "Exam closed without a submission." in result.output
    assert fake_api.payloads == []


def test_hunt_unlocks_both_treasures(tmp_path, monkeypatch):
    monkeypatch.setenv("PLACEMENT_DATA_DIR", str(tmp_path))

    result = CliRunner().invoke(cli_module.cli, ["hunt"], input="\n" * 6 + "Learn. Build. Ship.\n")

    assert result.exit_code == 0, result.output
    assert "First treasure unlocked! Code: 99111100101" in result.output
    assert "Second treasure unlocked! Code: 109111110107" in result.output
    assert "Treasure cracked!" in result.output
    assert (tmp_path / "treasure_hunt.json").exists()


def test_timer_submission_during_prompt_tells_learner_to_press_enter(capsys):
    prompting = threading.Event()
    on_complete = cli_module.hint_when_submitted_during_prompt(prompting)

    on_complete(None)
    assert capsys.readouterr().out == ""

    prompting.set()
    on_complete(None)
    assert "Press Enter to see your score." in capsys.readouterr().out
