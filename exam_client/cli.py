import logging
import threading

import click

from exam_client.api_client import DEFAULT_API_URL, ApiError, ExamApiClient
from exam_client.paper import Student
from exam_client.quiz_exam import QuizExamView
from exam_client.treasure_hunt import CLICKS_FOR_FIRST, CODES, FIRST, SECOND, TreasureHunt


logger = logging.getLogger(__name__)

SEVERITY_COLORS = {"info": "blue", "success": "green", "warning": "yellow", "error": "red"}
HELP_TEXT = "A-D answer | n next | p previous | g <number> go to | s submit | q quit"


def notify(message: str, severity: str = "info") -> None:
    click.secho(message, fg=SEVERITY_COLORS.get(severity), err=severity == "error")


def confirm_unanswered(unanswered: int) -> bool:
    return click.confirm(f"You have {unanswered} unanswered questions. Submit anyway?", default=False)


def hint_when_submitted_during_prompt(prompting: threading.Event):
    """The timer submits on the ticker thread while the learner sits at a prompt."""

    def on_complete(result) -> None:
        if prompting.is_set():
            notify("Time is up and your answers were submitted. Press Enter to see your score.", "warning")

    return on_complete


def render(view: QuizExamView) -> None:
    attempt = view.attempt
    question = view.current_question
    click.echo()
    click.secho(
        f"[{view.timer.display}] Question {view.current_index + 1}/{attempt.question_count}"
        f"  answered {attempt.answers.answered_count}, unanswered {attempt.unanswered_count}",
        bold=True,
    )
    click.echo(question.text)
    for letter, text in question.options.items():
        marker = "*" if view.selected == letter else " "
        click.echo(f" {marker} {letter}) {text}")


def handle_command(view: QuizExamView, command: str) -> bool:
    """Apply one learner command. Returns False when the learner quits."""
    command = command.strip()
    if not command:
        return True
    letter = command.upper()
    if letter in view.current_question.options:
        view.select_option(letter)
    elif command in ("n", "next"):
        view.next()
    elif command in ("p", "prev", "previous"):
        view.previous()
    elif command.startswith("g"):
        target = command[1:].strip()
        if not target.isdigit():
            notify("Usage: g <question number>", "warning")
            return True
        try:
            view.jump_to(int(target) - 1)
        except IndexError as exc:
            notify(str(exc), "warning")
    elif command in ("s", "submit"):
        view.submit()
    elif command in ("q", "quit"):
        return not click.confirm("Leave the exam? Your answers will be lost.", default=False)
    else:
        notify(HELP_TEXT, "info")
    return True


@click.group()
@click.option("--api-url", envvar="PLACEMENT_API_URL", default=DEFAULT_API_URL, show_default=True)
@click.option("-v", "--verbose", is_flag=True, help="Log requests and timer events.")
@click.pass_context
def cli(ctx, api_url, verbose):
    """Placement portal student tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = ExamApiClient(api_url)


@cli.command()
@click.option("--code", prompt="Exam code", help="Exam code given by your coordinator.")
@click.option("--name", prompt="Your name")
@click.option("--usn", prompt="USN")
@click.option("--shuffle/--no-shuffle", default=True, show_default=True)
@click.pass_obj
def take(api: ExamApiClient, code, name, usn, shuffle):
    """Take a timed multiple-choice exam."""
    try:
        paper = api.get_exam_by_code(code)
    except ApiError as exc:
        raise click.ClickException(exc.message)
    if not paper.questions:
        raise click.ClickException("This exam has no questions yet.")

    try:
        already = api.has_submitted(paper.id, usn)
    except ApiError as exc:
        # The server still rejects duplicates on submit.
        logger.warning("Could not check previous submission: %s", exc.message)
        already = False
    if already:
        raise click.ClickException("You have already submitted this exam")

    prompting = threading.Event()
    view = QuizExamView(
        paper,
        Student(name=name.strip(), usn=usn.strip().upper()),
        api,
        confirm=confirm_unanswered,
        notify=notify,
        on_complete=hint_when_submitted_during_prompt(prompting),
        shuffle=shuffle,
    )
    click.secho(f"{paper.name} - {len(paper.questions)} questions, {paper.duration} minute(s)", bold=True)
    click.echo(HELP_TEXT)
    view.mount()
    try:
        while not view.finished:
            render(view)
            prompting.set()
            try:
                command = click.prompt(">", default="", show_default=False)
            finally:
                prompting.clear()
            if view.finished:
                break
            if not handle_command(view, command):
                break
    finally:
        view.close()

    if view.result is None:
        raise click.ClickException("Exam closed without a submission.")
    click.secho(
        f"Score: {view.result.score}/{view.result.total_questions} ({view.result.percentage}%)",
        fg="green",
        bold=True,
    )


@cli.command(hidden=True)
@click.option("--reset", is_flag=True, help="Forget found treasures.")
def hunt(reset):
    treasure = TreasureHunt()
    if reset and treasure.path.exists():
        treasure.path.unlink()
        treasure = TreasureHunt()

    while not treasure.is_found(FIRST):
        click.prompt(f"Click the footer ({treasure.clicks}/{CLICKS_FOR_FIRST})", default="", show_default=False)
        if treasure.register_click():
            notify(f"First treasure unlocked! Code: {CODES[FIRST]}", "success")

    if not treasure.is_found(SECOND):
        text = click.prompt("Edit the tagline", default="Learn. Build. Grow.")
        if text != "Learn. Build. Grow." and treasure.mark_found(SECOND):
            notify(f"Second treasure unlocked! Code: {CODES[SECOND]}", "success")

    if treasure.complete:
        notify(f"Treasure cracked! Combined code: {treasure.combined_code()}", "success")


if __name__ == "__main__":
    cli()
