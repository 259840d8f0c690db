"""
Send CLI commands.

Creates missing-sheet, absent-student and AI-correction notifications.
"""

import sys

import click
from pydantic import ValidationError

from examnotify.cli import run_with_client
from examnotify.models import AICorrectionDetails, StudentExamDetails


def _student_options(func):
    options = [
        click.option("--student-id", required=True, help="Student ID."),
        click.option("--student-name", required=True, help="Student display name."),
        click.option("--roll-number", required=True, help="Roll number."),
        click.option("--exam-id", required=True, help="Exam ID."),
        click.option("--exam-title", required=True, help="Exam title."),
        click.option("--class-name", required=True, help="Class name, e.g. 10-A."),
        click.option("--reason", default="", help="Optional reason."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _finish(ok: bool, label: str) -> None:
    if ok:
        click.echo(click.style(f"{label} notification sent.", fg="green"))
    else:
        click.echo(click.style("Error: ", fg="red", bold=True) + f"Failed to send {label.lower()} notification.")
        sys.exit(1)


def _student_details(**kwargs) -> StudentExamDetails:
    try:
        return StudentExamDetails(**kwargs)
    except ValidationError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        sys.exit(1)


@click.group()
def send() -> None:
    """Create notifications."""


@send.command("missing-sheet")
@_student_options
def missing_sheet(**kwargs) -> None:
    """
    Report a missing answer sheet.

    \b
    Example:
        examnotify send missing-sheet --student-id s1 --student-name "Asha Rao" \\
            --roll-number 12 --exam-id e1 --exam-title "Maths Midterm" --class-name 10-A
    """
    details = _student_details(**kwargs)
    ok = run_with_client(lambda client: client.create_missing_sheet_notification(details))
    _finish(ok, "Missing sheet")


@send.command("absent-student")
@_student_options
def absent_student(**kwargs) -> None:
    """Report an absent student."""
    details = _student_details(**kwargs)
    ok = run_with_client(lambda client: client.create_absent_student_notification(details))
    _finish(ok, "Absent student")


@send.command("ai-complete")
@click.option("--exam-id", required=True, help="Exam ID.")
@click.option("--exam-title", required=True, help="Exam title.")
@click.option("--processed-sheets", required=True, type=click.IntRange(min=0), help="Sheets processed.")
@click.option("--average-confidence", required=True, type=click.FloatRange(min=0), help="Mean AI confidence.")
def ai_complete(exam_id: str, exam_title: str, processed_sheets: int, average_confidence: float) -> None:
    """Report that AI correction of an exam has finished."""
    details = AICorrectionDetails(
        exam_id=exam_id,
        exam_title=exam_title,
        processed_sheets=processed_sheets,
        average_confidence=average_confidence,
    )
    ok = run_with_client(lambda client: client.create_ai_correction_complete_notification(details))
    _finish(ok, "AI correction")
