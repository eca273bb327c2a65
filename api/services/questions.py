"""Job question loading and submission completeness checks."""

from typing import Mapping, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.applications import QuestionAnswer
from core.exceptions import MissingRequiredAnswers
from database.models.jobs import JobQuestion, QuestionType

T = TypeVar("T")


async def load_job_questions(
    db: AsyncSession, organization_id: str, job_id: str
) -> list[JobQuestion]:
    """All questions of a job in display order."""
    result = await db.execute(
        select(JobQuestion)
        .where(
            JobQuestion.organization_id == organization_id,
            JobQuestion.job_id == job_id,
        )
        .order_by(JobQuestion.display_order, JobQuestion.created_at)
    )
    return list(result.scalars().all())


def find_missing_answers(
    questions: Sequence[JobQuestion],
    responses: Sequence[QuestionAnswer],
    files: Mapping[str, object],
) -> list[str]:
    """
    Labels of required questions left unanswered, in display order.

    A required file_upload question needs an entry in ``files``; any other
    required question needs a response with its id (presence only).
    """
    answered = {response.question_id for response in responses}
    missing = []
    for question in questions:
        if not question.required:
            continue
        if question.type == QuestionType.FILE_UPLOAD:
            satisfied = question.id in files
        else:
            satisfied = question.id in answered
        if not satisfied:
            missing.append(question.label)
    return missing


def validate_required_answers(
    questions: Sequence[JobQuestion],
    responses: Sequence[QuestionAnswer],
    files: Mapping[str, object],
) -> None:
    """Raise MissingRequiredAnswers naming every unanswered required question."""
    missing = find_missing_answers(questions, responses, files)
    if missing:
        raise MissingRequiredAnswers(missing)


def filter_responses(
    questions: Sequence[JobQuestion], responses: Sequence[QuestionAnswer]
) -> list[QuestionAnswer]:
    """Drop responses to questions that are not this job's non-file questions."""
    valid_ids = {q.id for q in questions if q.type != QuestionType.FILE_UPLOAD}
    return [response for response in responses if response.question_id in valid_ids]


def filter_files(questions: Sequence[JobQuestion], files: Mapping[str, T]) -> dict[str, T]:
    """Drop files whose question is not one of this job's file_upload questions."""
    file_question_ids = {q.id for q in questions if q.type == QuestionType.FILE_UPLOAD}
    return {qid: f for qid, f in files.items() if qid in file_question_ids}
