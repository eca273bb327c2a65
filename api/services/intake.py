"""
Public application intake.

``parse_submission`` turns a JSON or multipart request into a ``Submission``;
``submit_application`` runs it through the pipeline:

    job resolution -> read-only guard -> field validation -> question
    validation -> file validation -> candidate upsert -> duplicate check ->
    document ceiling -> application + responses -> per-file upload loop

Everything that can reject the submission happens before the first write.
Once the application is committed, each attached file is stored on its own:
a failing file is rolled back and its blob discarded, the others still land.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from api.schemas.applications import ApplicationSubmission
from api.services.applications import create_application, ensure_not_applied
from api.services.candidates import resolve_candidate
from api.services.documents import (
    StoredBlob,
    build_document,
    discard_blob,
    ensure_document_capacity,
    infer_document_type,
    parse_document_content,
    read_upload,
    store_document_blob,
)
from api.services.jobs import get_open_job_by_slug
from api.services.questions import (
    filter_files,
    filter_responses,
    load_job_questions,
    validate_required_answers,
)
from api.services.tenancy import ensure_writable
from core.exceptions import BadRequestError
from core.files import MAX_DOCUMENTS_PER_CANDIDATE, UploadedFile, validate_file
from core.storage.base import BlobStorage
from database.models.applications import QuestionResponse

logger = logging.getLogger(__name__)

FILE_FIELD_PREFIX = "file:"
HONEYPOT_FIELD = "website"
MAX_FORM_FIELDS = 100
MAX_FORM_FILES = MAX_DOCUMENTS_PER_CANDIDATE

_FIELD_LABELS = {
    "firstName": "first name",
    "lastName": "last name",
    "email": "email",
    "phone": "phone",
    "responses": "responses",
}


@dataclass
class Submission:
    """A parsed but not yet validated public submission."""

    fields: dict[str, Any] = field(default_factory=dict)
    responses: Any = field(default_factory=list)
    files: dict[str, UploadedFile] = field(default_factory=dict)

    @property
    def is_bot(self) -> bool:
        """True when the hidden honeypot field carries any value at all, whitespace included."""
        return self.fields.get(HONEYPOT_FIELD) not in (None, "")

    def validated(self) -> ApplicationSubmission:
        """
        Validate applicant fields and responses.

        Raises:
            BadRequestError: a required field is missing or a value is malformed
        """
        payload = {
            key: self.fields.get(key)
            for key in ("firstName", "lastName", "email", "phone")
        }
        payload["responses"] = self.responses if self.responses is not None else []
        try:
            return ApplicationSubmission.model_validate(payload)
        except ValidationError as exc:
            raise BadRequestError(_first_error_message(exc))


def _first_error_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    loc = error.get("loc") or ("body",)
    name = str(loc[0])

    ctx_error = (error.get("ctx") or {}).get("error")
    if error["type"] == "value_error" and isinstance(ctx_error, ValueError):
        return str(ctx_error)
    if name == "email":
        return "Invalid email address"
    if name == "responses":
        return "Invalid responses format"
    return f"Invalid {_FIELD_LABELS.get(name, name)}: {error['msg']}"


async def parse_submission(request: Request) -> Submission:
    """Parse a multipart or JSON submission body."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("multipart/form-data"):
        return await _parse_multipart(request)
    return await _parse_json(request)


async def _parse_json(request: Request) -> Submission:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequestError("Invalid JSON body")
    if not isinstance(body, dict):
        raise BadRequestError("Invalid JSON body")

    responses = body.get("responses")
    fields = {key: value for key, value in body.items() if key != "responses"}
    return Submission(fields=fields, responses=responses if responses is not None else [])


async def _parse_multipart(request: Request) -> Submission:
    form = await request.form(max_files=MAX_FORM_FILES, max_fields=MAX_FORM_FIELDS)

    fields: dict[str, Any] = {}
    files: dict[str, UploadedFile] = {}
    raw_responses: Optional[str] = None

    for name, value in form.multi_items():
        if isinstance(value, UploadFile):
            if not name.startswith(FILE_FIELD_PREFIX) or not value.filename:
                continue
            question_id = name[len(FILE_FIELD_PREFIX):]
            upload = await read_upload(value)
            if question_id and upload.size > 0:
                files[question_id] = upload
        elif name == "responses":
            raw_responses = value
        else:
            fields[name] = value

    responses: Any = []
    if raw_responses:
        try:
            responses = json.loads(raw_responses)
        except json.JSONDecodeError:
            raise BadRequestError("Invalid responses format")
        if not isinstance(responses, list):
            raise BadRequestError("Invalid responses format")

    return Submission(fields=fields, responses=responses, files=files)


async def submit_application(
    db: AsyncSession,
    storage: BlobStorage,
    slug: str,
    submission: Submission,
) -> str:
    """
    Persist a public application for the open job behind ``slug``.

    Returns the new application id (for logging; it is never sent to the
    applicant).

    Raises:
        JobNotAcceptingApplications: unknown slug or job not open
        ReadOnlyTenantError: the job belongs to a preview organization
        BadRequestError: malformed applicant fields
        MissingRequiredAnswers: required questions left unanswered
        FileTooLarge / UnsupportedFileType: an attached file was rejected
        DuplicateApplication: the candidate already applied to this job
        DocumentLimitExceeded: attachments would exceed the per-candidate ceiling
    """
    job = await get_open_job_by_slug(db, slug)
    organization_id = job.organization_id
    job_id = job.id
    await ensure_writable(db, organization_id)

    applicant = submission.validated()

    questions = await load_job_questions(db, organization_id, job_id)
    responses = filter_responses(questions, applicant.responses)
    files = filter_files(questions, submission.files)
    validate_required_answers(questions, responses, files)

    mime_types = {question_id: validate_file(upload.data) for question_id, upload in files.items()}
    # Resolved up front: a rollback in the upload loop expires loaded questions
    document_types = {
        question.id: infer_document_type(question.label)
        for question in questions
        if question.id in files
    }

    candidate_id = await resolve_candidate(
        db,
        organization_id,
        email=applicant.email,
        first_name=applicant.first_name,
        last_name=applicant.last_name,
        phone=applicant.phone,
    )
    await ensure_not_applied(db, organization_id, candidate_id, job_id)
    if files:
        await ensure_document_capacity(db, organization_id, candidate_id, incoming=len(files))

    application = await create_application(db, organization_id, candidate_id, job_id, responses)
    application_id = application.id

    stored = 0
    for question_id, upload in files.items():
        if await _store_attachment(
            db,
            storage,
            organization_id,
            candidate_id,
            application_id,
            question_id,
            document_types[question_id],
            upload,
            mime_types[question_id],
        ):
            stored += 1

    logger.info(
        f"Application {application_id} submitted for job {job_id} "
        f"({stored}/{len(files)} attachments stored)"
    )
    return application_id


async def _store_attachment(
    db: AsyncSession,
    storage: BlobStorage,
    organization_id: str,
    candidate_id: str,
    application_id: str,
    question_id: str,
    document_type,
    upload: UploadedFile,
    mime_type: str,
) -> bool:
    """Upload one file and record its Document and response; False on failure."""
    blob: Optional[StoredBlob] = None
    try:
        blob = await store_document_blob(storage, organization_id, candidate_id, upload.data, mime_type)
        parsed_content = await parse_document_content(upload.data, mime_type)
        document = build_document(
            organization_id, candidate_id, blob, document_type, upload, mime_type, parsed_content
        )
        db.add(document)
        db.add(
            QuestionResponse(
                organization_id=organization_id,
                application_id=application_id,
                question_id=question_id,
                value=blob.document_id,
            )
        )
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.error(
            f"Failed to store attachment for question {question_id} of application "
            f"{application_id}: {type(exc).__name__}: {exc}"
        )
        if blob is not None:
            await discard_blob(storage, blob.storage_key)
        return False
    return True
