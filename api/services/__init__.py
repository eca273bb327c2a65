"""
API Services Layer.

Database and storage operations behind the API routes. Every function takes
the caller's organization id and scopes its queries to it.
"""

from api.services.candidates import (
    find_candidate_by_email,
    resolve_candidate,
    get_candidate,
    get_candidate_detail,
)

from api.services.applications import (
    ensure_not_applied,
    create_application,
    get_application,
    update_application,
)

from api.services.jobs import (
    get_open_job_by_slug,
    get_job,
    update_job_status,
)

from api.services.questions import (
    load_job_questions,
    find_missing_answers,
    validate_required_answers,
    filter_responses,
    filter_files,
)

from api.services.documents import (
    build_storage_key,
    infer_document_type,
    ensure_document_capacity,
    store_document_blob,
    discard_blob,
    upload_candidate_document,
    get_document,
    delete_document,
    read_document,
)

from api.services.intake import (
    Submission,
    parse_submission,
    submit_application,
)

from api.services.tenancy import (
    is_read_only,
    ensure_writable,
)

from api.services.feedback import (
    build_issue_body,
    create_feedback_issue,
)

__all__ = [
    # Candidates
    "find_candidate_by_email",
    "resolve_candidate",
    "get_candidate",
    "get_candidate_detail",
    # Applications
    "ensure_not_applied",
    "create_application",
    "get_application",
    "update_application",
    # Jobs
    "get_open_job_by_slug",
    "get_job",
    "update_job_status",
    # Questions
    "load_job_questions",
    "find_missing_answers",
    "validate_required_answers",
    "filter_responses",
    "filter_files",
    # Documents
    "build_storage_key",
    "infer_document_type",
    "ensure_document_capacity",
    "store_document_blob",
    "discard_blob",
    "upload_candidate_document",
    "get_document",
    "delete_document",
    "read_document",
    # Intake
    "Submission",
    "parse_submission",
    "submit_application",
    # Tenancy
    "is_read_only",
    "ensure_writable",
    # Feedback
    "build_issue_body",
    "create_feedback_issue",
]
