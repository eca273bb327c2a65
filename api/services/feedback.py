"""
In-app feedback delivered as GitHub issues.

Requires GITHUB_FEEDBACK_TOKEN and GITHUB_FEEDBACK_REPO ("owner/repo").
"""

from datetime import datetime, timezone
from typing import Optional
import logging

import httpx

from api.schemas.feedback import FeedbackCreate
from core.config import settings
from core.exceptions import PayloadTooLargeError, ServiceNotConfigured, UpstreamFailure
from core.security import SessionContext

logger = logging.getLogger(__name__)

LABEL_MAP = {
    "bug": ["bug", "source:in-app"],
    "feature": ["enhancement", "source:in-app"],
}
TYPE_LABELS = {"bug": "Bug Report", "feature": "Feature Request"}
MAX_GITHUB_ISSUE_BODY_CHARS = 60000
NOT_PROVIDED = "_not provided_"
NOT_SHARED = "Not shared"


def normalize_single_line(value: str) -> str:
    return " ".join(part for part in value.replace("\r", "\n").split("\n") if part).strip()


def escape_table_value(value: str) -> str:
    return normalize_single_line(value).replace("|", "\\|")


def _or_not_provided(value: Optional[str]) -> str:
    return value.strip() if value and value.strip() else NOT_PROVIDED


def build_issue_body(
    feedback: FeedbackCreate,
    session: SessionContext,
    submitted_at: Optional[datetime] = None,
) -> str:
    """Render the markdown body of the GitHub issue."""
    submitted_at = submitted_at or datetime.now(timezone.utc)
    type_label = TYPE_LABELS[feedback.type]

    lines = [f"## {type_label}", "", "### Summary", "", feedback.description, ""]

    if feedback.type == "bug":
        ctx = feedback.bug_context
        lines += [
            "### Bug Reproduction",
            "",
            f"- Steps to reproduce: {_or_not_provided(ctx and ctx.steps_to_reproduce)}",
            f"- Expected result: {_or_not_provided(ctx and ctx.expected_result)}",
            f"- Actual result: {_or_not_provided(ctx and ctx.actual_result)}",
            "",
        ]
    else:
        ctx = feedback.feature_context
        lines += [
            "### Feature Context",
            "",
            f"- User problem: {_or_not_provided(ctx and ctx.user_problem)}",
            f"- Desired workflow: {_or_not_provided(ctx and ctx.desired_workflow)}",
            f"- Expected impact: {_or_not_provided(ctx and ctx.expected_impact)}",
            "",
        ]

    if feedback.include_screenshot and feedback.screenshot_data_url:
        lines += [
            "### Screenshot Context",
            "",
            f"Filename: {escape_table_value(feedback.screenshot_file_name or 'screenshot.jpg')}",
            "",
            "<details>",
            "<summary>Screenshot data URL (base64)</summary>",
            "",
            "```text",
            feedback.screenshot_data_url,
            "```",
            "</details>",
            "",
        ]

    reporter_rows = []
    if feedback.include_reporter_context:
        reporter_rows.append(f"| **Reporter** | {escape_table_value(session.name or 'Unknown')} |")
    if feedback.include_email:
        reporter_rows.append(f"| **Email** | {escape_table_value(session.email or 'Unknown')} |")
    if feedback.include_reporter_context and feedback.current_url:
        reporter_rows.append(f"| **Page** | {escape_table_value(str(feedback.current_url))} |")
    reporter_rows.append(f"| **Submitted** | {submitted_at.isoformat()} |")

    lines += [
        "---",
        "",
        "### Reporter Context",
        "",
        "| Field | Value |",
        "|-------|-------|",
        *reporter_rows,
    ]

    diagnostics = feedback.diagnostics
    if diagnostics is not None:
        rows = [
            ("User Agent", diagnostics.user_agent),
            ("Language", diagnostics.language),
            ("Platform", diagnostics.platform),
            ("Timezone", diagnostics.timezone),
            ("Viewport", diagnostics.viewport),
            ("Screen", diagnostics.screen),
        ]
        lines += [
            "",
            "### Technical Context",
            "",
            "| Field | Value |",
            "|-------|-------|",
            *[f"| **{name}** | {escape_table_value(value or NOT_SHARED)} |" for name, value in rows],
        ]

    lines += ["", "_Submitted via in-app feedback_"]
    return "\n".join(lines)


async def create_feedback_issue(
    feedback: FeedbackCreate,
    session: SessionContext,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Create a GitHub issue for the feedback and return its URL.

    Raises:
        ServiceNotConfigured: token or repository missing
        PayloadTooLargeError: rendered body exceeds GitHub's limit
        UpstreamFailure: GitHub rejected or could not be reached
    """
    token = settings.github_feedback_token
    repository = settings.github_feedback_repo
    if not token or not repository or "/" not in repository:
        raise ServiceNotConfigured("Feedback is not configured on this instance")

    body = build_issue_body(feedback, session)
    if len(body) > MAX_GITHUB_ISSUE_BODY_CHARS:
        raise PayloadTooLargeError(
            "Feedback payload is too large for GitHub issue body. "
            "Please reduce screenshot size or context."
        )

    owner, repo = repository.split("/", 1)
    url = f"{settings.github_api_url.rstrip('/')}/repos/{owner}/{repo}/issues"
    payload = {
        "title": f"[{TYPE_LABELS[feedback.type]}] {feedback.title}",
        "body": body,
        "labels": LABEL_MAP[feedback.type],
    }
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=10.0) as owned_client:
                response = await owned_client.post(url, json=payload, headers=headers)
        else:
            response = await client.post(url, json=payload, headers=headers)
        response.raise_for_status()
        issue_url = response.json()["html_url"]
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.error(f"GitHub issue creation failed: {type(e).__name__}: {e}")
        raise UpstreamFailure("Failed to submit feedback. Please try again later.")

    logger.info(f"Feedback issue created by user {session.user_id}: {issue_url}")
    return issue_url
