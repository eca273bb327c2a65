"""In-app feedback schemas (bug reports and feature requests)."""

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, model_validator

MAX_SCREENSHOT_DATA_URL_CHARS = 45000
SCREENSHOT_DATA_URL_PATTERN = r"^data:image/(png|jpeg|jpg|webp);base64,[A-Za-z0-9+/=]+$"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Diagnostics(_CamelModel):
    user_agent: Optional[str] = Field(None, alias="userAgent", max_length=1000)
    language: Optional[str] = Field(None, max_length=50)
    platform: Optional[str] = Field(None, max_length=100)
    timezone: Optional[str] = Field(None, max_length=100)
    viewport: Optional[str] = Field(None, max_length=100)
    screen: Optional[str] = Field(None, max_length=100)


class FeatureContext(_CamelModel):
    user_problem: Optional[str] = Field(None, alias="userProblem", max_length=1000)
    desired_workflow: Optional[str] = Field(None, alias="desiredWorkflow", max_length=1000)
    expected_impact: Optional[str] = Field(None, alias="expectedImpact", max_length=1000)


class BugContext(_CamelModel):
    steps_to_reproduce: Optional[str] = Field(None, alias="stepsToReproduce", max_length=1500)
    expected_result: Optional[str] = Field(None, alias="expectedResult", max_length=1000)
    actual_result: Optional[str] = Field(None, alias="actualResult", max_length=1000)


class FeedbackCreate(_CamelModel):
    """Body of POST /feedback."""

    type: Literal["bug", "feature"]
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=10, max_length=5000)
    current_url: Optional[HttpUrl] = Field(None, alias="currentUrl")
    include_reporter_context: bool = Field(False, alias="includeReporterContext")
    include_email: bool = Field(False, alias="includeEmail")
    include_screenshot: bool = Field(False, alias="includeScreenshot")
    screenshot_data_url: Optional[str] = Field(
        None,
        alias="screenshotDataUrl",
        max_length=MAX_SCREENSHOT_DATA_URL_CHARS,
        pattern=SCREENSHOT_DATA_URL_PATTERN,
    )
    screenshot_file_name: Optional[str] = Field(None, alias="screenshotFileName", max_length=255)
    diagnostics: Optional[Diagnostics] = None
    feature_context: Optional[FeatureContext] = Field(None, alias="featureContext")
    bug_context: Optional[BugContext] = Field(None, alias="bugContext")

    @model_validator(mode="after")
    def screenshot_required_when_shared(self):
        if self.include_screenshot and not self.screenshot_data_url:
            raise ValueError("Screenshot is required when sharing screenshot is enabled")
        return self


class FeedbackCreated(BaseModel):
    issue_url: str
