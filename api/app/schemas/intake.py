import re
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

INVALID_EMAIL_MESSAGE = "Please enter a valid email address"
MISSING_CONTACT_MESSAGE = "Email and phone are required"

ModelT = TypeVar("ModelT", bound=BaseModel)


class ValidationFailedError(ValueError):
    """Raised when a decoded payload does not satisfy its intake schema."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _required_text(value: Any, message: str) -> str:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    raise PydanticCustomError("required", message)


def _email(value: Any) -> str:
    if isinstance(value, str):
        stripped = value.strip()
        if EMAIL_RE.match(stripped):
            return stripped
    raise PydanticCustomError("email", INVALID_EMAIL_MESSAGE)


def _optional_handle(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise PydanticCustomError("handle", "Social handles must be text")
    return value.strip() or None


class _IntakeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class QualificationForm(_IntakeModel):
    email: Any = Field(default=None, validate_default=True)
    phone: Any = Field(default=None, validate_default=True)
    reddit_username: Any = Field(default=None, alias="redditUsername", validate_default=True)
    twitter_username: str | None = Field(default=None, alias="twitterUsername")
    youtube_username: str | None = Field(default=None, alias="youtubeUsername")
    facebook_username: str | None = Field(default=None, alias="facebookUsername")

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: Any) -> str:
        return _email(value)

    @field_validator("phone", mode="before")
    @classmethod
    def _check_phone(cls, value: Any) -> str:
        return _required_text(value, "Phone number is required")

    @field_validator("reddit_username", mode="before")
    @classmethod
    def _check_reddit_username(cls, value: Any) -> str:
        return _required_text(value, "Reddit username is required")

    @field_validator("twitter_username", "youtube_username", "facebook_username", mode="before")
    @classmethod
    def _check_optional_handles(cls, value: Any) -> str | None:
        return _optional_handle(value)


class ContractorJoinRequest(_IntakeModel):
    email: Any = Field(default=None, validate_default=True)
    company_slug: Any = Field(default=None, alias="companySlug", validate_default=True)
    company_name: Any = Field(default=None, alias="companyName", validate_default=True)

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: Any) -> str:
        return _email(value)

    @field_validator("company_slug", mode="before")
    @classmethod
    def _check_company_slug(cls, value: Any) -> str:
        return _required_text(value, "Company slug is required")

    @field_validator("company_name", mode="before")
    @classmethod
    def _check_company_name(cls, value: Any) -> str:
        return _required_text(value, "Company name is required")


class CheckUserExistsRequest(_IntakeModel):
    email: Any = Field(default=None, validate_default=True)
    phone: Any = Field(default=None, validate_default=True)

    @field_validator("email", "phone", mode="before")
    @classmethod
    def _check_contact(cls, value: Any) -> str:
        return _required_text(value, MISSING_CONTACT_MESSAGE)


def validate_payload(model: type[ModelT], payload: dict[str, Any]) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        message = errors[0]["msg"] if errors else "Invalid request body"
        raise ValidationFailedError(message) from exc


class _ResponseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MatchedCompanyOut(_ResponseModel):
    name: str
    slug: str
    pay_rate: str = Field(alias="payRate")
    bonus: str


class QualificationDataOut(_ResponseModel):
    matched_company: MatchedCompanyOut = Field(alias="matchedCompany")


class QualificationAccepted(_ResponseModel):
    success: bool = True
    message: str
    data: QualificationDataOut


class ContractorRequestAccepted(_ResponseModel):
    success: bool = True
    message: str


class UserExistsOut(_ResponseModel):
    success: bool = True
    user_exists: bool = Field(alias="userExists")


class IntakeFailureOut(_ResponseModel):
    success: bool = False
    message: str
