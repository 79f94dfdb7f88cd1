import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from starlette.requests import Request

from app.core.body import MalformedBodyError, read_json_object
from app.schemas.intake import (
    CheckUserExistsRequest,
    ContractorJoinRequest,
    ContractorRequestAccepted,
    IntakeFailureOut,
    MatchedCompanyOut,
    QualificationAccepted,
    QualificationDataOut,
    QualificationForm,
    UserExistsOut,
    ValidationFailedError,
    validate_payload,
)
from app.services.identity import get_identity_verifier
from app.services.matching import match_company
from app.services.repository import (
    DuplicateApplicantError,
    DuplicateContractorRequestError,
    RepositoryError,
    get_repository,
)

logger = logging.getLogger(__name__)
router = APIRouter()

INVALID_JSON_MESSAGE = "Invalid JSON in request body"
DUPLICATE_APPLICANT_MESSAGE = "A user with this email and phone number combination already exists."
APPLICANT_NOT_FOUND_MESSAGE = "User not found. Please complete the qualification form first."
DUPLICATE_CONTRACTOR_REQUEST_MESSAGE = (
    "You have already requested to join this company. Please check your email for updates."
)
QUALIFICATION_ACCEPTED_MESSAGE = "Application processed successfully"
CONTRACTOR_REQUEST_ACCEPTED_MESSAGE = (
    "We've just pinged them. You'll be sent an email and text invite within 72 hours."
)

FAILURE_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": IntakeFailureOut},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": IntakeFailureOut},
}


def unverified_handle_message(handle: str) -> str:
    return f"Reddit user '{handle}' does not exist. Please check the username and try again."


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=IntakeFailureOut(message=message).model_dump())


def _server_failure(exc: RepositoryError) -> JSONResponse:
    logger.error("intake persistence failed: %s", exc)
    return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Internal server error: {exc}")


@router.post("/check-user-exists", response_model=UserExistsOut, responses=FAILURE_RESPONSES)
async def check_user_exists(
    request: Request,
    repository=Depends(get_repository),
) -> UserExistsOut | JSONResponse:
    try:
        payload = await read_json_object(request)
    except MalformedBodyError as exc:
        logger.warning("check-user-exists rejected body origin=%s", exc.origin)
        return _failure(status.HTTP_400_BAD_REQUEST, INVALID_JSON_MESSAGE)

    try:
        contact = validate_payload(CheckUserExistsRequest, payload)
    except ValidationFailedError as exc:
        return _failure(status.HTTP_400_BAD_REQUEST, exc.message)

    try:
        exists = await repository.applicant_exists(contact.email, contact.phone)
    except RepositoryError as exc:
        return _server_failure(exc)

    return UserExistsOut(user_exists=exists)


@router.post("/social-qualify-form", response_model=QualificationAccepted, responses=FAILURE_RESPONSES)
async def social_qualify_form(
    request: Request,
    repository=Depends(get_repository),
    verifier=Depends(get_identity_verifier),
) -> QualificationAccepted | JSONResponse:
    try:
        payload = await read_json_object(request)
    except MalformedBodyError as exc:
        logger.warning("social-qualify-form rejected body origin=%s", exc.origin)
        return _failure(status.HTTP_400_BAD_REQUEST, INVALID_JSON_MESSAGE)

    try:
        form = validate_payload(QualificationForm, payload)
    except ValidationFailedError as exc:
        logger.info("social-qualify-form validation failed: %s", exc.message)
        return _failure(status.HTTP_400_BAD_REQUEST, exc.message)

    outcome = await verifier.verify(form.reddit_username)
    if not outcome.verified:
        logger.info(
            "social-qualify-form verification failed handle=%s reason=%s",
            form.reddit_username,
            outcome.reason,
        )
        return _failure(status.HTTP_400_BAD_REQUEST, unverified_handle_message(form.reddit_username))

    try:
        if await repository.applicant_exists(form.email, form.phone):
            return _failure(status.HTTP_400_BAD_REQUEST, DUPLICATE_APPLICANT_MESSAGE)
        applicant = await repository.insert_applicant(
            email=form.email,
            phone=form.phone,
            reddit_username=form.reddit_username,
            twitter_username=form.twitter_username,
            youtube_username=form.youtube_username,
            facebook_username=form.facebook_username,
            identity_verified=True,
        )
    except DuplicateApplicantError:
        return _failure(status.HTTP_400_BAD_REQUEST, DUPLICATE_APPLICANT_MESSAGE)
    except RepositoryError as exc:
        return _server_failure(exc)

    company = match_company()
    logger.info("applicant qualified id=%s matched_company=%s", applicant.id, company.slug)
    return QualificationAccepted(
        message=QUALIFICATION_ACCEPTED_MESSAGE,
        data=QualificationDataOut(
            matched_company=MatchedCompanyOut(
                name=company.name,
                slug=company.slug,
                pay_rate=company.pay_rate,
                bonus=company.bonus,
            ),
        ),
    )


@router.post(
    "/contractor-request",
    response_model=ContractorRequestAccepted,
    responses={**FAILURE_RESPONSES, status.HTTP_404_NOT_FOUND: {"model": IntakeFailureOut}},
)
async def contractor_request(
    request: Request,
    repository=Depends(get_repository),
) -> ContractorRequestAccepted | JSONResponse:
    try:
        payload = await read_json_object(request)
    except MalformedBodyError as exc:
        logger.warning("contractor-request rejected body origin=%s", exc.origin)
        return _failure(status.HTTP_400_BAD_REQUEST, INVALID_JSON_MESSAGE)

    try:
        join_request = validate_payload(ContractorJoinRequest, payload)
    except ValidationFailedError as exc:
        logger.info("contractor-request validation failed: %s", exc.message)
        return _failure(status.HTTP_400_BAD_REQUEST, exc.message)

    try:
        applicant = await repository.find_applicant_by_email(join_request.email)
        if applicant is None:
            return _failure(status.HTTP_404_NOT_FOUND, APPLICANT_NOT_FOUND_MESSAGE)

        if await repository.contractor_request_exists(applicant.id, join_request.company_slug):
            return _failure(status.HTTP_400_BAD_REQUEST, DUPLICATE_CONTRACTOR_REQUEST_MESSAGE)

        record = await repository.insert_contractor_request(
            applicant_id=applicant.id,
            email=join_request.email,
            company_slug=join_request.company_slug,
            company_name=join_request.company_name,
            status="pending",
            joined_community_channel=True,
            can_start_job=False,
        )
    except DuplicateContractorRequestError:
        return _failure(status.HTTP_400_BAD_REQUEST, DUPLICATE_CONTRACTOR_REQUEST_MESSAGE)
    except RepositoryError as exc:
        return _server_failure(exc)

    logger.info("contractor request accepted id=%s company=%s", record.id, record.company_slug)
    return ContractorRequestAccepted(message=CONTRACTOR_REQUEST_ACCEPTED_MESSAGE)
