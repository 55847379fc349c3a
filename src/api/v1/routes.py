"""
API v1 routes.

Defines the asynchronous action surface used by the registration client.
Each action answers with a {success, data} envelope; failures carry a
message and, for validation problems, a field -> message map keyed by the
same (camelCase) identifiers the client uses for its fields.
"""

import logging

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from src.adapters.security.action_tokens import ActionFamily, ActionTokens
from src.api.dependencies import (
    get_action_tokens,
    get_photo_storage,
    get_profile_service,
    get_registration_service,
    get_session_service,
    get_session_token,
    require_login_token,
    require_registration_token,
)
from src.api.models import (
    AccountView,
    CheckEmailData,
    CheckEmailRequest,
    ClientConfig,
    Envelope,
    FailureData,
    LoginRequest,
    RedirectData,
    RegisterRequest,
    TokenBundle,
    UpdateProfileRequest,
    UploadPhotoData,
    wire_errors,
)
from src.config.countries import COUNTRIES, PHONE_CODES
from src.config.settings import Settings, get_settings
from src.domain.exceptions import (
    AuthenticationFailed,
    ProfileAccessDenied,
    Unauthenticated,
    ValidationFailed,
)
from src.domain.models import Session
from src.domain.ports import PhotoStorage
from src.domain.profile import ProfileService
from src.domain.registration import RegistrationService
from src.domain.sessions import SessionAuthService
from src.domain.validation import REQUIRED, ruleset_document, validate_photo_file

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])

NOT_AUTHENTICATED = "Please log in to continue."


def failure(
    status_code: int, message: str, errors: dict[str, str] | None = None
) -> JSONResponse:
    """Build a failure envelope with camelCase error keys."""
    data = FailureData(message=message, errors=wire_errors(errors) if errors else None)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "data": data.model_dump(by_alias=True, exclude_none=True)},
    )


def set_session_cookie(response: Response, session: Session, settings: Settings) -> None:
    """Persistent cookie for remembered sessions, browser-session cookie otherwise."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.session_id,
        max_age=settings.remember_ttl_seconds if session.remember else None,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


@router.get(
    "/config",
    response_model=ClientConfig,
    summary="Client configuration bundle",
    description="Endpoint URL, per-family anti-forgery tokens and the country list.",
)
def client_config(
    request: Request,
    tokens: ActionTokens = Depends(get_action_tokens),
) -> ClientConfig:
    return ClientConfig(
        endpoint_url=str(request.url_for("client_config")).rsplit("/", 1)[0],
        tokens=TokenBundle(
            registration=tokens.issue(ActionFamily.REGISTRATION),
            login=tokens.issue(ActionFamily.LOGIN),
        ),
        countries=list(COUNTRIES),
        phone_codes=dict(PHONE_CODES),
    )


@router.get("/rules", summary="Shared validation rule table")
def rules() -> dict:
    return ruleset_document()


@router.post(
    "/check_email",
    response_model=Envelope[CheckEmailData],
    dependencies=[Depends(require_registration_token)],
    summary="Check whether an email is already registered",
)
def check_email(
    request_data: CheckEmailRequest,
    service: RegistrationService = Depends(get_registration_service),
):
    if not request_data.email.strip():
        return failure(status.HTTP_422_UNPROCESSABLE_ENTITY, REQUIRED, {"email": REQUIRED})
    return Envelope(data=CheckEmailData(exists=service.email_exists(request_data.email)))


@router.post(
    "/upload_photo",
    response_model=Envelope[UploadPhotoData],
    dependencies=[Depends(require_registration_token)],
    summary="Upload a profile photo",
    description="Accepts one image (max 5 MiB) and returns its asset URL.",
)
async def upload_photo(
    file: UploadFile = File(...),
    storage: PhotoStorage = Depends(get_photo_storage),
    settings: Settings = Depends(get_settings),
):
    # Read one byte past the limit so oversize files are detected without buffering them whole
    data = await file.read(settings.max_photo_bytes + 1)
    error = validate_photo_file(file.content_type, len(data), settings.max_photo_bytes)
    if error:
        return failure(status.HTTP_422_UNPROCESSABLE_ENTITY, error)

    try:
        url = await run_in_threadpool(
            storage.save, file.filename or "", file.content_type, data
        )
    except OSError:
        logger.exception("Photo storage failed")
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Photo upload failed.")
    return Envelope(data=UploadPhotoData(url=url))


@router.post(
    "/register",
    response_model=Envelope[RedirectData],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_registration_token)],
    summary="Create an account",
    description="Re-validates every field server-side, creates the account and starts a session.",
)
def register(
    request_data: RegisterRequest,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
    auth: SessionAuthService = Depends(get_session_service),
    settings: Settings = Depends(get_settings),
):
    try:
        outcome = service.register(request_data.model_dump())
    except ValidationFailed as exc:
        return failure(status.HTTP_422_UNPROCESSABLE_ENTITY, exc.message, exc.errors)

    session = auth.start_session(outcome.account.id, remember=False)
    set_session_cookie(response, session, settings)
    return Envelope(
        data=RedirectData(message="Registration successful!", redirect_url=outcome.redirect_url)
    )


@router.post(
    "/login",
    response_model=Envelope[RedirectData],
    dependencies=[Depends(require_login_token)],
    summary="Log in",
    description="Unknown email and wrong password yield the same error.",
)
def login(
    request_data: LoginRequest,
    response: Response,
    auth: SessionAuthService = Depends(get_session_service),
    settings: Settings = Depends(get_settings),
):
    try:
        session = auth.login(
            request_data.identifier, request_data.password, remember=request_data.remember
        )
    except ValidationFailed as exc:
        return failure(status.HTTP_422_UNPROCESSABLE_ENTITY, exc.message, exc.errors)
    except AuthenticationFailed as exc:
        return failure(status.HTTP_401_UNAUTHORIZED, exc.message, exc.errors)

    set_session_cookie(response, session, settings)
    return Envelope(
        data=RedirectData(message="Login successful!", redirect_url=settings.profile_url)
    )


@router.post(
    "/logout",
    response_model=Envelope[RedirectData],
    dependencies=[Depends(require_login_token)],
    summary="Log out",
)
def logout(
    response: Response,
    session_id: str | None = Depends(get_session_token),
    auth: SessionAuthService = Depends(get_session_service),
    settings: Settings = Depends(get_settings),
):
    auth.logout(session_id)
    response.delete_cookie(settings.session_cookie_name)
    return Envelope(
        data=RedirectData(message="Logged out successfully.", redirect_url=settings.login_url)
    )


@router.post(
    "/update_profile",
    response_model=Envelope[RedirectData],
    dependencies=[Depends(require_registration_token)],
    summary="Update the logged-in account",
)
def update_profile(
    request_data: UpdateProfileRequest,
    session_id: str | None = Depends(get_session_token),
    service: ProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_settings),
):
    fields = request_data.model_dump(exclude={"account_id"})
    try:
        service.update_profile(session_id, request_data.account_id, fields)
    except Unauthenticated:
        return failure(status.HTTP_401_UNAUTHORIZED, NOT_AUTHENTICATED)
    except ProfileAccessDenied:
        return failure(status.HTTP_403_FORBIDDEN, "You can only update your own profile.")
    except ValidationFailed as exc:
        return failure(status.HTTP_422_UNPROCESSABLE_ENTITY, exc.message, exc.errors)

    return Envelope(
        data=RedirectData(message="Profile updated successfully!", redirect_url=settings.profile_url)
    )


@router.get(
    "/profile",
    response_model=Envelope[AccountView],
    summary="Current account",
)
def profile(
    session_id: str | None = Depends(get_session_token),
    auth: SessionAuthService = Depends(get_session_service),
):
    try:
        account = auth.verify(session_id)
    except Unauthenticated:
        return failure(status.HTTP_401_UNAUTHORIZED, NOT_AUTHENTICATED)
    return Envelope(data=AccountView.model_validate(account))
