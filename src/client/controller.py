"""
Step controller - Drives the five-step registration workflow on the client.

    1. Account    full name, email, password, confirmation
    2. Contact    country, city, phone number
    3. Personal   gender, date of birth, interests
    4. Photo      profile photo upload
    5. Review     read-only summary, final submission

Moving forward is gated by the shared ruleset for the current step and by
any taken-email answer for a field on it; moving back is always allowed.
Every mutation is mirrored to the draft store so a reload resumes exactly
where the user left off.

Background work (email uniqueness checks, previews, uploads) runs as asyncio
tasks. Their results are applied only if they still describe the current
input: an answer for an email the user has since changed, or an upload for
a photo that has since been replaced, is dropped.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from src.domain.validation import (
    EMAIL_TAKEN,
    INTERESTS_FIELD,
    PHOTO_FIELD,
    REVIEW_STEP,
    STEP_OF_FIELD,
    TOTAL_STEPS,
    PasswordStrength,
    ValidationContext,
    is_valid_email,
    password_strength,
    sanitize_phone,
    validate_field,
    validate_interests,
    validate_step,
)

from .draft import TEXT_FIELDS, DraftStore, RegistrationDraft
from .transport import ActionClient, TransportError
from .uploads import LocalFile, UploadHandler, UploadRejected

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred. Please try again."
REGISTRATION_FAILED = "Registration failed. Please check the errors above."

StepListener = Callable[[int, int], None]

# Read-only review rows, in display order
REVIEW_LABELS = (
    ("full_name", "Full Name"),
    ("email", "Email"),
    ("phone_number", "Phone"),
    ("country", "Country"),
    ("city", "City"),
    ("gender", "Gender"),
    ("date_of_birth", "Date of Birth"),
    (INTERESTS_FIELD, "Interests"),
    (PHOTO_FIELD, "Profile Photo"),
)


class InvalidTransition(Exception):
    """Navigation target is not adjacent to the current step."""

    pass


class StepController:
    """
    State machine for the registration form.

    Attributes:
        draft: Values entered so far plus current_step
        errors: Field -> message for local rule failures and server errors
        remote_errors: Field -> message from background uniqueness checks
        review: Label -> value rows built on entering the final step
        submitting: True while the final submission is in flight
        submitted: Terminal state after a successful registration
        message: Last form-level message (success or failure)
    """

    def __init__(
        self,
        client: ActionClient,
        store: DraftStore,
        uploads: UploadHandler | None = None,
        *,
        today: date | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.uploads = uploads or UploadHandler(client)
        self.context = ValidationContext(today=today)

        self.draft = RegistrationDraft()
        self.errors: dict[str, str] = {}
        self.remote_errors: dict[str, str] = {}
        self.password_strength: PasswordStrength = password_strength("")
        self.preview: str | None = None
        self.review: dict[str, str] | None = None
        self.submitting = False
        self.submitted = False
        self.message: str | None = None
        self.redirect_url: str | None = None

        self._listeners: list[StepListener] = []
        self._tasks: set[asyncio.Task] = set()
        self._photo_selection = 0

    @property
    def current_step(self) -> int:
        return self.draft.current_step

    def on_step_changed(self, listener: StepListener) -> None:
        """Register a callback receiving (previous_step, new_step)."""
        self._listeners.append(listener)

    def field_error(self, name: str) -> str | None:
        return self.errors.get(name) or self.remote_errors.get(name)

    # -- Persistence ---------------------------------------------------------

    def restore(self) -> bool:
        """
        Resume from the draft store.

        Restores the exact step without emitting a step change, and the
        stored photo reference (used as preview). Returns False when there
        was nothing (or nothing readable) to restore.
        """
        draft = self.store.load()
        if draft is None:
            return False

        self.draft = draft
        self.errors.clear()
        self.remote_errors.clear()
        self.password_strength = password_strength(draft.password or "")
        self.preview = draft.profile_photo
        self.review = self._build_review() if draft.current_step == REVIEW_STEP else None
        logger.info("Restored registration draft at step %d", draft.current_step)
        return True

    def _persist(self) -> None:
        self.store.save(self.draft)

    def reset(self) -> None:
        """Discard the draft and all local state."""
        self.store.clear()
        self.draft = RegistrationDraft()
        self.errors.clear()
        self.remote_errors.clear()
        self.password_strength = password_strength("")
        self.preview = None
        self.review = None
        self.submitting = False
        self.submitted = False
        self.message = None
        self.redirect_url = None
        self._photo_selection += 1

    # -- Field input ---------------------------------------------------------

    def set_field(self, name: str, value: Any) -> str:
        """
        Apply one keystroke-level edit and return the stored value.

        Phone input is sanitized as typed; password strength and the
        confirmation match are recomputed on every change.
        """
        if name not in TEXT_FIELDS:
            raise KeyError(f"Unknown field: {name}")

        text = "" if value is None else str(value)
        if name == "phone_number":
            text = sanitize_phone(text)

        previous = getattr(self.draft, name)
        if previous != text:
            self.remote_errors.pop(name, None)
        setattr(self.draft, name, text)

        if name == "country" and previous != text:
            self._apply_phone_code(previous, text)

        if name == "password":
            self.password_strength = password_strength(text)
        if name in ("password", "confirm_password"):
            self._check_confirmation()
        elif name in self.errors:
            # Only re-check a field that is already showing an error
            self._apply(name, validate_field(name, text, self.draft.values(), self.context))

        self._persist()
        return text

    def _apply_phone_code(self, previous_country: str | None, country: str) -> None:
        """Prefix the phone number with the dialing code of the chosen country."""
        codes = self.client.config.phone_codes
        code = codes.get(country)
        if not code:
            return
        number = self.draft.phone_number or ""
        old_code = codes.get(previous_country or "")
        if old_code and number.startswith(old_code):
            number = number[len(old_code) :]
        elif number.startswith("+"):
            # Already carries some other code typed by the user
            return
        self.draft.phone_number = code + number

    def _check_confirmation(self) -> None:
        confirm = self.draft.confirm_password or ""
        if confirm and confirm != (self.draft.password or ""):
            self._apply(
                "confirm_password",
                validate_field("confirm_password", confirm, self.draft.values(), self.context),
            )
        else:
            self.errors.pop("confirm_password", None)

    def set_interest(self, interest: str, selected: bool = True) -> None:
        interests = [item for item in self.draft.interests if item != interest]
        if selected:
            interests.append(interest)
        self.draft.interests = interests
        self._apply(INTERESTS_FIELD, validate_interests(interests))
        self._persist()

    async def blur(self, name: str) -> str | None:
        """
        Validate a field when it loses focus.

        A well-formed email also triggers a background uniqueness check;
        this method does not wait for it.
        """
        value = getattr(self.draft, name, None)
        error = validate_field(name, value, self.draft.values(), self.context)
        self._apply(name, error)
        if name == "email" and not error and value and is_valid_email(value):
            self._spawn(self._check_email(value))
        return error

    async def _check_email(self, email: str) -> None:
        try:
            exists = await self.client.check_email(email)
        except TransportError as exc:
            # Advisory only; the server re-checks on submission
            logger.warning("Email uniqueness check failed: %s", exc)
            return
        if self.draft.email != email:
            logger.debug("Discarding stale uniqueness answer")
            return
        if exists:
            self.remote_errors["email"] = EMAIL_TAKEN
        else:
            self.remote_errors.pop("email", None)

    def _apply(self, name: str, error: str | None) -> None:
        if error:
            self.errors[name] = error
        else:
            self.errors.pop(name, None)

    # -- Navigation ----------------------------------------------------------

    def _validate(self, step: int) -> dict[str, str]:
        errors = validate_step(
            step,
            self.draft.values(),
            self.context,
            photo_pending=self.uploads.pending(PHOTO_FIELD),
        )
        for name, step_of in STEP_OF_FIELD.items():
            if step_of == step:
                self.errors.pop(name, None)
        self.errors.update(errors)
        # A taken email blocks its own step like any local rule
        for name, message in self.remote_errors.items():
            if STEP_OF_FIELD.get(name) == step:
                errors.setdefault(name, message)
        return errors

    def next(self, step: int | None = None) -> bool:
        """
        Advance one step if the current step passes its rules.

        Returns:
            True when the step changed, False when validation blocked it

        Raises:
            InvalidTransition: Target is not the following step
        """
        target = self.current_step + 1 if step is None else step
        if target != self.current_step + 1 or target > TOTAL_STEPS:
            raise InvalidTransition(f"Cannot go from step {self.current_step} to {target}")
        if self._validate(self.current_step):
            return False
        self._go_to(target)
        return True

    def back(self, step: int | None = None) -> None:
        """Return to the previous step; never gated."""
        target = self.current_step - 1 if step is None else step
        if target != self.current_step - 1 or target < 1:
            raise InvalidTransition(f"Cannot go from step {self.current_step} to {target}")
        self._go_to(target)

    def _go_to(self, step: int) -> None:
        previous = self.current_step
        self.draft.current_step = step
        self._persist()
        if step == REVIEW_STEP:
            self.review = self._build_review()
        for listener in self._listeners:
            listener(previous, step)

    def _build_review(self) -> dict[str, str]:
        review: dict[str, str] = {}
        for name, label in REVIEW_LABELS:
            value = getattr(self.draft, name)
            if isinstance(value, list):
                value = ", ".join(value)
            if value:
                review[label] = value
        return review

    # -- Photo ---------------------------------------------------------------

    def select_photo(self, file: LocalFile) -> bool:
        """
        Pick a photo: check it, then preview and upload in the background.

        Returns False (with a field error) when the file is rejected. A
        previously stored reference is kept until a new upload succeeds.
        """
        try:
            self.uploads.check(file)
        except UploadRejected as exc:
            self.errors[PHOTO_FIELD] = exc.message
            return False

        self.errors.pop(PHOTO_FIELD, None)
        self._photo_selection += 1
        selection = self._photo_selection
        self._spawn(self._preview(selection, file))
        task = self.uploads.start(PHOTO_FIELD, file)
        self._spawn(self._finish_upload(selection, task))
        return True

    async def _preview(self, selection: int, file: LocalFile) -> None:
        preview = await self.uploads.render_preview(file)
        if selection == self._photo_selection:
            self.preview = preview

    async def _finish_upload(self, selection: int, task: asyncio.Task) -> None:
        result = await task
        if not result.current or selection != self._photo_selection:
            logger.debug("Discarding superseded upload result")
            return
        if result.url:
            self.draft.profile_photo = result.url
            self.errors.pop(PHOTO_FIELD, None)
            self._persist()
        else:
            self.errors[PHOTO_FIELD] = result.error

    # -- Submission ----------------------------------------------------------

    async def submit_final(self) -> bool:
        """
        Validate every step, then register.

        Navigates to the lowest failing step and aborts when any rule
        fails. Server field errors are reported the same way. The draft is
        cleared only after a successful registration.
        """
        if self.submitting or self.submitted:
            return False
        self.submitting = True
        self.message = None
        try:
            await self._settle_photo()
            for step in range(1, TOTAL_STEPS + 1):
                if self._validate(step):
                    self._jump_to(step)
                    return False

            try:
                response = await self.client.register(self.draft.submission())
            except TransportError as exc:
                logger.warning("Registration request failed: %s", exc)
                self.message = GENERIC_ERROR
                return False

            if not response.success:
                self._apply_server_errors(response.errors)
                self.message = response.message or REGISTRATION_FAILED
                return False

            self.store.clear()
            self.submitted = True
            self.message = response.message
            self.redirect_url = response.data.get("redirectUrl")
            logger.info("Registration submitted")
            return True
        finally:
            self.submitting = False

    async def _settle_photo(self) -> None:
        # A newer selection may replace the task while waiting
        while self.uploads.pending(PHOTO_FIELD):
            await self.uploads.wait(PHOTO_FIELD)
        await self.settle()

    def _apply_server_errors(self, errors: dict[str, str]) -> None:
        if not errors:
            return
        self.errors.update(errors)
        steps = [STEP_OF_FIELD[name] for name in errors if name in STEP_OF_FIELD]
        if steps:
            self._jump_to(min(steps))

    def _jump_to(self, step: int) -> None:
        """Move backwards to a failing step (submission only)."""
        if step != self.current_step:
            self._go_to(step)

    # -- Background work -----------------------------------------------------

    def _spawn(self, coroutine) -> asyncio.Task:
        task = asyncio.create_task(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def settle(self) -> None:
        """Wait for every background task, including ones started meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
