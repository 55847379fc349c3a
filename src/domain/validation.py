"""
Validation ruleset - One rule table shared by client and server.

The registration client validates each step with these rules before moving
forward, and the server re-runs the very same rules before creating or
updating an account. Keeping a single table is what guarantees that the two
sides never disagree on what is "valid".

Evaluation order per field (first failure wins):
    1. Required check  - non-empty after trimming
    2. Format check    - only when the value is non-empty
    3. Cross-field     - confirmation equals its paired field, only when
                         both values are non-empty

Step-level checks that are not tied to a single input:
    - at least one interest (step 3)
    - a profile photo reference, stored or pending (step 4)

Password strength is advisory only and never gates a transition.
"""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from email_validator import EmailNotValidError, validate_email

TOTAL_STEPS = 5
REVIEW_STEP = 5

PHOTO_FIELD = "profile_photo"
INTERESTS_FIELD = "interests"
PASSWORD_FIELDS = frozenset({"password", "confirm_password"})

MIN_PASSWORD_LENGTH = 8
MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15
MAX_PHOTO_BYTES = 5 * 1024 * 1024
GENDERS = ("male", "female", "other")

# Messages (shared verbatim by client and server)
REQUIRED = "This field is required."
INVALID_EMAIL = "Please enter a valid email address."
EMAIL_TAKEN = "This email is already registered."
PASSWORD_TOO_SHORT = "Password must be at least 8 characters."
PASSWORDS_MISMATCH = "Passwords do not match."
PHONE_HAS_LETTERS = "Phone number cannot contain letters."
PHONE_HAS_SPACES = "Phone number cannot contain spaces."
PHONE_TOO_SHORT = "Phone number must have at least 10 digits."
PHONE_TOO_LONG = "Phone number cannot have more than 15 digits."
PHONE_INVALID = "Please enter a valid phone number (digits only, + allowed at start)."
INVALID_GENDER = "Please select a valid option."
INVALID_DATE = "Please enter a valid date."
INTERESTS_REQUIRED = "Please select at least one interest."
PHOTO_REQUIRED = "Profile photo is required."
PHOTO_NOT_IMAGE = "Please select an image file."
PHOTO_TOO_LARGE = "File size must be less than 5MB."

_LETTERS = re.compile(r"[a-zA-Z]")
_WHITESPACE = re.compile(r"\s")
_PHONE_SHAPE = re.compile(r"^\+?[0-9]+$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ValidationContext:
    """
    Flags that change which rules apply.

    password_change is always active during registration; on profile update
    it follows the user's "change password" toggle.
    """

    password_change: bool = True
    today: date | None = None


REGISTRATION = ValidationContext()


def is_valid_email(value: str) -> bool:
    """Syntax-only email check (local@domain.tld), no DNS lookups."""
    try:
        validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def normalize_email(value: str) -> str:
    """Normalize email address: strip whitespace + lowercase."""
    return value.strip().lower()


def sanitize_phone(value: str) -> str:
    """
    Filter free-text phone input down to digits with an optional leading '+'.

    Any '+' typed anywhere collapses into a single leading '+'. Applying the
    function to its own output returns the same value.
    """
    cleaned = re.sub(r"[^0-9+]", "", value)
    if "+" in cleaned:
        return "+" + cleaned.replace("+", "")
    return cleaned


def _check_email(value: str, context: ValidationContext) -> str | None:
    return None if is_valid_email(value) else INVALID_EMAIL


def _check_phone(value: str, context: ValidationContext) -> str | None:
    if _LETTERS.search(value):
        return PHONE_HAS_LETTERS
    if _WHITESPACE.search(value):
        return PHONE_HAS_SPACES
    digits = len(re.sub(r"[^0-9]", "", value))
    if digits < MIN_PHONE_DIGITS:
        return PHONE_TOO_SHORT
    if digits > MAX_PHONE_DIGITS:
        return PHONE_TOO_LONG
    if not _PHONE_SHAPE.match(value):
        return PHONE_INVALID
    return None


def _check_password(value: str, context: ValidationContext) -> str | None:
    if len(value) < MIN_PASSWORD_LENGTH:
        return PASSWORD_TOO_SHORT
    return None


def _check_gender(value: str, context: ValidationContext) -> str | None:
    return None if value in GENDERS else INVALID_GENDER


def _check_date_of_birth(value: str, context: ValidationContext) -> str | None:
    if not _ISO_DATE.match(value):
        return INVALID_DATE
    try:
        born = date.fromisoformat(value)
    except ValueError:
        return INVALID_DATE
    if born > (context.today or date.today()):
        return INVALID_DATE
    return None


@dataclass(frozen=True)
class FieldRule:
    """Rule definition for a single input field."""

    name: str
    step: int
    required: bool = False
    check: Callable[[str, ValidationContext], str | None] | None = None
    confirms: str | None = None
    kind: str = "text"

    def applies(self, context: ValidationContext) -> bool:
        return self.name not in PASSWORD_FIELDS or context.password_change


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("full_name", step=1, required=True),
    FieldRule("email", step=1, required=True, check=_check_email, kind="email"),
    FieldRule("password", step=1, required=True, check=_check_password, kind="password"),
    FieldRule(
        "confirm_password", step=1, required=True, confirms="password", kind="password"
    ),
    FieldRule("country", step=2, required=True),
    FieldRule("city", step=2),
    FieldRule("phone_number", step=2, required=True, check=_check_phone, kind="tel"),
    FieldRule("gender", step=3, check=_check_gender, kind="choice"),
    FieldRule("date_of_birth", step=3, check=_check_date_of_birth, kind="date"),
)

RULES_BY_NAME: dict[str, FieldRule] = {rule.name: rule for rule in FIELD_RULES}

# Every identifier the client may place an error on, in form order.
FIELD_NAMES: tuple[str, ...] = (
    *(rule.name for rule in FIELD_RULES),
    INTERESTS_FIELD,
    PHOTO_FIELD,
)

STEP_OF_FIELD: dict[str, int] = {
    **{rule.name: rule.step for rule in FIELD_RULES},
    INTERESTS_FIELD: 3,
    PHOTO_FIELD: 4,
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def validate_field(
    name: str,
    value: Any,
    values: Mapping[str, Any] | None = None,
    context: ValidationContext = REGISTRATION,
) -> str | None:
    """
    Validate one field value.

    Args:
        name: Field identifier (snake_case)
        value: Raw value as entered
        values: All current values, needed for cross-field rules
        context: Rule switches (password change, reference date)

    Returns:
        None when valid, otherwise the single error message
    """
    if name == INTERESTS_FIELD:
        return validate_interests(value)

    rule = RULES_BY_NAME.get(name)
    if rule is None or not rule.applies(context):
        return None

    text = _text(value)
    if name not in PASSWORD_FIELDS:
        # Surrounding whitespace is dropped before storage, so it never fails a rule
        text = text.strip()
    if rule.required and not text.strip():
        return REQUIRED
    if not text:
        return None
    if rule.check is not None:
        error = rule.check(text, context)
        if error:
            return error
    if rule.confirms is not None:
        paired = _text((values or {}).get(rule.confirms))
        if paired and text != paired:
            return PASSWORDS_MISMATCH
    return None


def validate_interests(interests: Any) -> str | None:
    """At least one interest must be selected."""
    if not interests or not any(_text(item).strip() for item in interests):
        return INTERESTS_REQUIRED
    return None


def validate_photo_reference(reference: Any, *, pending: bool = False) -> str | None:
    """A stored asset reference or a pending upload must exist."""
    if pending or _text(reference).strip():
        return None
    return PHOTO_REQUIRED


def validate_photo_file(
    content_type: str | None, size: int, limit: int = MAX_PHOTO_BYTES
) -> str | None:
    """Precondition for an upload: image MIME type, at most 5 MiB by default."""
    if not content_type or not content_type.lower().startswith("image/"):
        return PHOTO_NOT_IMAGE
    if size > limit:
        return PHOTO_TOO_LARGE
    return None


def validate_step(
    step: int,
    values: Mapping[str, Any],
    context: ValidationContext = REGISTRATION,
    *,
    photo_pending: bool = False,
) -> dict[str, str]:
    """
    Validate every rule a step declares.

    Returns:
        Mapping of field -> message, empty when the step passes
    """
    if step < 1 or step > TOTAL_STEPS:
        raise ValueError(f"Unknown step: {step}")

    errors: dict[str, str] = {}
    for rule in FIELD_RULES:
        if rule.step != step:
            continue
        error = validate_field(rule.name, values.get(rule.name), values, context)
        if error:
            errors[rule.name] = error

    if step == 3:
        error = validate_interests(values.get(INTERESTS_FIELD))
        if error:
            errors[INTERESTS_FIELD] = error
    elif step == 4:
        error = validate_photo_reference(values.get(PHOTO_FIELD), pending=photo_pending)
        if error:
            errors[PHOTO_FIELD] = error
    return errors


def validate_submission(
    values: Mapping[str, Any], context: ValidationContext = REGISTRATION
) -> dict[str, str]:
    """Validate all steps 1..5 at once, as the server does."""
    errors: dict[str, str] = {}
    for step in range(1, TOTAL_STEPS + 1):
        errors.update(validate_step(step, values, context))
    return errors


def first_invalid_step(
    values: Mapping[str, Any],
    context: ValidationContext = REGISTRATION,
    *,
    photo_pending: bool = False,
) -> int | None:
    """Lowest step number whose rules fail, or None."""
    for step in range(1, TOTAL_STEPS + 1):
        if validate_step(step, values, context, photo_pending=photo_pending):
            return step
    return None


class StrengthLabel(str, Enum):
    """Categorical password strength for user feedback."""

    NONE = "none"
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


@dataclass(frozen=True)
class PasswordStrength:
    score: int
    label: StrengthLabel


def password_strength(password: str) -> PasswordStrength:
    """
    Score a password 0..4 for the strength meter.

    One point each for: length >= 8, mixed case, a digit, a special character.
    """
    score = 0
    if len(password) >= MIN_PASSWORD_LENGTH:
        score += 1
    if re.search(r"[a-z]", password) and re.search(r"[A-Z]", password):
        score += 1
    if re.search(r"\d", password):
        score += 1
    if re.search(r"[^a-zA-Z\d]", password):
        score += 1

    if not password:
        label = StrengthLabel.NONE
    elif score <= 2:
        label = StrengthLabel.WEAK
    elif score == 3:
        label = StrengthLabel.MEDIUM
    else:
        label = StrengthLabel.STRONG
    return PasswordStrength(score=score, label=label)


def ruleset_document() -> dict[str, Any]:
    """
    Describe the rule table as plain data.

    Published to browser validators so they consume the same definitions.
    """
    return {
        "totalSteps": TOTAL_STEPS,
        "fields": [
            {
                "name": rule.name,
                "step": rule.step,
                "required": rule.required,
                "kind": rule.kind,
                "confirms": rule.confirms,
            }
            for rule in FIELD_RULES
        ],
        "stepChecks": {
            "3": {"field": INTERESTS_FIELD, "message": INTERESTS_REQUIRED},
            "4": {"field": PHOTO_FIELD, "message": PHOTO_REQUIRED},
        },
        "limits": {
            "minPasswordLength": MIN_PASSWORD_LENGTH,
            "minPhoneDigits": MIN_PHONE_DIGITS,
            "maxPhoneDigits": MAX_PHONE_DIGITS,
            "maxPhotoBytes": MAX_PHOTO_BYTES,
            "genders": list(GENDERS),
        },
        "messages": {
            "required": REQUIRED,
            "invalidEmail": INVALID_EMAIL,
            "emailTaken": EMAIL_TAKEN,
            "passwordTooShort": PASSWORD_TOO_SHORT,
            "passwordsMismatch": PASSWORDS_MISMATCH,
            "phoneHasLetters": PHONE_HAS_LETTERS,
            "phoneHasSpaces": PHONE_HAS_SPACES,
            "phoneTooShort": PHONE_TOO_SHORT,
            "phoneTooLong": PHONE_TOO_LONG,
            "phoneInvalid": PHONE_INVALID,
            "invalidGender": INVALID_GENDER,
            "invalidDate": INVALID_DATE,
            "photoNotImage": PHOTO_NOT_IMAGE,
            "photoTooLarge": PHOTO_TOO_LARGE,
        },
    }
