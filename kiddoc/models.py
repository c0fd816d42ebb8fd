import re
from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

SUPPORTED_LANGUAGES = ("en", "es", "fr")
SUPPORTED_READING_LEVELS = ("very_simple", "simple", "detailed")
IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})
ALLOWED_UPLOAD_MIME_TYPES = IMAGE_MIME_TYPES | {"application/pdf", "text/plain"}
DEFAULT_MAX_FILE_BYTES = 4 * 1024 * 1024
AGE_MESSAGE = "Age must be a whole number from 1 to 18."

Language = Literal["en", "es", "fr"]
ReadingLevel = Literal["very_simple", "simple", "detailed"]
TriageLevel = Literal["emergency", "caution", "routine"]

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/=]+$")
_WHITESPACE_RE = re.compile(r"\s+")


def _invalid(message: str) -> PydanticCustomError:
    return PydanticCustomError("invalid_input", message)


def _enum_violation(value, allowed: tuple[str, ...]) -> PydanticCustomError:
    expected = " | ".join(f"'{option}'" for option in allowed)
    return PydanticCustomError(
        "enum",
        "Invalid enum value. Expected {expected}, received '{received}'",
        {"expected": expected, "received": str(value)},
    )


def estimate_base64_size(payload: str) -> int:
    """Decoded byte size of a base64 payload, without decoding it."""
    normalized = _WHITESPACE_RE.sub("", payload)
    padding = 2 if normalized.endswith("==") else 1 if normalized.endswith("=") else 0
    return (len(normalized) * 3) // 4 - padding


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Attachment(_CamelModel):
    base64: str
    mime_type: str
    file_name: str = "upload"
    is_image: bool = Field(strict=True)

    @field_validator("base64")
    @classmethod
    def _check_payload_length(cls, value: str) -> str:
        if len(value) < 16:
            raise _invalid("Invalid file content.")
        if len(value) > 6_000_000:
            raise _invalid("File payload is too large.")
        return value

    @field_validator("mime_type")
    @classmethod
    def _check_mime_type(cls, value: str) -> str:
        value = value.strip()
        if not 3 <= len(value) <= 120:
            raise _invalid("Invalid file type.")
        return value

    @field_validator("file_name")
    @classmethod
    def _check_file_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) > 200:
            raise _invalid("File name is too long.")
        return value

    @model_validator(mode="after")
    def _check_content(self, info: ValidationInfo):
        max_file_bytes = (info.context or {}).get("max_file_bytes", DEFAULT_MAX_FILE_BYTES)
        mime_type = self.mime_type.lower()
        clean = _WHITESPACE_RE.sub("", self.base64)

        if not _BASE64_RE.match(clean):
            raise _invalid("Uploaded file content is invalid.")
        if mime_type not in ALLOWED_UPLOAD_MIME_TYPES:
            raise _invalid("Unsupported upload type. Use JPEG, PNG, WEBP, PDF, or TXT.")
        if self.is_image and mime_type not in IMAGE_MIME_TYPES:
            raise _invalid("Image uploads must be JPEG, PNG, or WEBP.")
        if estimate_base64_size(clean) > max_file_bytes:
            raise _invalid(f"File is too large. Max size is {max_file_bytes // (1024 * 1024)}MB.")
        return self


class DiagnosisRequest(_CamelModel):
    symptoms: str
    name: str = ""
    age: Union[int, float, str] = ""
    language: Language = "en"
    reading_level: ReadingLevel = "simple"
    file: Optional[Attachment] = None

    @field_validator("symptoms")
    @classmethod
    def _check_symptoms(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise _invalid("Please provide symptoms.")
        if len(value) > 1500:
            raise _invalid("Symptoms are too long.")
        return value

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) > 50:
            raise _invalid("Name is too long.")
        return value

    @field_validator("age", mode="before")
    @classmethod
    def _reject_bool_age(cls, value):
        # bool is an int subclass and would otherwise pass as 1 or 0
        if isinstance(value, bool):
            raise _invalid(AGE_MESSAGE)
        return value

    @field_validator("language", mode="before")
    @classmethod
    def _check_language(cls, value):
        if value not in SUPPORTED_LANGUAGES:
            raise _enum_violation(value, SUPPORTED_LANGUAGES)
        return value

    @field_validator("reading_level", mode="before")
    @classmethod
    def _check_reading_level(cls, value):
        if value not in SUPPORTED_READING_LEVELS:
            raise _enum_violation(value, SUPPORTED_READING_LEVELS)
        return value

    @model_validator(mode="after")
    def _check_age(self):
        """Age range runs after the field checks so field errors are reported first."""
        text = str(self.age).strip()
        if not text:
            self.age = ""
            return self
        try:
            number = float(text)
        except ValueError:
            number = None
        if number is None or not number.is_integer() or not 1 <= number <= 18:
            raise _invalid(AGE_MESSAGE)
        if isinstance(self.age, float):
            self.age = int(number)
        return self


class TriageResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: TriageLevel
    title: str
    message: str
    reasons: tuple[str, ...] = ()


class HandoffRecord(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    child_name: str
    child_age: str
    symptoms: str
    language: Language
    reading_level: ReadingLevel


class ProviderOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str
    text: str


class DiagnosisResponse(BaseModel):
    result: str
    provider: str
    triage: TriageResult
    handoff: HandoffRecord


class ErrorResponse(BaseModel):
    error: str
