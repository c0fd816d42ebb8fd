"""Orchestrates: validate → triage → prompt → provider fallback → response."""
import logging
from typing import Any, Optional

import httpx

from kiddoc.config import Settings
from kiddoc.errors import ConfigurationError
from kiddoc.models import DiagnosisRequest, DiagnosisResponse, HandoffRecord
from kiddoc.ai.fallback import request_with_fallback
from kiddoc.ai.prompt import build_system_prompt, build_user_text, describe_child
from kiddoc.ai.triage import classify

logger = logging.getLogger(__name__)

MISSING_KEYS_MESSAGE = (
    "Server is missing provider keys. Configure GEMINI_API_KEY, GROQ_API_KEY, or ANTHROPIC_API_KEY."
)
MISSING_CLIENT_MESSAGE = "Server HTTP client is not configured."


class DiagnosisPipeline:
    """Request-scoped diagnosis flow over read-only settings and a shared HTTP client."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client

    def is_ready(self) -> bool:
        return self.settings.has_provider_key() and self.client is not None

    def check_ready(self) -> None:
        """Raise a configuration error before any input is looked at."""
        if not self.settings.has_provider_key():
            raise ConfigurationError(MISSING_KEYS_MESSAGE)
        if self.client is None:
            raise ConfigurationError(MISSING_CLIENT_MESSAGE)

    def parse(self, payload: Any) -> DiagnosisRequest:
        """Validate a raw JSON payload; raises ``pydantic.ValidationError``."""
        return DiagnosisRequest.model_validate(
            payload, context={"max_file_bytes": self.settings.max_file_bytes}
        )

    async def diagnose(self, request: DiagnosisRequest) -> DiagnosisResponse:
        self.check_ready()

        child_name, child_age = describe_child(request.name, request.age)
        triage = classify(request.symptoms, request.language)
        logger.info(f"Triage level={triage.level} reasons={list(triage.reasons)}")

        system_prompt = build_system_prompt(
            child_name=child_name,
            child_age=child_age,
            language=request.language,
            reading_level=request.reading_level,
            triage_level=triage.level,
        )
        user_text = build_user_text(
            symptoms=request.symptoms,
            child_name=child_name,
            child_age=child_age,
            language=request.language,
            reading_level=request.reading_level,
            attachment=request.file,
        )

        outcome = await request_with_fallback(
            self.settings, self.client, system_prompt, user_text, request.file
        )

        return DiagnosisResponse(
            result=outcome.text,
            provider=outcome.provider,
            triage=triage,
            handoff=HandoffRecord(
                child_name=child_name,
                child_age=child_age,
                symptoms=request.symptoms,
                language=request.language,
                reading_level=request.reading_level,
            ),
        )
