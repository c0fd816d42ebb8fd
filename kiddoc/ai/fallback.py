"""First-success-wins chain over the configured providers."""
import logging
from typing import Optional

import httpx

from kiddoc.config import Settings
from kiddoc.errors import AllProvidersFailed, NoProviderConfigured, ProviderError
from kiddoc.models import Attachment, ProviderOutcome
from kiddoc.ai.providers import PROVIDER_REQUESTS, Provider, credential

logger = logging.getLogger(__name__)

PROVIDER_PRIORITY = (Provider.GEMINI, Provider.GROQ, Provider.ANTHROPIC)


def enabled_providers(settings: Settings) -> list[Provider]:
    """Providers with a credential, in priority order."""
    return [provider for provider in PROVIDER_PRIORITY if credential(settings, provider)]


async def request_with_fallback(
    settings: Settings,
    client: httpx.AsyncClient,
    system_prompt: str,
    user_text: str,
    attachment: Optional[Attachment] = None,
) -> ProviderOutcome:
    """Try each enabled provider once, in order, until one returns text."""
    providers = enabled_providers(settings)
    if not providers:
        raise NoProviderConfigured()

    errors: list[str] = []
    for provider in providers:
        request = PROVIDER_REQUESTS[provider]
        try:
            text = await request(settings, client, system_prompt, user_text, attachment)
        except ProviderError as exc:
            logger.warning(f"Provider {provider.value} failed: {exc.message}")
            errors.append(f"{provider.value}: {exc.message or 'failed'}")
            continue
        except Exception as exc:
            # e.g. a non-ASCII key in a header or a malformed base URL
            logger.warning(f"Provider {provider.value} raised {type(exc).__name__}: {exc}")
            errors.append(f"{provider.value}: {exc or 'failed'}")
            continue
        logger.info(f"Provider {provider.value} answered ({len(text)} chars).")
        return ProviderOutcome(provider=provider.value, text=text)

    logger.error(f"All providers failed: {errors}")
    raise AllProvidersFailed(errors)
