"""Central config loaded from environment variables."""
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).parent.parent  # repo root

DEFAULT_ALLOWED_ORIGINS = ["http://localhost:5173"]


class Settings(BaseSettings):
    app_env: str = "development"
    port: int = 8787

    # Provider credentials (any subset may be set)
    gemini_api_key: str = ""
    groq_api_key: str = ""
    anthropic_api_key: str = ""
    api_key: str = ""  # legacy name for the Anthropic key

    # Models
    gemini_model: str = "gemini-2.5-flash"
    groq_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        validation_alias=AliasChoices("anthropic_model", "model"),
    )

    # Hosts only; API version paths live in the adapters, as in the vendor SDKs
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    groq_base_url: str = "https://api.groq.com"
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"

    # Generation
    max_output_tokens: int = 900
    temperature: float = 0.4
    request_timeout: float = 60.0

    # HTTP surface
    cors_origin: str = ""  # comma-separated
    max_file_bytes: int = 4 * 1024 * 1024
    enable_request_logging: bool = True
    static_dir: Path = BASE_DIR / "dist"  # Vite build output

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("port", "max_output_tokens", "max_file_bytes", mode="before")
    @classmethod
    def _positive_int(cls, value, info):
        """Non-positive or non-integer values fall back to the field default."""
        default = cls.model_fields[info.field_name].default
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return default
        if not number.is_integer() or number <= 0:
            return default
        return int(number)

    @model_validator(mode="after")
    def _legacy_api_key(self):
        if self.api_key and not self.anthropic_api_key:
            self.anthropic_api_key = self.api_key
        return self

    @property
    def allowed_origins(self) -> list[str]:
        origins = [entry.strip() for entry in self.cors_origin.split(",") if entry.strip()]
        return origins or DEFAULT_ALLOWED_ORIGINS

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def has_provider_key(self) -> bool:
        return bool(self.gemini_api_key or self.groq_api_key or self.anthropic_api_key)


def get_settings() -> Settings:
    """Build settings once at startup; callers pass the result down explicitly."""
    return Settings()
