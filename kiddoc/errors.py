"""Error types shared by the diagnosis pipeline and the HTTP layer."""


class DiagnosisError(Exception):
    """Base class for failures surfaced to the caller as ``{"error": ...}``."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(DiagnosisError):
    status_code = 500


class NoProviderConfigured(ConfigurationError):
    def __init__(self, message: str = "No AI provider key configured."):
        super().__init__(message)


class UpstreamError(DiagnosisError):
    status_code = 502


class AllProvidersFailed(UpstreamError):
    def __init__(self, failures: list[str]):
        self.failures = list(failures)
        super().__init__(f"All providers failed. {' | '.join(self.failures)}")


class ProviderError(Exception):
    """A single provider could not produce usable text."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
