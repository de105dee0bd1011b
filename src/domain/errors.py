"""Errors raised while validating an integration invocation."""


class IntegrationError(Exception):
    """Base class for all integration errors."""


class IntegrationValidationError(IntegrationError):
    """Instance configuration is incomplete. Raised before any network access."""


class ProviderAuthenticationError(IntegrationError):
    """
    Provider answered the verification request with a failure status.

    Carries the provider's status code and reason phrase, never the submitted
    credentials.
    """

    def __init__(self, endpoint: str, status: int, status_text: str = "") -> None:
        self.endpoint = endpoint
        self.status = status
        self.status_text = status_text
        super().__init__(
            f"Provider authentication failed at {endpoint}: {status} {status_text}".rstrip()
        )


class ProviderTransportError(IntegrationError):
    """Provider could not be reached (DNS, refused connection, timeout, bad URL)."""

    def __init__(self, endpoint: str, reason: str) -> None:
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Provider unreachable at {endpoint}: {reason}")
