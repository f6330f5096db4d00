"""
Tavara.care Coordination Service - Error Types

Exceptions raised by services and translated to HTTP responses by the API layer.
Invalid input uses the builtin ValueError and role violations use PermissionError.
"""


class NotFoundError(LookupError):
    """A referenced row does not exist."""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found: {resource_id}")


class ConflictError(Exception):
    """The requested state change clashes with the current state of a row."""


class IntegrationError(Exception):
    """An outbound call to PayPal, Resend or WhatsApp failed."""

    def __init__(self, provider: str, message: str, status_code: int = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider} error: {message}")
