"""Domain error types."""
from typing import Optional


class DomainError(Exception):
    """Base domain error."""
    pass


class NotFoundError(DomainError):
    """Resource not found."""
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with id {identifier} not found")


class ValidationError(DomainError):
    """Validation error."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ExternalServiceError(DomainError):
    """Failure reported by a collaborator outside the process (store, push provider).

    `code` keeps the collaborator's own classification (e.g. FCM's NOT_FOUND) for logging.
    """
    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or "unknown"
        super().__init__(message)


class StoreError(ExternalServiceError):
    """Persistent store read/write failed."""
    pass


class PushProviderError(ExternalServiceError):
    """Push provider rejected or failed to deliver a notification."""
    pass
