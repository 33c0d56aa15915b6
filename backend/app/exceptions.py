"""Custom exceptions for the DealDine backend."""


class DealDineError(Exception):
    """Base exception for all DealDine errors."""


class GmailAPIError(DealDineError):
    """Raised when a Gmail search or fetch call fails."""


class StorageError(DealDineError):
    """Raised when a Supabase query or write fails."""


class MailDeliveryError(DealDineError):
    """Raised when an outbound notification email cannot be sent."""


class ConfigurationError(DealDineError):
    """Raised when a required environment variable is missing."""
