"""Driver error taxonomy."""


class DriverError(Exception):
    """Base class for driver errors."""


class NotConfigured(DriverError):
    """Required platform credential is missing."""


class AuthenticationFailed(DriverError):
    """Webhook signature did not match."""


class MalformedPayload(DriverError, ValueError):
    """Request body could not be decoded."""


class UpstreamFetchFailed(DriverError):
    """Call to the platform API failed (profile lookup, media fetch, delivery)."""
