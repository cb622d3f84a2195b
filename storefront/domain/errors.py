# storefront/domain/errors.py


class StorefrontError(Exception):
    """Base class for errors raised by the storefront services."""


class InvalidInput(StorefrontError, ValueError):
    """Caller sent a bad quantity, id or payload."""


class InvalidStateTransition(InvalidInput):
    """The order is in a state that does not allow the requested change."""


class NotFound(StorefrontError, LookupError):
    """Product, cart item, order or session does not exist."""


class SignatureInvalid(StorefrontError):
    """Webhook payload could not be authenticated."""


class PaymentProviderError(StorefrontError):
    """Upstream payment provider failed or was unreachable."""


class PersistenceError(StorefrontError):
    """Collection store read or write failed."""


class LockTimeout(PersistenceError):
    """Could not acquire the record lock in time."""
