"""Errors raised by the AI provider gateway.

Two families matter to callers:

* ``ConfigurationError`` - the stored configuration is unusable (corrupt or
  tampered credential, unknown provider, nothing configured). Retrying will not
  help; the tenant has to reconfigure.
* ``VendorError`` - the upstream vendor or the network failed. These are
  usually transient and safe for the caller to retry.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for every gateway error."""


class ConfigurationError(GatewayError):
    """The stored AI configuration cannot be used as-is."""


class MalformedBlob(ConfigurationError):
    """Encrypted credential does not have the ``iv:tag:ciphertext`` shape."""


class AuthenticationFailure(ConfigurationError):
    """Encrypted credential failed authentication (tampered or wrong key)."""


class UnsupportedProvider(ConfigurationError):
    """Provider identifier is not one of the supported providers."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported AI provider: {provider}")


class ConfigurationNotFound(ConfigurationError):
    """No usable AI configuration exists for the request."""


class CapabilityNotSupported(GatewayError):
    """The adapter does not offer an optional capability."""

    def __init__(self, provider: str, capability: str):
        self.provider = provider
        self.capability = capability
        super().__init__(f"Provider '{provider}' does not support {capability}")


class VendorError(GatewayError):
    """Error reported by, or while talking to, an upstream AI vendor."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class VendorAuthError(VendorError):
    """Vendor rejected the API key."""


class VendorRateLimited(VendorError):
    """Vendor rate limit or quota exceeded."""


class VendorInvalidModel(VendorError):
    """Vendor does not know the requested model."""


class NetworkTimeout(VendorError):
    """Vendor call did not complete within the configured timeout."""


class NetworkFailure(VendorError):
    """Vendor could not be reached."""
