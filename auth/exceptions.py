"""Auth exceptions."""


class AuthException(Exception):
    """Base auth exception with HTTP status."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RefreshError(AuthException):
    """A credential rotation could not produce a fresh token."""

    kind = "refresh_error"

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, status_code=status_code)


class ConfigurationError(RefreshError):
    """Issuer or client credentials are missing."""

    kind = "configuration_error"


class MissingRefreshToken(RefreshError):
    kind = "missing_refresh_token"


class UpstreamRejected(RefreshError):
    """The token endpoint answered, but not with a usable token."""

    kind = "upstream_rejected"


class NetworkFailure(RefreshError):
    """Transport-level failure (including timeout) calling the token endpoint."""

    kind = "network_failure"
