# auth_api/app/core/exceptions.py


class AuthError(Exception):
    """Base for the recoverable authentication failures reported to callers."""
    status_code = 400
    message = "Authentication error"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class ConflictError(AuthError):
    """A user with the requested login already exists."""
    status_code = 409
    message = "User with this login has been already registered."


class InvalidCredentialsError(AuthError):
    """Unknown login or wrong password (the caller cannot tell which)."""
    status_code = 400
    message = "Invalid credentials."


class InvalidRefreshTokenError(AuthError):
    """Refresh token unknown, bound to another fingerprint, expired or already used."""
    status_code = 401
    message = "Invalid refresh token."


class AuthenticationFailure(AuthError):
    """Access token missing, malformed, tampered with or expired."""
    status_code = 401
    message = "Could not validate credentials"


class DuplicateTokenError(Exception):
    """A freshly generated refresh token collided with a stored one."""


class SessionConflictError(Exception):
    """Another request created a session for the same user and fingerprint first."""


class InfrastructureError(Exception):
    """Storage or signing backend failure. Not a domain error."""
    status_code = 503

    def __init__(self, message="Authentication backend unavailable"):
        self.message = message
        super().__init__(self.message)
