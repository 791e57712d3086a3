"""Exception hierarchy for DebtChat.

Exception Hierarchy:
    - DebtChatError (base)
        - TreasuryError: failures talking to the Treasury Fiscal Data API
            - TransportError: non-success HTTP status or connection failure
            - ProtocolError: success status but an absent or unreadable body
        - BackendError: chat backend (LLM provider) failures
            - TokenLimitError: Token/context length exceeded
            - RateLimitError: Rate limit hit
            - APIConnectionError: Network/connection issues
            - InvalidRequestError: Bad request parameters
            - AuthenticationError: Authentication failed

Treasury errors are contained by the tool layer and reach the model as data.
Backend errors propagate to the caller.
"""


class DebtChatError(Exception):
    """Base exception for DebtChat errors."""

    pass


# ============================================================================
# Treasury API errors
# ============================================================================


class TreasuryError(DebtChatError):
    """Base exception for Treasury API errors."""

    pass


class TransportError(TreasuryError):
    """Raised when the Treasury API cannot be reached or answers with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        """Initialize TransportError.

        Args:
            message: Human-readable description of the failure
            status_code: HTTP status code when the server answered, None for connection failures
        """
        self.status_code = status_code
        super().__init__(message)


class ProtocolError(TreasuryError):
    """Raised when the Treasury API answers successfully but the body is empty or unparseable."""

    pass


# ============================================================================
# Backend errors
# ============================================================================


class BackendError(DebtChatError):
    """Base exception for chat backend errors."""

    pass


class TokenLimitError(BackendError):
    """Raised when token limit is exceeded."""

    pass


class RateLimitError(BackendError):
    """Raised when rate limit is hit."""

    pass


class APIConnectionError(BackendError):
    """Raised when there's a connection issue with the API."""

    pass


class InvalidRequestError(BackendError):
    """Raised when the request is invalid (bad params, etc)."""

    pass


class AuthenticationError(BackendError):
    """Raised when authentication fails."""

    pass


def classify_backend_error(error: Exception) -> BackendError:
    """Classify an error from the LLM provider into our backend exception types.

    This function examines the error message to determine what kind
    of error occurred, making it easier to handle specific cases.
    """
    if isinstance(error, BackendError):
        return error

    error_msg = str(error).lower()
    error_type = type(error).__name__

    # Token/context length errors
    if any(
        keyword in error_msg
        for keyword in [
            "context length",
            "token limit",
            "maximum context",
            "too many tokens",
            "context_length_exceeded",
            "max_tokens",
        ]
    ):
        return TokenLimitError(f"Token limit exceeded: {error}")

    # Rate limiting errors
    if any(
        keyword in error_msg
        for keyword in [
            "rate limit",
            "rate_limit",
            "too many requests",
            "quota exceeded",
            "resource exhausted",
            "overloaded",
            "429",
        ]
    ):
        return RateLimitError(f"Rate limit hit: {error}")

    # Connection/network errors
    if any(
        keyword in error_msg
        for keyword in [
            "connection",
            "timeout",
            "network",
            "unreachable",
            "503",
            "502",
            "504",
        ]
    ):
        return APIConnectionError(f"API connection error: {error}")

    # Authentication errors
    if any(
        keyword in error_msg
        for keyword in [
            "unauthorized",
            "invalid api key",
            "invalid x-api-key",
            "authentication",
            "401",
            "403",
        ]
    ):
        return AuthenticationError(f"Authentication failed: {error}")

    # Invalid request errors
    if any(
        keyword in error_msg
        for keyword in [
            "invalid",
            "bad request",
            "400",
            "validation",
        ]
    ):
        return InvalidRequestError(f"Invalid request: {error}")

    return BackendError(f"Backend error ({error_type}): {error}")


def should_retry_error(error: Exception) -> bool:
    """Determine if an error should trigger a retry.

    Retryable errors:
    - RateLimitError (wait and retry)
    - APIConnectionError (transient network issues)

    Non-retryable errors:
    - TokenLimitError (need to reduce input)
    - AuthenticationError (bad credentials)
    - InvalidRequestError (bad parameters)
    """
    return isinstance(error, (RateLimitError, APIConnectionError))
