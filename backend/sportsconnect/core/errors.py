"""Error taxonomy shared by the message store, the API layer and the client."""


class MessagingError(Exception):
    """Base class. `detail` is the user-visible text."""

    status_code = 500
    detail = "Server error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ValidationError(MessagingError):
    status_code = 400
    detail = "Invalid message"


class AuthorizationError(MessagingError):
    status_code = 401
    detail = "User not authorized"


class NotFoundError(MessagingError):
    status_code = 404
    detail = "Message not found"


class ServerError(MessagingError):
    """Store or transport failure. Always safe to retry."""

    status_code = 500
    detail = "Server error"


class SendFailedError(ServerError):
    """An optimistic send did not reach the server. The failed record stays in the cache."""

    def __init__(self, temp_id: str, content: str, cause: MessagingError | None = None):
        self.temp_id = temp_id
        self.content = content
        self.cause = cause
        super().__init__(cause.detail if cause else "Failed to send message. Please try again.")

    @property
    def retryable(self) -> bool:
        return True
