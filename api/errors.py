"""
Forum error taxonomy. Every error maps to an HTTP status and a category-level
message that is safe to show to a user.
"""


class ForumError(Exception):
    status = 500
    default_message = "Something went wrong"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> tuple[int, dict]:
        return self.status, {"error": self.message}


class ValidationError(ForumError):
    status = 400
    default_message = "Invalid request"


class NotFound(ForumError):
    status = 404
    default_message = "Thread not found"


class RateLimited(ForumError):
    status = 429
    default_message = "Too many requests. Try again shortly."


class StoreFailure(ForumError):
    """The store failed. The original exception is chained, never shown."""

    status = 500
    default_message = "Something went wrong"


class ServiceUnavailable(ForumError):
    status = 503
    default_message = "Server not configured"
