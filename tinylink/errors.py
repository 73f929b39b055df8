from typing import Optional


class LinkError(Exception):
    """Base class for failures the API reports to the caller.

    ``status_code`` is the HTTP status the router answers with and
    ``message`` the text placed in the response ``detail``.
    """

    status_code = 500
    message = "Server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidTarget(LinkError):
    status_code = 400
    message = "Invalid target_url"


class InvalidCode(LinkError):
    status_code = 400
    message = (
        "Code must be 6-30 characters "
        "(letters, numbers, space, @ _ + = - . $ % & ! allowed; HTML tags not allowed)"
    )


class CodeConflict(LinkError):
    status_code = 409
    message = "Code already exists"


class NotFound(LinkError):
    status_code = 404
    message = "Link not found"


class GenerationExhausted(LinkError):
    message = "Could not generate unique code"


class StoreUnavailable(LinkError):
    pass


class DuplicateCode(Exception):
    """Raised by the store when an insert hits the unique index on ``code``."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"code {code!r} already exists")
