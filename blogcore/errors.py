"""Typed failures raised by the content core"""


class ContentError(Exception):
    """Base class for every failure the content core raises."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ContentError):
    """Malformed or out-of-range input, detected before any store access."""

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = problems or [message]

    @classmethod
    def from_problems(cls, problems: list[str]) -> "ValidationError":
        return cls(", ".join(problems), problems)


class NotFoundError(ContentError):
    """Referenced row does not exist or is not visible to the caller."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class ConflictError(ContentError):
    """Slug collision or duplicate translation."""

    def __init__(self, message: str = "Resource conflict"):
        super().__init__(message)


class InternalError(ContentError):
    """Store failure that does not map onto any other category."""

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)
