from __future__ import annotations

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError

# Failures of the data collaborators (PostgREST errors, transport errors,
# rows that do not validate). Anything else is a bug and propagates as is.
UPSTREAM_ERRORS: tuple[type[Exception], ...] = (APIError, httpx.HTTPError, ValidationError)


class PulseError(Exception):
    code: str = "pulse_error"
    status: int = 400

    def __init__(self, message: str = "", *, code: str | None = None, status: int | None = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = code
        if status:
            self.status = status


class NotFound(PulseError):
    code = "not_found"
    status = 404


class RecommendationsUnavailable(PulseError):
    """An upstream fetch failed; a partial profile would rank misleadingly."""

    code = "recommendations_unavailable"
    status = 503
