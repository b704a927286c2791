from fastapi import HTTPException

from enrollment_api.domain.exceptions import EnrollmentError


def http_error(exc: EnrollmentError) -> HTTPException:
    """Translate a workflow error into the ``{"detail": {"code", "message"}}`` response."""

    return HTTPException(status_code=exc.http_status, detail=exc.as_detail())
