"""
exceptions.py — Domain errors raised by services

Services raise these instead of HTTPException so they stay usable outside
a request. main.py registers one handler that renders any CRMError with
the shared error envelope and its status_code.

Called by: services/*, routers/*
Depends on: nothing
"""


class CRMError(Exception):
    status_code = 400

    def __init__(self, message: str, details: list | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(CRMError):
    status_code = 404


class ConflictError(CRMError):
    status_code = 409

    def __init__(self, message: str, details: list | None = None, **extra):
        super().__init__(message, details)
        # Extra keys (e.g. customerId) are merged into the response body
        self.extra = extra


class UploadRejected(CRMError):
    """An uploaded file failed type, size or count checks."""

    status_code = 400
