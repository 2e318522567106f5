"""
Error taxonomy shared by services, controllers and routers.

ServiceError subclasses are client-facing: the API layer renders them as
``{"error": {"code": ..., "message": ...}}`` with their ``status_code``.
Upstream errors (vector index, summary generation) are raised by adapters and
services; synchronous entry points wrap them into InternalError, event
reactions turn them into outcome values.
"""


class ServiceError(Exception):
    code: str = "internal"
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class InvalidArgumentError(ServiceError):
    code = "invalid-argument"
    status_code = 400


class UnauthenticatedError(ServiceError):
    code = "unauthenticated"
    status_code = 401


class NotFoundError(ServiceError):
    code = "not-found"
    status_code = 404


class ReindexInProgressError(ServiceError):
    code = "aborted"
    status_code = 409


class InternalError(ServiceError):
    code = "internal"
    status_code = 500


class VectorIndexError(Exception):
    """A vector database call failed or returned an error payload."""


class SummaryGenerationError(Exception):
    """The chat model call failed or produced no usable summary."""
