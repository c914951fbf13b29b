from fastapi import status


class WorkflowError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to process approval"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(WorkflowError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request payload"


class AuthorizationError(WorkflowError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized to act on this request"


class NotFoundError(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Request not found"


class NoApplicableRuleError(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "No transition applies to this action"


class ConcurrentUpdateError(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request was modified concurrently; reload and retry"
