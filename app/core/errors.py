class WorkflowError(Exception):
    """Base class for rejected workflow and permission requests."""

    code = "WORKFLOW_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Forbidden(WorkflowError):
    """The actor's role does not allow the requested action."""

    code = "FORBIDDEN"
    status_code = 403


class InvalidRequest(WorkflowError):
    """A role or status value is missing or malformed."""

    code = "INVALID_REQUEST"
    status_code = 400
