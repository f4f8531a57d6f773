from http import HTTPStatus


class TaskApiError(Exception):
    """Base class for errors reported back to the caller of a task operation."""
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TaskApiError):
    """Malformed input: empty title, unknown status value, missing field."""
    status_code = HTTPStatus.BAD_REQUEST


class UnauthorizedError(TaskApiError):
    """The acting identity is absent or does not own the task."""
    status_code = HTTPStatus.UNAUTHORIZED


class NotFoundError(TaskApiError):
    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, message: str = "Task not found") -> None:
        super().__init__(message)


def error_for_status(status_code: int, message: str) -> TaskApiError:
    """Rebuild the exception matching an HTTP error status."""
    for error_class in (ValidationError, UnauthorizedError, NotFoundError):
        if error_class.status_code == status_code:
            return error_class(message)
    return TaskApiError(message)
