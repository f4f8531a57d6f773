import logging
import typing as t

from task_api.exceptions import UnauthorizedError
from task_api.models import Task

logger = logging.getLogger(__name__)


def require_identity(acting_user_id: t.Optional[str]) -> str:
    if acting_user_id is None or not str(acting_user_id).strip():
        raise UnauthorizedError("User not found")
    return str(acting_user_id)


def authorize(acting_user_id: t.Optional[str], task: Task) -> None:
    """
    Raise UnauthorizedError unless ``acting_user_id`` owns ``task``.
    Ownership is a recorded value, so ids are compared as strings.
    """
    acting_user_id = require_identity(acting_user_id)

    if acting_user_id != str(task.owner):
        logger.info(f"User {acting_user_id} denied access to task {task.id}")
        raise UnauthorizedError("User not authorized")
