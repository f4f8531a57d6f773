import logging
import typing as t
from http import HTTPStatus

from flask import Flask, g, request

from task_api.audit_logging.context import Context, RouteContext
from task_api.audit_logging.http_audit_logger import HTTPAuditLogger
from task_api.auth import acting_user_id, issue_token
from task_api.config import Options
from task_api.dao.store import MemoryTaskStore, TaskStore
from task_api.dao.task import TaskDAO
from task_api.dao.user import MemoryUserStore, UserDAO, UserStore
from task_api.exceptions import TaskApiError, UnauthorizedError
from task_api.service.task import TaskService
from task_api.service.user import UserService
from task_api.utils import created_response, error_response, response_with_status, success_response

logger = logging.getLogger(__name__)


def init_db(options: Options) -> None:
    """Create the tables used by the postgres stores."""
    user_dao = UserDAO(options.db_params())
    try:
        user_dao.create_schema()
    finally:
        user_dao.close()

    task_dao = TaskDAO(options.db_params())
    try:
        task_dao.create_schema()
    finally:
        task_dao.close()


def create_app(options: t.Optional[Options] = None, task_store: t.Optional[TaskStore] = None,
               user_store: t.Optional[UserStore] = None,
               audit_logger: t.Optional[HTTPAuditLogger] = None) -> Flask:
    options = options or Options.from_env()

    application = Flask(__name__)
    application.config["SECRET_KEY"] = options.secret_key

    # injected or in-memory stores live as long as the app, postgres DAOs one per request
    if task_store is None and options.task_store == Options.STORE_MEMORY:
        task_store = MemoryTaskStore()
    if user_store is None and options.task_store == Options.STORE_MEMORY:
        user_store = MemoryUserStore()

    def get_task_service() -> TaskService:
        if "task_store" not in g:
            g.task_store = task_store if task_store is not None else TaskDAO(options.db_params())
        return TaskService(g.task_store)

    def get_user_service() -> UserService:
        if "user_store" not in g:
            g.user_store = user_store if user_store is not None else UserDAO(options.db_params())
        return UserService(g.user_store)

    def json_body() -> dict:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}

    def audited(f):
        if audit_logger is None:
            return f
        return audit_logger.log_inbound(include_request_in_response=True)(f)

    def authenticated_user() -> str:
        user_id = acting_user_id(request, options.secret_key, options.token_max_age)
        if user_id is None:
            raise UnauthorizedError("Not authorized, no token")
        RouteContext().set_user_id(user_id)
        return user_id

    def handle_error(ex: Exception):
        if isinstance(ex, TaskApiError):
            logger.info(f"{request.method} {request.path} - {ex.status_code} {ex.message}")
            return error_response(ex)
        logger.exception(f"{request.method} {request.path} - unexpected error")
        return response_with_status({"Message": str(ex)}, HTTPStatus.INTERNAL_SERVER_ERROR)

    @application.before_request
    def open_context():
        Context(request).set_in_request(request)

    @application.after_request
    def close_context(response):
        context = Context.from_request(request)
        if context is not None:
            context.add_response_headers(response)
        return response

    @application.teardown_appcontext
    def close_stores(exception=None):
        for name in ("task_store", "user_store"):
            store = g.pop(name, None)
            if isinstance(store, (TaskDAO, UserDAO)):
                store.close()

    @application.route("/", methods=['GET'])
    def index():
        return "API is running..."

    @application.route("/users", methods=['POST'])
    @audited
    def register():
        logger.debug(f"{request.path} - {request.method}")
        try:
            user = get_user_service().insert_user(json_body())
            RouteContext().set_user_id(str(user.id))
            return created_response({"user": user.to_dict(), "token": issue_token(options.secret_key, user.id)})
        except Exception as ex:
            return handle_error(ex)

    @application.route("/auth/login", methods=['POST'])
    @audited
    def login():
        logger.debug(f"{request.path} - {request.method}")
        try:
            body = json_body()
            user = get_user_service().authenticate(body.get("username"), body.get("password"))
            RouteContext().set_user_id(str(user.id))
            return success_response({"user": user.to_dict(), "token": issue_token(options.secret_key, user.id)})
        except Exception as ex:
            return handle_error(ex)

    @application.route("/tasks", methods=['GET', 'POST'])
    @audited
    def tasks():
        logger.debug(f"{request.path} - {request.method}")
        try:
            user_id = authenticated_user()
            task_service = get_task_service()
            if request.method == "POST":
                body = json_body()
                task = task_service.create(user_id, body.get("title"))
                RouteContext().add_log_field("taskId", str(task.id))
                return created_response(task.to_dict())

            return success_response([task.to_dict() for task in task_service.list(user_id)])
        except Exception as ex:
            return handle_error(ex)

    @application.route("/tasks/<task_id>", methods=['PUT', 'PATCH', 'DELETE'])
    @audited
    def task(task_id: str):
        logger.debug(f"{request.path} - {request.method}")
        try:
            user_id = authenticated_user()
            RouteContext().add_log_field("taskId", task_id)
            task_service = get_task_service()
            if request.method == "DELETE":
                return success_response({"id": task_service.delete(user_id, task_id)})

            return success_response(task_service.update(user_id, task_id, json_body()).to_dict())
        except Exception as ex:
            return handle_error(ex)

    return application
