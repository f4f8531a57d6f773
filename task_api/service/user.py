import logging
import uuid

from werkzeug.security import check_password_hash, generate_password_hash

from task_api.dao.user import UserStore
from task_api.exceptions import UnauthorizedError, ValidationError
from task_api.models import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class UserService:
    def __init__(self, dao: UserStore):
        self.__dao = dao

    def insert_user(self, json_user: dict) -> User:
        if not isinstance(json_user, dict):
            json_user = {}
        for field in ("name", "username", "password"):
            value = json_user.get(field)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"Please add a {field}")

        if len(json_user["password"]) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        user = User(id=uuid.uuid4(),
                    name=json_user["name"].strip(),
                    username=json_user["username"].strip(),
                    password_hash=generate_password_hash(json_user["password"]))

        row_count = self.__dao.insert_user(user)

        if row_count == 0:
            raise ValidationError("User already exists")
        if row_count != 1:
            raise Exception("Error inserting user")

        logger.info(f"User {user.id} registered")
        return user

    def authenticate(self, username: str, password: str) -> User:
        user = self.__dao.find_by_username(username) if username else None
        if user is None or not password or not check_password_hash(user.password_hash, password):
            raise UnauthorizedError("Invalid credentials")
        return user
