import abc
import threading
import typing as t

from task_api.models import User

from task_api.dao.dao import DAO


class UserStore(abc.ABC):
    @abc.abstractmethod
    def insert_user(self, user: User) -> int:
        pass

    @abc.abstractmethod
    def find_by_username(self, username: str) -> t.Optional[User]:
        pass


class MemoryUserStore(UserStore):
    def __init__(self):
        self.__users = {}
        self.__lock = threading.Lock()

    def insert_user(self, user: User) -> int:
        with self.__lock:
            if user.username in self.__users:
                return 0
            self.__users[user.username] = user
            return 1

    def find_by_username(self, username: str) -> t.Optional[User]:
        with self.__lock:
            return self.__users.get(username)


class UserDAO(DAO, UserStore):
    CREATE_SCHEMA = """
        CREATE TABLE IF NOT EXISTS public.user (
            id UUID PRIMARY KEY,
            username TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            password_hash TEXT NOT NULL
        );
    """

    def __init__(self, db_params: dict):
        super().__init__(db_params)

    def create_schema(self) -> None:
        self.execute(UserDAO.CREATE_SCHEMA, ())

    def insert_user(self, user: User) -> int:
        return self.execute("INSERT INTO public.user(id, username, name, password_hash) VALUES(%s,%s,%s,%s) "
                            "ON CONFLICT (username) DO NOTHING",
                            (user.id, user.username, user.name, user.password_hash))

    def find_by_username(self, username: str) -> t.Optional[User]:
        row = self.fetch_one("SELECT id, name, username, password_hash FROM public.user WHERE username = %s",
                             (username,))
        if row is None:
            return None
        return User(str(row[0]), row[1], row[2], row[3])
