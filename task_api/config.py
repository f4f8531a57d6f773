import logging
import os

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Options:
    DB_HOST = "DB_HOST"
    DB_PORT = "DB_PORT"
    DB_USER = "DB_USER"
    DB_PASSWORD = "DB_PASSWORD"
    DB_DATABASE = "DB_DATABASE"
    TASK_STORE = "TASK_STORE"
    SECRET_KEY = "SECRET_KEY"
    TOKEN_MAX_AGE = "TOKEN_MAX_AGE"
    LOG_LEVEL = "LOG_LEVEL"
    AUDITLOG_ENABLED = "AUDITLOG_ENABLED"

    STORE_POSTGRES = "postgres"
    STORE_MEMORY = "memory"

    @staticmethod
    def from_env():
        secret_key = os.getenv(Options.SECRET_KEY)
        if not secret_key:
            logger.warning(f"{Options.SECRET_KEY} not set, using an insecure development key.")
            secret_key = "dev-secret-key"

        return Options(db_host=os.getenv(Options.DB_HOST, "db"),
                       db_port=os.getenv(Options.DB_PORT, "5432"),
                       db_user=os.getenv(Options.DB_USER, "postgres"),
                       db_password=os.getenv(Options.DB_PASSWORD, "example"),
                       db_database=os.getenv(Options.DB_DATABASE, "todo"),
                       task_store=os.getenv(Options.TASK_STORE, Options.STORE_POSTGRES),
                       secret_key=secret_key,
                       token_max_age=int(os.getenv(Options.TOKEN_MAX_AGE, str(30 * 24 * 3600))),
                       log_level=os.getenv(Options.LOG_LEVEL, "INFO"),
                       audit_enabled=os.getenv(Options.AUDITLOG_ENABLED, "false").lower() in _TRUE_VALUES)

    def __init__(self, db_host: str = "db", db_port: str = "5432", db_user: str = "postgres",
                 db_password: str = "example", db_database: str = "todo", task_store: str = STORE_POSTGRES,
                 secret_key: str = "dev-secret-key", token_max_age: int = 30 * 24 * 3600,
                 log_level: str = "INFO", audit_enabled: bool = False):
        if task_store not in (Options.STORE_POSTGRES, Options.STORE_MEMORY):
            raise ValueError(f"Unknown {Options.TASK_STORE} '{task_store}'.")

        self.db_host = db_host
        self.db_port = db_port
        self.db_user = db_user
        self.db_password = db_password
        self.db_database = db_database
        self.task_store = task_store
        self.secret_key = secret_key
        self.token_max_age = token_max_age
        self.log_level = log_level
        self.audit_enabled = audit_enabled

    def db_params(self) -> dict:
        return {"user": self.db_user,
                "password": self.db_password,
                "host": self.db_host,
                "port": self.db_port,
                "database": self.db_database}
