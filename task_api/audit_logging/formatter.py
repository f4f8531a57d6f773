import json
import logging

from task_api.audit_logging.context import Context

_DEFAULT_LOG_RECORD_KEYS = set(dir(logging.LogRecord('', 0, '', 0, '', None, None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """
    Formats every record as one JSON line. ``extra`` fields passed to the logger and
    the fields of the current request Context are added at the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        res = {
            "time": self.formatTime(record, self.datefmt),
            "name": record.name,
            "filename": record.filename,
            "lineno": record.lineno,
            "levelname": record.levelname,
            "message": record.message,
        }

        for key, value in record.__dict__.items():
            if key in _DEFAULT_LOG_RECORD_KEYS:
                continue
            res[key] = value

        context = Context.from_request()
        if context is not None:
            res.update(context.get_logger_top_level_fields())

        if record.exc_info:
            res["exception"] = self.formatException(record.exc_info)

        return json.dumps(res, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level.upper())
