import logging

from task_api.application import create_app, init_db
from task_api.audit_logging import HTTPAuditLogger
from task_api.audit_logging.formatter import configure_logging
from task_api.config import Options

options = Options.from_env()
configure_logging(options.log_level)
root_logger = logging.getLogger()

audit_logger = None
if options.audit_enabled:
    audit_logger = HTTPAuditLogger.from_env()
    audit_logger.start()

application = create_app(options, audit_logger=audit_logger)


if __name__ == "__main__":
    if options.task_store == Options.STORE_POSTGRES:
        init_db(options)
    root_logger.info("*** APPLICATION NAME %s (store: %s)", application.name, options.task_store)
    application.run(host="0.0.0.0", port=8000)
