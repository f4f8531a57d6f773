from task_api.audit_logging.context import RequestContext, RouteContext
from task_api.audit_logging.http_audit_logger import HTTPAuditLogger

__all__ = ["HTTPAuditLogger", "RequestContext", "RouteContext"]
