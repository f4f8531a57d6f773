from __future__ import annotations

import json
import logging
import typing as t
import uuid

from flask import Request, Response, request

logger = logging.getLogger(__name__)


class RequestContext:
    """
    Read access to the per-request Context: correlation id and the acting user.
    """

    def __init__(self) -> None:
        self._internal = Context.from_request()
        if self._internal is None:
            raise Exception("RequestContext called before request was processed by application handlers.")

    @property
    def correlation_id(self) -> str:
        return self._internal.correlation_id

    @property
    def user_id(self) -> t.Optional[str]:
        return self._internal.user_id


class RouteContext(RequestContext):
    """
    Adds fields to the log records and audit log of the single route it is used in.
    """

    def set_user_id(self, user_id: t.Optional[str]) -> None:
        self._internal.user_id = user_id

    def add_log_field(self, key: str, value: t.Union[str, dict]) -> None:
        """
        Adds a top level field to every log record of this request and to the audit log.
        """
        self._internal.add_log_field(key=key, value=value)

    def add_audit_log_response_field(self, key: str, value: t.Union[str, dict]) -> None:
        """
        Adds a field ONLY to the audit log, for large payloads we don't want in the application log.
        """
        self._internal.add_audit_log_response_field(key=key, value=value)


class Context:
    """
    Internal per-request state, stored as an attribute of the Flask request.
    RequestContext and RouteContext are the accessors used by route code.
    """
    # HTTP Header Keys
    __CORRELATION_ID_KEY = "Correlation-Id"

    # Log top level key names
    _CORRELATION_ID_LOG_KEY = "correlationId"
    _USER_ID_LOG_KEY = "userId"

    __REQUEST_ATTRIBUTE_NAME = "task_api_context"

    @staticmethod
    def from_request(req: t.Optional[Request] = None) -> t.Optional[Context]:
        """
        Get the Context stored on the Flask request, or None outside of request processing.
        """
        try:
            if req is None:
                req = request
            return getattr(req, Context.__REQUEST_ATTRIBUTE_NAME, None)
        except RuntimeError as err:
            if 'Working outside of request context' not in str(err):
                raise
        return None

    def __init__(self, req: Request) -> None:
        self.req = None
        self.user_id = None
        self._logged_fields = {}
        self._audit_log_only_fields = {}

        self.correlation_id = Context._get_header_value(req, Context.__CORRELATION_ID_KEY)
        if self.correlation_id is None:
            self.correlation_id = uuid.uuid4().hex
            logger.debug(f'No {Context.__CORRELATION_ID_KEY} header found, generated {self.correlation_id}.')

    def set_in_request(self, req: Request) -> Context:
        setattr(req, Context.__REQUEST_ATTRIBUTE_NAME, self)
        self.req = req
        return self

    def add_log_field(self, key: str, value: t.Union[str, dict]) -> None:
        # If this is a list/dict try to convert it to json string
        if isinstance(value, (list, tuple, dict)):
            value = json.dumps(value)

        self._logged_fields[key] = value

    def add_audit_log_response_field(self, key: str, value: t.Union[str, dict]) -> None:
        # Caller should ensure that the value can be JSON encoded
        self._audit_log_only_fields[key] = value

    def get_logger_top_level_fields(self) -> t.Dict[str, t.Any]:
        extra = {Context._CORRELATION_ID_LOG_KEY: self.correlation_id}

        if self.user_id:
            extra[Context._USER_ID_LOG_KEY] = self.user_id

        if self._logged_fields:
            extra.update(self._logged_fields)

        return extra

    def get_audit_log_top_level_fields(self) -> t.Dict[str, t.Any]:
        fields = self.get_logger_top_level_fields()
        fields.update(self._audit_log_only_fields)
        return fields

    def add_response_headers(self, resp: Response) -> None:
        resp.headers[Context.__CORRELATION_ID_KEY] = self.correlation_id

    @staticmethod
    def _get_header_value(req: Request, key: str, default: t.Optional[str] = None) -> t.Optional[str]:
        val = req.headers.get(key, default)
        if val is None or not val.strip():
            return None
        return val.strip()
