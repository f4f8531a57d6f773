import json
import logging
import os
import queue
import threading
import time
import typing as t
from datetime import datetime, timezone
from functools import wraps
from io import BytesIO

import boto3
from botocore.endpoint import is_valid_endpoint_url
from botocore.exceptions import BotoCoreError, ClientError
from flask import Request, Response, request

from task_api.audit_logging.context import Context

logger = logging.getLogger(__name__)


class Options:
    AUDITLOG_S3_DIRECTORY = "AUDITLOG_S3_DIRECTORY"
    AUDITLOG_S3_REGION = "AUDITLOG_S3_REGION"
    AUDITLOG_S3_BUCKET = "AUDITLOG_S3_BUCKET"
    AUDITLOG_S3_ENDPOINT = "AUDITLOG_S3_ENDPOINT"

    @staticmethod
    def from_env():
        s3_bucket = os.getenv(Options.AUDITLOG_S3_BUCKET, "task-api-audit-local")
        s3_directory = os.getenv(Options.AUDITLOG_S3_DIRECTORY, "task-api")
        s3_region = os.getenv(Options.AUDITLOG_S3_REGION, "us-east-1")
        s3_endpoint = os.getenv(Options.AUDITLOG_S3_ENDPOINT, None)
        return Options(s3_bucket=s3_bucket, s3_directory=s3_directory, s3_region=s3_region, s3_endpoint=s3_endpoint)

    def __init__(self, s3_bucket: str, s3_directory: str, s3_region: str,
                 s3_endpoint: str = None):
        self.bucket = s3_bucket
        self.directory = s3_directory.rstrip("/") if s3_directory else s3_directory
        self.region = s3_region
        self.endpoint = s3_endpoint


class HTTPAuditLogger(threading.Thread):
    """
    Writes JSON audit records of the task API's HTTP traffic to an S3 bucket.

    ``log_request`` and ``log_response`` are called from the request threads; they only
    marshal the record and queue it. The S3 upload happens on this thread, so a slow or
    failing bucket never blocks a request.
    """

    class Record:
        def __init__(self, key: str, content: str):
            self.key = key
            self.content = content

    @staticmethod
    def from_env():
        opts = Options.from_env()
        return HTTPAuditLogger(opts=opts)

    def __init__(self, opts: Options) -> None:
        super(HTTPAuditLogger, self).__init__(name="http-audit-logger", daemon=True)

        # validate fields
        if not opts.bucket:
            raise ValueError('s3_bucket not informed.')

        if not opts.directory:
            raise ValueError('s3_directory not informed.')

        if opts.endpoint:
            if not is_valid_endpoint_url(opts.endpoint):
                raise ValueError('s3_endpoint invalid.')

        if not opts.region:
            raise ValueError('s3_region not informed.')

        self.s3_bucket = opts.bucket
        self.s3_directory = opts.directory
        self.s3_endpoint = opts.endpoint
        self.s3_region = opts.region

        self.s3_client = boto3.client('s3', region_name=self.s3_region, endpoint_url=self.s3_endpoint)

        self.queue = queue.Queue()
        self.end_event = threading.Event()

    def stop(self):
        self.end_event.set()
        self.join()

    def run(self):
        # drain what is already queued before exiting
        while not self.end_event.is_set() or not self.queue.empty():
            try:
                record = self.queue.get(timeout=0.1)
            except queue.Empty:
                continue

            self._do_s3_write(record)

    def log_request(self, req: Request):
        audit_id = HTTPAuditLogger._make_audit_id(req, False)
        metadata = HTTPAuditLogger._get_request_metadata(req)
        self._queue_record(audit_id, metadata, Context.from_request(req))

    def log_response(self, req: Request, resp: Response, include_request_in_response: bool,
                     request_timestamp: t.Optional[str]):
        audit_id = HTTPAuditLogger._make_audit_id(req, True)
        metadata = HTTPAuditLogger._get_response_metadata(req, resp, include_request_in_response, request_timestamp)
        self._queue_record(audit_id, metadata, Context.from_request(req))

    def _queue_record(self, audit_id: str, data: dict, context: t.Optional[Context]):
        if context is not None:
            for key, value in context.get_audit_log_top_level_fields().items():
                data.setdefault(key, value)

        # identifier and timestamp are set last so context fields can't override them
        data["eventTimestamp"] = _utc_now_str()
        data["identifier"] = audit_id

        record = HTTPAuditLogger.Record(
            key=self._make_key(audit_id),
            content=json.dumps(data, default=str)
        )
        self.queue.put(record, block=False)

    def _do_s3_write(self, record: Record) -> None:
        """
        Save content to s3 bucket, should not be called in main thread
        """
        metadata = {}       # The metadata parameter can't be None or Boto3 raises an error
        try:
            s3_put_response = self.s3_client.put_object(
                Bucket=self.s3_bucket,
                Key=record.key,
                Body=record.content,
                ContentEncoding="binary/octet-stream",
                ContentType="application/json; charset=utf-8",
                ContentLength=len(record.content),
                ServerSideEncryption="AES256",
                Metadata=metadata
            )

            status_code = s3_put_response['ResponseMetadata']['HTTPStatusCode']
            if status_code != 200:
                logger.error(f"Unable to put audit log to s3, status {status_code}: {record.key}")
                return

            logger.info(f"Wrote audit log. s3://{self.s3_bucket}/{record.key}")

        except (BotoCoreError, ClientError) as err:
            logger.error(f"Error writing audit log. {str(err)}")

    def _make_key(self, audit_id: str) -> str:
        return f'{self.s3_directory}/{datetime.now(timezone.utc).strftime("%Y/%m/%d/%H/")}{audit_id}'

    @staticmethod
    def _get_request_metadata(req: Request) -> dict:
        metadata = {
            "host": req.host,
            "hostname": req.root_url,
            "method": req.method,
            "path": req.path,
            "protocol": req.environ.get('SERVER_PROTOCOL'),
            "query": req.query_string.decode("utf-8"),
            # header names only, Authorization values must never reach the audit bucket
            "headers": [name for name, _ in req.headers],
        }

        if req.content_length:
            metadata["body"] = HTTPAuditLogger._request_body(req)

        return metadata

    @staticmethod
    def _get_response_metadata(req: Request, response: Response, include_request_in_response: bool,
                               request_timestamp: t.Optional[str]) -> dict:
        metadata = {
            "requestHost": req.host,
            "requestHostname": req.root_url,
            "requestMethod": req.method,
            "requestPath": req.path,
            "requestProtocol": req.environ.get('SERVER_PROTOCOL'),
            "protocol": req.environ.get('SERVER_PROTOCOL'),
            "status": response.status,
            "statusCode": response.status_code,
            "headers": [name for name, _ in response.headers],
        }
        if response.content_length:
            metadata["body"] = HTTPAuditLogger._response_body(resp=response)

        if include_request_in_response:
            if req.content_length:
                metadata["requestBody"] = HTTPAuditLogger._request_body(req)
            if request_timestamp:
                metadata["requestTimestamp"] = request_timestamp

        return metadata

    @staticmethod
    def _make_audit_id(req: Request, is_response: bool) -> str:
        """
        The nanosecond timestamp keeps ids unique across requests to the same route.
        """
        audit_id = "in{0}{1}{2}{3}".format(req.path, "" if req.path.endswith("/") else "/", req.method,
                                           "/response" if is_response else "/request")
        audit_id += f'_{time.time_ns()}'
        return audit_id

    @staticmethod
    def _request_body(req: Request) -> t.Any:
        """
        Retrieve the request body without making it unavailable to the route.
        Passwords are masked.
        """
        body = req.get_data(cache=True)
        req.environ['wsgi.input'] = BytesIO(body)
        return _masked(_decode_body(body))

    @staticmethod
    def _response_body(resp: Response) -> t.Any:
        return _decode_body(resp.get_data())

    # Decorators for direct use of this Audit Logger class
    def log_inbound(self, log_request=True, log_response=True,
                    include_request_in_response=False):
        """
        Add audit logging to a route:
        .. code-block:: python
        @app.route("/tasks")
        @audit_logger.log_inbound()
        def tasks():
            ...

        :param log_request: Generate Request Audit Log message
        :param log_response: Generate Response Audit Log message
        :param include_request_in_response:  If True, adds the request body as top level field in response audit log
        """

        def _log_inbound(f):
            @wraps(f)
            def __log_inbound(*args, **kwargs):
                request_timestamp = None
                if include_request_in_response:
                    request_timestamp = _utc_now_str()
                if log_request:
                    self.log_request(req=request)
                result = f(*args, **kwargs)
                if log_response:
                    self.log_response(req=request, resp=result, include_request_in_response=include_request_in_response,
                                      request_timestamp=request_timestamp)
                return result

            return __log_inbound

        return _log_inbound


def _decode_body(body: bytes) -> t.Any:
    try:
        content = body.decode("utf-8")
    except UnicodeDecodeError:
        return "bodyReadError"

    # Try to convert to Python object, otherwise keep the text
    try:
        return json.loads(content)
    except ValueError:
        return content


def _masked(body: t.Any) -> t.Any:
    if isinstance(body, dict) and "password" in body:
        body = dict(body, password="***")
    return body


def _utc_now_str() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
