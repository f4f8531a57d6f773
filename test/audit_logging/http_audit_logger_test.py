import json

import pytest
from botocore.exceptions import ClientError

from task_api.application import create_app
from task_api.audit_logging.http_audit_logger import HTTPAuditLogger, Options
from task_api.dao.store import MemoryTaskStore
from task_api.dao.user import MemoryUserStore


@pytest.fixture()
def s3_client(mocker):
    s3_client = mocker.MagicMock()
    s3_client.put_object.return_value = {"ResponseMetadata": {"HTTPStatusCode": 200}}
    mocker.patch("task_api.audit_logging.http_audit_logger.boto3.client", return_value=s3_client)
    return s3_client


@pytest.fixture()
def audit_logger(s3_client):
    return HTTPAuditLogger(Options(s3_bucket="audit", s3_directory="task-api/", s3_region="us-east-1"))


def _drain(audit_logger):
    records = []
    while not audit_logger.queue.empty():
        records.append(audit_logger.queue.get())
    return records


def test_options_are_validated(s3_client):
    with pytest.raises(ValueError):
        HTTPAuditLogger(Options(s3_bucket="", s3_directory="task-api", s3_region="us-east-1"))
    with pytest.raises(ValueError):
        HTTPAuditLogger(Options(s3_bucket="audit", s3_directory="task-api", s3_region="us-east-1",
                                s3_endpoint="not a url"))


def test_options_from_env(monkeypatch):
    monkeypatch.setenv(Options.AUDITLOG_S3_BUCKET, "bucket")
    monkeypatch.delenv(Options.AUDITLOG_S3_ENDPOINT, raising=False)

    opts = Options.from_env()

    assert opts.bucket == "bucket"
    assert opts.directory == "task-api"
    assert opts.endpoint is None


def test_routes_are_audited(options, audit_logger):
    application = create_app(options, task_store=MemoryTaskStore(), user_store=MemoryUserStore(),
                             audit_logger=audit_logger)
    client = application.test_client()

    response = client.post("/users", json={"name": "Ann", "username": "ann", "password": "secret123"},
                           headers={"Correlation-Id": "corr-1"})
    assert response.status_code == 201

    request_record, response_record = _drain(audit_logger)
    assert request_record.key.startswith("task-api/")
    assert "in/users/POST/request_" in request_record.key

    request_content = json.loads(request_record.content)
    assert request_content["body"]["password"] == "***"
    assert request_content["correlationId"] == "corr-1"

    response_content = json.loads(response_record.content)
    assert response_content["statusCode"] == 201
    assert response_content["requestBody"]["password"] == "***"
    assert response_content["userId"] == response_content["body"]["Result"]["user"]["id"]


def test_error_responses_are_audited(options, audit_logger):
    application = create_app(options, task_store=MemoryTaskStore(), user_store=MemoryUserStore(),
                             audit_logger=audit_logger)

    response = application.test_client().get("/tasks")
    assert response.status_code == 401

    records = _drain(audit_logger)
    assert json.loads(records[-1].content)["statusCode"] == 401


def test_s3_write(s3_client, audit_logger):
    record = HTTPAuditLogger.Record(key="task-api/key", content='{"a": 1}')

    audit_logger._do_s3_write(record)

    kwargs = s3_client.put_object.call_args.kwargs
    assert kwargs["Bucket"] == "audit"
    assert kwargs["Key"] == "task-api/key"
    assert kwargs["ContentLength"] == len('{"a": 1}')


def test_s3_write_failure_is_logged(s3_client, audit_logger, caplog):
    s3_client.put_object.side_effect = ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}},
                                                   "PutObject")

    audit_logger._do_s3_write(HTTPAuditLogger.Record(key="task-api/key", content="{}"))

    assert "Error writing audit log" in caplog.text


def test_thread_writes_queued_records(s3_client, audit_logger):
    audit_logger.start()
    audit_logger.queue.put(HTTPAuditLogger.Record(key="task-api/key", content="{}"))
    audit_logger.stop()

    s3_client.put_object.assert_called_once()
