from __future__ import annotations

import typing as t
from http import HTTPStatus

from flask import Response, jsonify, make_response

from task_api.exceptions import TaskApiError


def success_response(data: t.Union[dict, list, str]) -> Response:
    return response_with_status(data={"Result": data}, status=HTTPStatus.OK)


def created_response(data: t.Union[dict, list, str]) -> Response:
    return response_with_status(data={"Result": data}, status=HTTPStatus.CREATED)


def error_response(ex: TaskApiError) -> Response:
    return response_with_status(data={"Message": ex.message}, status=ex.status_code)


def response_with_status(data: t.Union[dict, list, str], status: int) -> Response:
    return make_response(jsonify(data), status)
