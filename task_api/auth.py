import logging
import typing as t

from flask import Request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

_SALT = "task-api-auth"
_BEARER_PREFIX = "Bearer "


def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key, salt=_SALT)


def issue_token(secret_key: str, user_id: str) -> str:
    return _serializer(secret_key).dumps({"id": str(user_id)})


def verify_token(secret_key: str, token: str, max_age: int) -> t.Optional[str]:
    """Return the user id signed into ``token``, or None when it is invalid or expired."""
    try:
        data = _serializer(secret_key).loads(token, max_age=max_age)
    except SignatureExpired:
        logger.info("Rejected expired token")
        return None
    except BadSignature:
        logger.info("Rejected token with bad signature")
        return None

    if not isinstance(data, dict) or not data.get("id"):
        return None
    return str(data["id"])


def acting_user_id(req: Request, secret_key: str, max_age: int) -> t.Optional[str]:
    header = req.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None
    return verify_token(secret_key, header[len(_BEARER_PREFIX):].strip(), max_age)
