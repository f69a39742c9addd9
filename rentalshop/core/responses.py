import hashlib
import json
from decimal import Decimal
from datetime import datetime, date
from typing import Any, Optional

from fastapi import Request, Response, status


def _default(value: Any):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def dumps(payload: Any) -> str:
    return json.dumps(payload, default=_default, separators=(",", ":"))


def jsonable(payload: Any) -> Any:
    """Payload with Decimals and datetimes already converted the way responses render them"""
    return json.loads(dumps(payload))


class ResponseBuilder:
    """Builds the ``{success, data|error, code?, message?}`` envelope"""

    @staticmethod
    def success(data: Any, code: Optional[str] = None, message: Optional[str] = None) -> dict:
        body = {"success": True, "data": data}
        if code:
            body["code"] = code
        if message:
            body["message"] = message
        return body


def etag_response(request: Request, payload: Any, max_age: int = 60) -> Response:
    """JSON response carrying an MD5 ETag; 304 when the client already has it"""
    body = dumps(payload)
    etag = hashlib.md5(body.encode()).hexdigest()
    headers = {"ETag": etag, "Cache-Control": f"private, max-age={max_age}"}

    if request.headers.get("if-none-match") == etag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)

    return Response(content=body, media_type="application/json", headers=headers)
