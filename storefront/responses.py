from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _encode(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return jsonable_encoder(value)


def success(message: str, status_code: int = 200, data: Any = None, meta: Any = None) -> JSONResponse:
    body = {
        "success": True,
        "message": message,
        "statusCode": status_code,
        "timestamp": _timestamp(),
    }
    if data is not None:
        body["data"] = _encode(data)
    if meta is not None:
        body["meta"] = _encode(meta)
    return JSONResponse(status_code=status_code, content=body)


def error(message: str, status_code: int = 500, detail: Optional[Any] = None,
          headers: Optional[dict] = None) -> JSONResponse:
    body = {
        "success": False,
        "message": message,
        "statusCode": status_code,
        "timestamp": _timestamp(),
    }
    if detail is not None:
        body["error"] = _encode(detail)
    return JSONResponse(status_code=status_code, content=body, headers=headers)
