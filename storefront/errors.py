from typing import Optional

from fastapi import HTTPException

# Services raise these directly; main.py renders them into the error envelope.


class BadRequest(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=400, detail=detail)

class Unauthorized(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})

class Forbidden(HTTPException):
    def __init__(self, detail: str = "Forbidden resource"):
        super().__init__(status_code=403, detail=detail)

class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)

class Conflict(HTTPException):
    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=409, detail=detail or "Conflict")
