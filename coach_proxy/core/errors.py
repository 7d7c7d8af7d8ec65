from dataclasses import dataclass
from typing import Any

from fastapi.responses import JSONResponse


@dataclass
class ErrorBody:
    message: str

    def as_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class AppError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


def app_error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorBody(message=message).as_dict())
