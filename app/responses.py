"""Uniform JSON response envelope."""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ApiResponse(BaseModel):
    """Body of every JSON response."""

    success: bool
    message: str
    data: dict[str, Any] | None = None


def success(data: BaseModel | dict[str, Any] | None = None, message: str = "", status_code: int = 200) -> JSONResponse:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    body = ApiResponse(success=True, message=message, data=data)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body, exclude_none=True))


def error(message: str, status_code: int = 400, **extra: Any) -> JSONResponse:
    content = {"success": False, "message": message, **extra}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))
