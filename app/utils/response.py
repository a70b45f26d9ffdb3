from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from typing import Any, Optional, Dict


def success(
    data: Optional[Any] = None,
    message: str = "Success",
    code: int = 200,
):
    response = {
        "code": code,
        "message": message,
        "data": data,
    }

    # Ensure dataclasses, datetimes, etc. are JSON-serializable.
    return jsonable_encoder(response)


def error(
    message: str = "Error",
    status_code: int = 400,
    data: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
):
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {
                "code": status_code,
                "message": message,
                "data": data,
            }
        ),
        headers=headers,
    )
