import math
from typing import Any, Optional, Sequence

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Single source of truth for ALL API responses.
    Automatically sets status = "success" if < 400 else "error"
    """
    status_str = "success" if status_code < 400 else "error"
    data = jsonable_encoder(data) if data is not None else {}

    return JSONResponse(
        status_code=status_code,
        content={
            "status_code": status_code,
            "status": status_str,
            "message": message,
            "data": data,
        },
    )


def paginated_response(
    *,
    items: Sequence[Any],
    total_count: int,
    page: int,
    page_size: int,
    message: str = "Operation successful",
) -> JSONResponse:
    """Wrap one page of results in the standard envelope with paging metadata."""
    total_pages = math.ceil(total_count / page_size) if page_size > 0 else 0
    return api_response(
        message=message,
        data={
            "items": list(items),
            "total_count": total_count,
            "page_number": page,
            "page_size": page_size,
            "total_pages": total_pages,
            "has_next_page": page < total_pages,
            "has_previous_page": page > 1,
        },
    )
