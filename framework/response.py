from typing import Any, Optional
from pydantic import BaseModel

class ResponseModel(BaseModel):
    code: int = 200
    message: str = "success"
    data: Optional[Any] = None

    @staticmethod
    def success(data: Any = None):
        return {"code": 200, "message": "success", "data": data}

    @staticmethod
    def fail(code: int = 400, message: str = "error", data: Any = None):
        return {"code": code, "message": message, "data": data}

    @staticmethod
    def paged(result, items: Optional[list] = None):
        """Wrap a PagedResult; pass items to override serialization of result.items."""
        return ResponseModel.success(data={
            "items": items if items is not None else list(result.items),
            "page_number": result.page_number,
            "page_size": result.page_size,
            "total_count": result.total_count,
            "total_pages": result.total_pages,
        })
