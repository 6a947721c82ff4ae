# realestate/core/response.py
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


def ok(message: str, data: Any = None) -> Dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def fail(message: str, status_code: int, errors: Optional[Dict[str, str]] = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)
