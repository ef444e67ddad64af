# models/common.py
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: {"success": true, "data": ...}.

    Errors never go through this model; the exception handlers in main.py
    render {"success": false, "error": "..."} directly.
    """

    success: bool = True
    data: T


class MessageOut(BaseModel):
    message: str
