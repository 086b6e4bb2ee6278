"""Shared schemas"""

import math

from pydantic import BaseModel


class Pagination(BaseModel):
    """Pagination block attached to list responses"""
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class MessageResponse(BaseModel):
    message: str
