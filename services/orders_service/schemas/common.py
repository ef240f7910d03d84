import math
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PaginationMeta(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, per_page: int, total: int) -> "PaginationMeta":
        return cls(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=math.ceil(total / per_page) if per_page else 0,
        )


class Page(BaseModel, Generic[T]):
    data: list[T]
    meta: PaginationMeta
