"""
Page/offset arithmetic shared by repositories and list endpoints.
"""

import math
from dataclasses import dataclass

DEFAULT_PAGE_SIZE = 20


@dataclass
class Pagination:
    """Normalized page request plus the total once it is known."""

    page: int
    page_size: int
    total: int = 0

    @classmethod
    def normalize(
        cls, page: int, page_size: int, default_page_size: int = DEFAULT_PAGE_SIZE
    ) -> "Pagination":
        """Substitute defaults for non-positive page or page size."""
        if page_size <= 0:
            page_size = default_page_size
        if page <= 0:
            page = 1
        return cls(page=page, page_size=page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def total_pages(self) -> int:
        if self.page_size == 0:
            return 0
        return math.ceil(self.total / self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def as_dict(self) -> dict:
        return {
            "current_page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "total_items": self.total,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }
