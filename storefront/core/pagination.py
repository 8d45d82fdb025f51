"""
page/per_page pagination helpers
"""
import math
from dataclasses import dataclass

from fastapi import Query

from .config import settings


@dataclass
class PageParams:
    page: int
    per_page: int

    @property
    def limit(self) -> int:
        return self.per_page

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def meta(self, total_count: int) -> dict:
        """Pagination block returned next to paged collections"""
        return {
            "current_page": self.page,
            "total_pages": math.ceil(total_count / self.per_page) if total_count else 0,
            "total_count": total_count,
        }


def make_page_params(page=None, per_page=None, default_per_page: int = None) -> PageParams:
    """Clamp raw page/per_page values to 1..MAX_PER_PAGE"""
    default_per_page = default_per_page or settings.DEFAULT_PER_PAGE
    page = max(1, page or 1)
    per_page = per_page or default_per_page
    per_page = max(1, min(per_page, settings.MAX_PER_PAGE))
    return PageParams(page=page, per_page=per_page)


def page_params(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    per_page: int = Query(None, ge=1, description="Items per page"),
) -> PageParams:
    """FastAPI dependency for the default catalog page size"""
    return make_page_params(page, per_page)


def search_page_params(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    per_page: int = Query(None, ge=1, description="Items per page"),
) -> PageParams:
    """FastAPI dependency for search results (larger default page)"""
    return make_page_params(page, per_page, default_per_page=settings.SEARCH_PER_PAGE)
