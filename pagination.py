from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from config import settings


@dataclass
class PageParams:
    page: int = 1
    limit: int = settings.default_page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @staticmethod
    def from_query(page: Optional[int], limit: Optional[int]) -> Optional["PageParams"]:
        """İkisi de verilmezse None döndürür (sayfalanmamış, geriye dönük uyumlu yanıt)."""
        if page is None and limit is None:
            return None
        page = max(1, page or 1)
        limit = limit or settings.default_page_size
        limit = max(1, min(limit, settings.max_page_size))
        return PageParams(page=page, limit=limit)


def build_page(data: List[Any], total: int, params: PageParams) -> Dict[str, Any]:
    """Sayfalandırılmış yanıt zarfı oluştur."""
    total_pages = (total + params.limit - 1) // params.limit
    return {
        "data": data,
        "pagination": {
            "page": params.page,
            "limit": params.limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": params.page < total_pages,
            "has_prev": params.page > 1,
        },
    }


def paginate_list(items: Sequence[Any], params: PageParams) -> Dict[str, Any]:
    """Bellekteki bir listeyi dilimleyerek sayfala."""
    window = list(items[params.offset:params.offset + params.limit])
    return build_page(window, len(items), params)
