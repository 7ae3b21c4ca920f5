"""Catalog search and autocomplete."""

import logging
from typing import List

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..models.tour import Tour

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
DEFAULT_SEARCH_LIMIT = 8
LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so they match literally."""
    for char in (LIKE_ESCAPE, "%", "_"):
        term = term.replace(char, LIKE_ESCAPE + char)
    return term


def rank_results(tours: List[Tour], term: str) -> List[Tour]:
    """
    Re-sort a result page by relevance.

    Name matches come first, then featured tours, then promoted tours,
    then alphabetical order.
    """
    needle = term.lower()
    return sorted(
        tours,
        key=lambda tour: (
            needle not in tour.name.lower(),
            not tour.is_featured,
            not tour.is_promotion,
            tour.name.casefold(),
        ),
    )


class SearchService:
    """Substring search over active tours."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def search(self, query: str | None, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Tour]:
        """
        Find active tours whose text fields contain ``query``.

        Queries shorter than two characters return an empty list.

        Args:
            query: Raw search text
            limit: Maximum number of results, clamped to the configured bound

        Returns:
            Matching tours ordered by relevance
        """
        term = (query or "").strip().lower()
        if len(term) < MIN_QUERY_LENGTH:
            return []

        limit = max(1, min(limit, settings.search_max_limit))
        pattern = f"%{escape_like(term)}%"

        stmt = (
            select(Tour)
            .where(Tour.is_active.is_(True))
            .where(
                or_(
                    Tour.name.ilike(pattern, escape=LIKE_ESCAPE),
                    Tour.category.ilike(pattern, escape=LIKE_ESCAPE),
                    Tour.description.ilike(pattern, escape=LIKE_ESCAPE),
                    Tour.short_description.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
            .order_by(Tour.is_featured.desc(), Tour.name)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        tours = rank_results(list(result.scalars().all()), term)

        logger.debug(
            "Tour search",
            extra={"term": term, "limit": limit, "results": len(tours)}
        )
        return tours

    async def suggestions(self, limit: int = 6) -> List[Tour]:
        """Popular active tours, shown when no query has been typed."""
        stmt = (
            select(Tour)
            .where(Tour.is_active.is_(True))
            .order_by(Tour.is_featured.desc(), Tour.is_promotion.desc(), Tour.name)
            .limit(max(1, min(limit, settings.search_max_limit)))
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
