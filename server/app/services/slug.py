"""URL slug generation for tour names."""

import logging
import re
import time
import unicodedata
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.tour import Tour

logger = logging.getLogger(__name__)

FALLBACK_SLUG = "tour"

_NON_SLUG_CHARS = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")
_REPEATED_HYPHENS = re.compile(r"-{2,}")


def generate_slug(name: str) -> str:
    """
    Turn a display name into a URL slug.

    "Passeio à Cidade do Porto!" becomes "passeio-a-cidade-do-porto".
    Names with no usable characters map to ``FALLBACK_SLUG``.
    """
    decomposed = unicodedata.normalize("NFD", name)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = _NON_SLUG_CHARS.sub("", without_marks.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _REPEATED_HYPHENS.sub("-", slug).strip("-")
    return slug or FALLBACK_SLUG


async def unique_slug(db: AsyncSession, name: str, exclude_id: Optional[UUID] = None) -> str:
    """
    Generate a slug for ``name`` that no other tour owns.

    When the plain slug belongs to a different tour, a millisecond timestamp
    suffix is appended.
    """
    slug = generate_slug(name)

    stmt = select(Tour.id).where(Tour.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Tour.id != exclude_id)
    result = await db.execute(stmt.limit(1))

    if result.scalar_one_or_none() is not None:
        slug = f"{slug}-{int(time.time() * 1000)}"
    return slug


def _has_collision_suffix(slug: str, base: str) -> bool:
    return slug.startswith(f"{base}-") and slug[len(base) + 1:].isdigit()


async def regenerate_slugs(db: AsyncSession) -> int:
    """
    Rewrite every slug that no longer matches its tour's name.

    Slugs already carrying a collision suffix for the current name are left
    alone. A failed write is logged and the remaining tours are still
    processed.

    Returns:
        Number of tours whose slug changed
    """
    result = await db.execute(select(Tour.id, Tour.name, Tour.slug).order_by(Tour.created_at))
    rows = result.all()
    logger.info(f"Found {len(rows)} tours")

    changed = 0
    for tour_id, name, current in rows:
        if _has_collision_suffix(current, generate_slug(name)):
            logger.info(f"Slug for {name!r} already up to date: {current}")
            continue

        slug = await unique_slug(db, name, exclude_id=tour_id)
        if slug == current:
            logger.info(f"Slug for {name!r} already up to date: {slug}")
            continue

        try:
            await db.execute(
                update(Tour)
                .where(Tour.id == tour_id)
                .values(slug=slug)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to update slug for {name!r}: {e}")
            continue

        changed += 1
        logger.info(f"Slug for {name!r} changed from {current} to {slug}")

    return changed
