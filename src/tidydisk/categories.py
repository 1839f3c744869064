"""Cleanup category registry for tidydisk."""

from tidydisk.models import CategoryTag
from tidydisk.providers import (
    BuildProvider,
    CacheProvider,
    CategoryProvider,
    TempProvider,
    TrashProvider,
    UpdateCacheProvider,
)

# One provider per category, in display order
CATEGORIES: dict[CategoryTag, CategoryProvider] = {
    CategoryTag.CACHE: CacheProvider(),
    CategoryTag.TEMP: TempProvider(),
    CategoryTag.TRASH: TrashProvider(),
    CategoryTag.BUILD: BuildProvider(),
    CategoryTag.UPDATE_CACHE: UpdateCacheProvider(),
}


def get_category(tag: CategoryTag | str) -> CategoryProvider | None:
    """Get a provider by tag."""
    try:
        return CATEGORIES.get(CategoryTag(tag))
    except ValueError:
        return None


def get_all_categories() -> list[CategoryProvider]:
    """Get all providers."""
    return list(CATEGORIES.values())
