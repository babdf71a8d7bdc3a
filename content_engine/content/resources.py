"""Resource registry - the fixed allow-list of content collections.

Every action and every revert step goes through this module before it may
touch a collection. The set of names is closed at import time; there is no
way to register a collection at runtime.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from content_engine.content.errors import RejectedResourceError

if TYPE_CHECKING:
    from content_engine.content.collections import Collection, CollectionStore


class ResourceName(StrEnum):
    ARTICLES = "articles"
    UPDATES = "updates"
    PROJECTS = "projects"
    ARTWORK = "artwork"
    EXPERIMENTS = "experiments"
    FAVORITES = "favorites"
    INSPIRATIONS = "inspirations"
    EXPERIENCES = "experiences"
    CERTIFICATIONS = "certifications"
    CLIENT_PROJECTS = "client_projects"
    SKILLS = "skills"
    PRODUCTS = "products"
    PRODUCT_REVIEWS = "product_reviews"
    LIFE_PERIODS = "life_periods"
    LEARNING_GOALS = "learning_goals"
    FUNDING_CAMPAIGNS = "funding_campaigns"


ALLOWED_RESOURCES: frozenset[ResourceName] = frozenset(ResourceName)


@dataclass(frozen=True)
class ResourceTraits:
    """Per-collection traits used by the context snapshot.

    Attributes:
        publishable: Collection has a ``published`` flag (published/draft split)
        tracks_staleness: Records carry ``updated_at`` worth reporting on
        required_fields: Content fields a complete record must fill in
    """

    publishable: bool = False
    tracks_staleness: bool = True
    required_fields: tuple[str, ...] = ("description",)


_PUBLISHABLE = {
    ResourceName.ARTICLES,
    ResourceName.UPDATES,
    ResourceName.PROJECTS,
    ResourceName.EXPERIMENTS,
    ResourceName.PRODUCT_REVIEWS,
    ResourceName.EXPERIENCES,
}

_REQUIRED_FIELDS: dict[ResourceName, tuple[str, ...]] = {
    ResourceName.ARTICLES: ("content", "excerpt"),
    ResourceName.UPDATES: ("content",),
    ResourceName.ARTWORK: (),
    ResourceName.PRODUCT_REVIEWS: ("content", "summary"),
}

RESOURCE_TRAITS: Mapping[ResourceName, ResourceTraits] = MappingProxyType(
    {
        name: ResourceTraits(
            publishable=name in _PUBLISHABLE,
            required_fields=_REQUIRED_FIELDS.get(name, ("description",)),
        )
        for name in ResourceName
    }
)


def is_allowed(name: str) -> bool:
    """Return True if ``name`` is an allow-listed collection."""
    return isinstance(name, str) and name in ALLOWED_RESOURCES


def resolve_resource(name: str) -> ResourceName:
    """Map a raw collection name onto the closed ResourceName set.

    Raises:
        RejectedResourceError: If the name is not allow-listed
    """
    if not is_allowed(name):
        raise RejectedResourceError(str(name))
    return ResourceName(name)


class ResourceRegistry:
    """Maps allow-listed names to typed collection handles.

    Usage:
        registry = ResourceRegistry(store)
        articles = registry.collection("articles")
        created = await articles.insert({"title": "A"})
    """

    def __init__(self, store: CollectionStore) -> None:
        from content_engine.content.collections import Collection

        self.store = store
        self._collections = {name: Collection(name, store) for name in ResourceName}

    def is_allowed(self, name: str) -> bool:
        return is_allowed(name)

    def collection(self, name: str) -> Collection:
        """Return the handle for ``name``.

        Raises:
            RejectedResourceError: If the name is not allow-listed
        """
        return self._collections[resolve_resource(name)]

    def names(self) -> list[ResourceName]:
        """All allow-listed names, in declaration order."""
        return list(ResourceName)
