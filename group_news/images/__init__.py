"""Image enrichment for generated posts."""

from .enricher import ImageEnricher, title_keyword
from .placeholder import placeholder_image

__all__ = ["ImageEnricher", "placeholder_image", "title_keyword"]
