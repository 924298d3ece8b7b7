"""
Menu catalog loading.

The catalog is a static YAML list loaded once at startup. Each entry has a
``type`` list: ``[FOOD]`` for food, otherwise the supported serving types in
preference order (``[HOT, ICED]``).
"""

import os
import logging
from typing import List, Sequence

import yaml

from kiosk.core.errors import CatalogError
from kiosk.core.types import MenuItem, ServingType

logger = logging.getLogger(__name__)

FOOD_TYPE = "FOOD"


def parse_item(entry: dict) -> MenuItem:
    """Build a MenuItem from one catalog entry."""
    try:
        item_id = str(entry["id"])
        name = str(entry["name"])
        types = [str(t).upper() for t in entry.get("type", [])]
    except (KeyError, TypeError) as e:
        raise CatalogError(f"Invalid catalog entry {entry!r}: {e}") from e

    is_food = FOOD_TYPE in types
    try:
        serving_types = tuple(ServingType(t) for t in types if t != FOOD_TYPE)
    except ValueError as e:
        raise CatalogError(f"Unknown serving type in '{item_id}': {e}") from e

    if not is_food and not serving_types:
        raise CatalogError(f"Drink '{item_id}' declares no serving type")

    return MenuItem(
        id=item_id,
        name=name,
        tags=frozenset(str(t) for t in entry.get("tags", [])),
        price_cents=int(entry.get("price", 0)),
        serving_types=serving_types,
        is_food=is_food,
        category=entry.get("category", "Food" if is_food else ""),
        images=dict(entry.get("images") or {}),
        image=entry.get("image"),
        model_3d=entry.get("image_3d"),
    )


def parse_catalog(entries: Sequence[dict]) -> List[MenuItem]:
    items = [parse_item(entry) for entry in entries]
    seen = set()
    for item in items:
        if item.id in seen:
            raise CatalogError(f"Duplicate catalog id '{item.id}'")
        seen.add(item.id)
    return items


def load_catalog(path: str) -> List[MenuItem]:
    """Load the menu from a YAML file.

    Raises:
        CatalogError: if the file is missing or malformed
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise CatalogError(f"Catalog file not found: {path}") from e
    except yaml.YAMLError as e:
        raise CatalogError(f"Catalog file is not valid YAML: {path}: {e}") from e

    entries = data.get("menu", []) if isinstance(data, dict) else data
    items = parse_catalog(entries or [])
    drinks = sum(1 for item in items if not item.is_food)
    logger.info("Loaded catalog from %s (%d items, %d drinks)",
                os.path.basename(path), len(items), drinks)
    return items


def models_to_preload(catalog: Sequence[MenuItem]) -> List[str]:
    """Absolute asset paths of every 3D model referenced by the catalog."""
    return ["/" + item.model_3d.lstrip("/") for item in catalog if item.model_3d]
