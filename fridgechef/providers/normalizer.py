"""Coerce extracted JSON into strict Ingredient / Recipe models.

Both entry points are pure and never raise on malformed input: bad data
degrades to an empty list (ingredients) or None (recipe), which the
orchestrator treats as "try the next candidate".

Models answer in snake_case or camelCase depending on the backend, so every
field is looked up under both spellings.
"""

import math
from typing import Any, List, Optional

from pydantic import ValidationError

from fridgechef.models.models import ExpiryStatus, Ingredient, Recipe
from fridgechef.utils.logger import logger

DEFAULT_RECIPE_TITLE = "Chef's Special"
DEFAULT_HEALTH_SCORE = 7.0
DEFAULT_HEALTH_REASONING = "A balanced dish built from the ingredients you already have."


def _field(raw: dict, *keys: str) -> Any:
    """Return the first present, non-None value among `keys`."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _text(value: Any, default: str = "") -> str:
    text = _optional_text(value)
    return text if text is not None else default


def _string_list(value: Any) -> List[str]:
    """Keep the non-blank string (or numeric) items of a list, else []."""
    if not isinstance(value, list):
        return []
    return [text for text in (_optional_text(item) for item in value) if text is not None]


def _expiry_status(value: Any) -> Optional[ExpiryStatus]:
    if not isinstance(value, str):
        return None
    try:
        return ExpiryStatus(value.strip().lower())
    except ValueError:
        return None


def _health_score(value: Any) -> float:
    """Numeric score clamped to 1..10; anything else falls back to the default."""
    if isinstance(value, bool):
        return DEFAULT_HEALTH_SCORE
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_HEALTH_SCORE
    if not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value):
        return DEFAULT_HEALTH_SCORE
    return float(min(10.0, max(1.0, value)))


def normalize_ingredients(raw: Any) -> List[Ingredient]:
    """Validate a detection response into an ordered ingredient list.

    Args:
        raw: Value returned by the extractor (expected: a JSON array).

    Returns:
        Ingredients whose `name` is a non-empty string, in input order. Any other
        element (null, scalar, object without a usable name) is dropped. A
        non-array input yields [].
    """
    if not isinstance(raw, list):
        return []

    ingredients: List[Ingredient] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        try:
            ingredients.append(
                Ingredient(
                    name=name,
                    quantity=_optional_text(item.get("quantity")),
                    expiry_status=_expiry_status(_field(item, "expiry_status", "expiryStatus")),
                    expiry_reasoning=_optional_text(_field(item, "expiry_reasoning", "expiryReasoning")),
                )
            )
        except ValidationError as e:
            logger.debug(f"Dropped ingredient {name!r}: {e}")

    if len(ingredients) < len(raw):
        logger.debug(f"Normalized ingredients: {len(raw)} → {len(ingredients)}")
    return ingredients


def is_usable_recipe(recipe: Recipe, fallback_title: str = DEFAULT_RECIPE_TITLE) -> bool:
    """A recipe is an empty skeleton when it kept the placeholder title and has no ingredients."""
    return not (recipe.title == fallback_title and not recipe.ingredients)


def normalize_recipe(raw: Any, fallback_title: Optional[str] = None) -> Optional[Recipe]:
    """Validate a generation response into a fully defaulted Recipe.

    Args:
        raw: Value returned by the extractor (expected: a JSON object).
        fallback_title: Title substituted when the model omits one. Defaults to
            DEFAULT_RECIPE_TITLE; name-based generation passes the dish name.

    Returns:
        The Recipe, or None when `raw` is not an object or the result is an
        empty skeleton (placeholder title and no ingredients).
    """
    if not isinstance(raw, dict):
        return None

    placeholder = (fallback_title or "").strip() or DEFAULT_RECIPE_TITLE

    try:
        recipe = Recipe(
            title=_text(_field(raw, "title", "name"), placeholder),
            ingredients=_string_list(raw.get("ingredients")),
            instructions=_string_list(_field(raw, "instructions", "steps")),
            health_score=_health_score(_field(raw, "health_score", "healthScore")),
            health_reasoning=_text(_field(raw, "health_reasoning", "healthReasoning"), DEFAULT_HEALTH_REASONING),
            magic_spice=_text(_field(raw, "magic_spice", "magicSpice")),
            magic_spice_reasoning=_text(_field(raw, "magic_spice_reasoning", "magicSpiceReasoning")),
            search_query=_text(
                _field(raw, "search_query", "searchQuery", "youtube_search_query", "youtubeSearchQuery")
            ),
            restricted_ingredients=_string_list(_field(raw, "restricted_ingredients", "restrictedIngredients")),
        )
    except ValidationError as e:
        logger.debug(f"Recipe failed validation: {e}")
        return None

    if not is_usable_recipe(recipe, placeholder):
        logger.debug("Recipe rejected: placeholder title with no ingredients")
        return None
    return recipe
