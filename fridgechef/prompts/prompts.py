"""Prompt builders for ingredient detection and recipe generation.

Prompts are opaque task descriptors. What matters to the rest of the package
is the output contract each one states:
- detection: a JSON array of {name, quantity, expiry_status, expiry_reasoning}
- recipes: a JSON object with title, ingredients, instructions, health_score,
  health_reasoning, magic_spice, magic_spice_reasoning, search_query,
  restricted_ingredients
"""

from typing import Optional, Sequence

from fridgechef.models.models import ExpiryStatus, Ingredient, UserProfile

DETECTION_SYSTEM_PROMPT = """You are a food ingredient detection assistant. Analyze the fridge/food image and identify all visible ingredients.

For each ingredient, provide:
- name: the ingredient name
- quantity: estimated quantity (e.g., "2 pieces", "1 carton", "half full")
- expiry_status: "fresh", "soon" (will expire soon), or "expired"
- expiry_reasoning: brief reason for the expiry status

Respond with a JSON array of ingredients only, no other text. Example:
[{"name": "Eggs", "quantity": "6 pieces", "expiry_status": "fresh", "expiry_reasoning": "Shell looks intact and clean"}]"""

DETECTION_USER_PROMPT = "Identify all the food ingredients visible in this fridge image:"

RECIPE_OUTPUT_SECTION = """Respond with a JSON object containing:
- title: creative recipe name
- ingredients: array of ingredient strings with quantities
- instructions: array of step-by-step cooking instructions
- health_score: 1-10 rating based on nutritional value
- health_reasoning: brief explanation of health score
- magic_spice: one additional ingredient suggestion to elevate the dish
- magic_spice_reasoning: why this spice would work
- search_query: a short YouTube search query for a video of this dish
- restricted_ingredients: array of available ingredients you left out because of the user's profile

Respond with JSON only, no other text."""


def _get_profile_section(profile: Optional[UserProfile]) -> str:
    """Generate the user-profile section of the recipe system prompt.

    Allergies are hard exclusions; everything else is a preference.

    Args:
        profile: User profile, or None.

    Returns:
        str: Profile instructions, or "" when there is nothing to say.
    """
    if profile is None:
        return ""

    lines = []
    if profile.allergies:
        lines.append(
            f"- ALLERGIES (never use, list any you skipped in restricted_ingredients): {', '.join(profile.allergies)}"
        )
    if profile.dietary_approach:
        lines.append(f"- Dietary approach: {profile.dietary_approach}")
    if profile.health_conditions:
        lines.append(f"- Health conditions to respect: {', '.join(profile.health_conditions)}")
    if profile.goals:
        lines.append(f"- Goals: {', '.join(profile.goals)}")
    if profile.custom_dislikes:
        lines.append(f"- Dislikes: {profile.custom_dislikes}")
    if profile.cooking_time:
        lines.append(f"- Time available: {profile.cooking_time}")
    if profile.cooking_confidence:
        lines.append(f"- Cooking confidence: {profile.cooking_confidence} (match the technique to it)")
    if profile.preferred_language and profile.preferred_language.lower() != "english":
        lines.append(
            f"- Write title, instructions and reasoning in {profile.preferred_language}; keep JSON keys in English"
        )

    if not lines:
        return ""
    return "User profile:\n" + "\n".join(lines)


def _get_equipment_note(equipment: Optional[Sequence[str]]) -> str:
    if isinstance(equipment, str):
        equipment = [equipment]
    elif not isinstance(equipment, (list, tuple)):
        equipment = []
    items = [item.strip() for item in equipment if isinstance(item, str) and item.strip()]
    return f"Available equipment: {', '.join(items)}." if items else ""


def get_recipe_system_prompt(
    cuisine: Optional[str] = None,
    equipment: Optional[Sequence[str]] = None,
    profile: Optional[UserProfile] = None,
) -> str:
    """Generate the system prompt for recipe generation.

    Args:
        cuisine: Cuisine style; "Any" or empty adds no constraint.
        equipment: Available kitchen equipment.
        profile: Optional user profile.

    Returns:
        str: System prompt ending with the JSON output contract.
    """
    sections = ["You are a creative AI chef. Generate a delicious, practical recipe."]

    if isinstance(cuisine, str) and cuisine.strip() and cuisine.strip().lower() != "any":
        sections.append(f"The recipe should be {cuisine.strip()} cuisine style.")

    equipment_note = _get_equipment_note(equipment)
    if equipment_note:
        sections.append(equipment_note)

    profile_section = _get_profile_section(profile)
    if profile_section:
        sections.append(profile_section)

    sections.append(RECIPE_OUTPUT_SECTION)
    return "\n\n".join(sections)


def build_ingredients_prompt(ingredients: Sequence[Ingredient], preferences: Optional[str] = None) -> str:
    """Generate the user prompt for a recipe built from detected ingredients.

    Ingredients expiring soon are listed as priorities; expired ones are left
    out of the usable list and named as items to avoid.

    Args:
        ingredients: Detected or typed ingredients (non-empty).
        preferences: Free-text request from the user, e.g. a voice transcript.

    Returns:
        str: User prompt.
    """
    usable = [i for i in ingredients if i.expiry_status != ExpiryStatus.EXPIRED]
    expired = [i for i in ingredients if i.expiry_status == ExpiryStatus.EXPIRED]
    expiring = [i for i in usable if i.expiry_status == ExpiryStatus.SOON]

    lines = [f"Create a recipe using these ingredients: {', '.join(i.label() for i in usable)}"]
    if expiring:
        lines.append(f"Use these first, they expire soon: {', '.join(i.name for i in expiring)}")
    if expired:
        lines.append(f"Do not use these, they look expired: {', '.join(i.name for i in expired)}")
    if isinstance(preferences, str) and preferences.strip():
        lines.append(f"The user also said: \"{preferences.strip()}\"")
    return "\n".join(lines)


def build_named_dish_prompt(dish_name: str) -> str:
    """Generate the user prompt for a recipe of a named dish.

    Args:
        dish_name: Free-text dish name, e.g. "Masala Omelette".

    Returns:
        str: User prompt.
    """
    return (
        f"Create a recipe for \"{dish_name.strip()}\". "
        "Use that dish name as the title and list every ingredient with its quantity."
    )
