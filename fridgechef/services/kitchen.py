"""Public entry points: detect ingredients, generate recipes.

Each operation configures the FallbackOrchestrator with a candidate chain, a
payload and a normalizer, then maps the chain outcome to an Outcome carrying
a user-facing message. Nothing here raises for expected failures; callers can
render `outcome.message` directly and retry the same call.

Usage:
    outcome = await detect_ingredients("data:image/jpeg;base64,/9j/...")
    if outcome.ok:
        recipe = await generate_recipe_from_ingredients(outcome.value, cuisine="Italian")
"""

from functools import partial
from typing import List, Optional, Sequence, Union

from pydantic import ValidationError

from fridgechef.hooks.hooks import AttemptHook
from fridgechef.models.models import (
    ErrorKind,
    ExpiryStatus,
    Ingredient,
    Outcome,
    ProviderCandidate,
    TaskKind,
    TaskPayload,
    UserProfile,
)
from fridgechef.prompts.prompts import (
    DETECTION_SYSTEM_PROMPT,
    DETECTION_USER_PROMPT,
    build_ingredients_prompt,
    build_named_dish_prompt,
    get_recipe_system_prompt,
)
from fridgechef.providers.invoker import ChatCompletionInvoker, Invoker
from fridgechef.providers.normalizer import normalize_ingredients, normalize_recipe
from fridgechef.providers.orchestrator import FallbackOrchestrator
from fridgechef.utils.config import config
from fridgechef.utils.logger import logger

NOT_CONFIGURED_MESSAGE = "AI provider API key is not configured."
NO_FOOD_MESSAGE = "No food detected. Try better lighting or a clearer photo."
QUOTA_MESSAGE = "Daily AI quota exhausted. Please wait a while or upgrade your plan, then try again."
BUSY_MESSAGE = "Our AI chefs are busy right now. Please try again in a moment."

IngredientInput = Union[Ingredient, str, dict]


def build_candidates(backend_ids: Sequence[str], task_kind: TaskKind) -> List[ProviderCandidate]:
    """Turn an ordered list of model ids into a fallback chain."""
    return [ProviderCandidate(backend_id=backend_id, task_kind=task_kind) for backend_id in backend_ids]


def _coerce_ingredients(ingredients: Optional[Sequence[IngredientInput]]) -> List[Ingredient]:
    """Accept Ingredient objects, plain names or ingredient dicts.

    Blank names and items that fail validation are dropped.
    """
    if isinstance(ingredients, (str, dict, Ingredient)):
        ingredients = [ingredients]
    elif not isinstance(ingredients, (list, tuple)):
        ingredients = []

    result: List[Ingredient] = []
    for item in ingredients or []:
        if isinstance(item, Ingredient):
            result.append(item)
            continue
        try:
            if isinstance(item, str):
                if item.strip():
                    result.append(Ingredient(name=item))
            elif isinstance(item, dict):
                result.append(Ingredient.model_validate(item))
            else:
                logger.debug(f"Dropped ingredient of type {type(item).__name__}")
        except ValidationError as e:
            logger.debug(f"Dropped ingredient {item!r}: {e}")
    return result


def _coerce_profile(profile: Union[UserProfile, dict, None]) -> Optional[UserProfile]:
    """Accept a UserProfile or its dict form; anything unusable means no profile."""
    if profile is None or isinstance(profile, UserProfile):
        return profile
    if isinstance(profile, dict):
        try:
            return UserProfile.model_validate(profile)
        except ValidationError as e:
            logger.debug(f"Ignored invalid profile: {e}")
            return None
    logger.debug(f"Ignored profile of type {type(profile).__name__}")
    return None


class Kitchen:
    """Task façade over the fallback orchestrator.

    Args:
        invoker: Provider invoker. Defaults to ChatCompletionInvoker(); when the
            default is used a missing API key is reported as NOT_CONFIGURED
            before any network call.
        vision_candidates: Chain for detection. Defaults to config.VISION_MODELS.
        text_candidates: Chain for recipes. Defaults to config.TEXT_MODELS.
        hooks: Attempt hooks passed to the orchestrator (default: logging hook).
        deadline_seconds: Whole-chain deadline. Defaults to config.chain_deadline.
    """

    def __init__(
        self,
        invoker: Optional[Invoker] = None,
        vision_candidates: Optional[Sequence[ProviderCandidate]] = None,
        text_candidates: Optional[Sequence[ProviderCandidate]] = None,
        hooks: Optional[Sequence[AttemptHook]] = None,
        deadline_seconds: Optional[float] = None,
    ) -> None:
        self._requires_api_key = invoker is None
        self.invoker = invoker if invoker is not None else ChatCompletionInvoker()
        self.vision_candidates = (
            list(vision_candidates)
            if vision_candidates is not None
            else build_candidates(config.VISION_MODELS, TaskKind.VISION)
        )
        self.text_candidates = (
            list(text_candidates)
            if text_candidates is not None
            else build_candidates(config.TEXT_MODELS, TaskKind.TEXT)
        )
        self.orchestrator = FallbackOrchestrator(
            self.invoker,
            hooks=hooks,
            deadline_seconds=deadline_seconds if deadline_seconds is not None else config.chain_deadline,
        )

    def _not_configured(self) -> Optional[Outcome]:
        if self._requires_api_key and not config.OPENROUTER_API_KEY:
            logger.error("OPENROUTER_API_KEY is not set, refusing to call providers")
            return Outcome.failure(ErrorKind.NOT_CONFIGURED, NOT_CONFIGURED_MESSAGE)
        return None

    @staticmethod
    def _user_facing(outcome: Outcome, exhausted_message: str) -> Outcome:
        """Replace chain-level failure details with messages fit for the UI."""
        if outcome.ok:
            return outcome
        logger.warning(f"Chain failed with {outcome.error_kind.value}: {outcome.message}")
        if outcome.error_kind == ErrorKind.QUOTA_EXHAUSTED:
            return Outcome.failure(ErrorKind.QUOTA_EXHAUSTED, QUOTA_MESSAGE)
        return Outcome.failure(ErrorKind.ALL_PROVIDERS_EXHAUSTED, exhausted_message)

    async def detect_ingredients(self, image_data: str) -> Outcome:
        """Detect food items in a photo.

        Args:
            image_data: Data URI, http(s) URL or plain base64 image.

        Returns:
            Outcome whose value is a non-empty list of Ingredient, or a failure
            with a user-facing message.
        """
        if not isinstance(image_data, str) or not image_data.strip():
            return Outcome.failure(ErrorKind.INPUT_VALIDATION, "No image provided.")
        not_configured = self._not_configured()
        if not_configured:
            return not_configured

        payload = TaskPayload(
            prompt=DETECTION_USER_PROMPT,
            system_prompt=DETECTION_SYSTEM_PROMPT,
            image_data=image_data,
            max_tokens=config.DETECTION_MAX_TOKENS,
        )
        outcome = await self.orchestrator.run(
            self.vision_candidates, payload, normalize_ingredients, shape="array"
        )
        if outcome.ok:
            logger.info(f"Detected {len(outcome.value)} ingredient(s)")
        return self._user_facing(outcome, NO_FOOD_MESSAGE)

    async def generate_recipe_from_ingredients(
        self,
        ingredients: Sequence[IngredientInput],
        cuisine: str = "Any",
        equipment: Optional[Sequence[str]] = None,
        preferences: Optional[str] = None,
        profile: Optional[UserProfile] = None,
    ) -> Outcome:
        """Generate one recipe from a set of ingredients.

        An empty ingredient list (or one where every item looks expired) is
        rejected before any network call.

        Args:
            ingredients: Ingredient objects or plain names.
            cuisine: Cuisine style; "Any" adds no constraint.
            equipment: Available kitchen equipment.
            preferences: Free-text wishes, e.g. a voice transcript.
            profile: Optional user profile (allergies, diet, language...).

        Returns:
            Outcome whose value is a Recipe, or a failure with a user-facing message.
        """
        items = _coerce_ingredients(ingredients)
        if not items:
            return Outcome.failure(ErrorKind.INPUT_VALIDATION, "No ingredients provided.")
        if all(item.expiry_status == ExpiryStatus.EXPIRED for item in items):
            return Outcome.failure(ErrorKind.INPUT_VALIDATION, "All provided ingredients look expired.")
        not_configured = self._not_configured()
        if not_configured:
            return not_configured

        payload = TaskPayload(
            prompt=build_ingredients_prompt(items, preferences),
            system_prompt=get_recipe_system_prompt(cuisine, equipment, _coerce_profile(profile)),
            max_tokens=config.RECIPE_MAX_TOKENS,
        )
        outcome = await self.orchestrator.run(self.text_candidates, payload, normalize_recipe, shape="object")
        if outcome.ok:
            logger.info(f"Generated recipe {outcome.value.title!r} from {len(items)} ingredient(s)")
        return self._user_facing(outcome, BUSY_MESSAGE)

    async def generate_recipe_from_name(
        self,
        dish_name: str,
        equipment: Optional[Sequence[str]] = None,
        profile: Optional[UserProfile] = None,
    ) -> Outcome:
        """Generate a recipe for a named dish.

        The dish name doubles as the placeholder title, so a response that only
        echoes the name back without ingredients is rejected.

        Args:
            dish_name: Free-text dish name.
            equipment: Available kitchen equipment.
            profile: Optional user profile.

        Returns:
            Outcome whose value is a Recipe, or a failure with a user-facing message.
        """
        if not isinstance(dish_name, str) or not dish_name.strip():
            return Outcome.failure(ErrorKind.INPUT_VALIDATION, "No dish name provided.")
        not_configured = self._not_configured()
        if not_configured:
            return not_configured

        payload = TaskPayload(
            prompt=build_named_dish_prompt(dish_name),
            system_prompt=get_recipe_system_prompt(None, equipment, _coerce_profile(profile)),
            max_tokens=config.RECIPE_MAX_TOKENS,
        )
        normalize = partial(normalize_recipe, fallback_title=dish_name.strip())
        outcome = await self.orchestrator.run(self.text_candidates, payload, normalize, shape="object")
        if outcome.ok:
            logger.info(f"Generated recipe {outcome.value.title!r} for {dish_name.strip()!r}")
        return self._user_facing(outcome, BUSY_MESSAGE)


async def detect_ingredients(image_data: str) -> Outcome:
    """Detect ingredients with the configured vision chain."""
    return await Kitchen().detect_ingredients(image_data)


async def generate_recipe_from_ingredients(
    ingredients: Sequence[IngredientInput],
    cuisine: str = "Any",
    equipment: Optional[Sequence[str]] = None,
    preferences: Optional[str] = None,
    profile: Optional[UserProfile] = None,
) -> Outcome:
    """Generate a recipe from ingredients with the configured text chain."""
    return await Kitchen().generate_recipe_from_ingredients(ingredients, cuisine, equipment, preferences, profile)


async def generate_recipe_from_name(
    dish_name: str,
    equipment: Optional[Sequence[str]] = None,
    profile: Optional[UserProfile] = None,
) -> Outcome:
    """Generate a recipe for a named dish with the configured text chain."""
    return await Kitchen().generate_recipe_from_name(dish_name, equipment, profile)
