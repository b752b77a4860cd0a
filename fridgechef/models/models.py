"""Data models and schemas for the FridgeChef provider orchestration layer.

Defines Pydantic models for domain objects (ingredients, recipes, user profile)
and for the values that cross every layer boundary (candidates, payloads,
outcomes, attempt events). All models use Pydantic v2.
"""

from enum import Enum
from typing import Any, Generic, List, Optional, Annotated, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


T = TypeVar("T")


class ExpiryStatus(str, Enum):
    """Freshness estimate for a detected ingredient."""

    FRESH = "fresh"
    SOON = "soon"
    EXPIRED = "expired"


class Ingredient(BaseModel):
    """Domain model for one detected food item.

    Only `name` is required. A blank name is a validation error, so an
    Ingredient instance always carries a usable name.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Annotated[str, Field(min_length=1, description="Ingredient name (non-empty)")]
    quantity: Annotated[Optional[str], Field(None, description="Free-form quantity, e.g. '2 pieces'")]
    expiry_status: Annotated[Optional[ExpiryStatus], Field(None, description="fresh, soon or expired")]
    expiry_reasoning: Annotated[Optional[str], Field(None, description="Why the expiry status was chosen")]

    def label(self) -> str:
        """Render as `name (quantity)` for prompts."""
        return f"{self.name} ({self.quantity})" if self.quantity else self.name


class Recipe(BaseModel):
    """Domain model for one generated recipe.

    Instances produced by the normalizer always have every field populated:
    missing values are replaced by defaults before construction.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Annotated[str, Field(min_length=1, description="Recipe name")]
    ingredients: Annotated[List[str], Field(default_factory=list, description="Ingredient lines with quantities")]
    instructions: Annotated[List[str], Field(default_factory=list, description="Step-by-step instructions")]
    health_score: Annotated[float, Field(7.0, ge=1.0, le=10.0, description="Nutritional rating from 1 to 10")]
    health_reasoning: Annotated[str, Field("", description="Explanation of the health score")]
    magic_spice: Annotated[str, Field("", description="One extra ingredient that elevates the dish")]
    magic_spice_reasoning: Annotated[str, Field("", description="Why the magic spice works")]
    search_query: Annotated[str, Field("", description="Hint for a follow-on video search")]
    restricted_ingredients: Annotated[
        List[str],
        Field(default_factory=list, description="Ingredients left out because of the user's profile"),
    ]


class UserProfile(BaseModel):
    """User preferences that shape recipe prompts.

    Loaded by the caller from its profile store; this package only reads it.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    health_conditions: List[str] = Field(default_factory=list)
    dietary_approach: Optional[str] = None
    goals: List[str] = Field(default_factory=list)
    cooking_time: Optional[str] = None
    cooking_confidence: Optional[str] = None
    allergies: List[str] = Field(default_factory=list)
    custom_dislikes: Optional[str] = None
    preferred_language: Optional[str] = None


class TaskKind(str, Enum):
    """Kind of request a backend is asked to serve."""

    VISION = "vision"
    TEXT = "text"


class ProviderCandidate(BaseModel):
    """One network-callable backend configuration in a fallback chain."""

    model_config = ConfigDict(frozen=True)

    backend_id: Annotated[str, Field(min_length=1, description="Model identifier sent as `model`")]
    task_kind: TaskKind

    def __str__(self) -> str:
        return f"{self.backend_id} ({self.task_kind.value})"


class TaskPayload(BaseModel):
    """Request content for one task, shared by every candidate in the chain."""

    prompt: Annotated[str, Field(min_length=1, description="User message text")]
    system_prompt: Optional[str] = None
    image_data: Annotated[
        Optional[str],
        Field(None, description="Data URI, http(s) URL or plain base64 image (vision tasks only)"),
    ]
    max_tokens: Optional[int] = Field(None, ge=1)

    @property
    def is_vision(self) -> bool:
        return bool(self.image_data)


class ErrorKind(str, Enum):
    """Failure taxonomy shared by every layer."""

    INPUT_VALIDATION = "input_validation"
    NOT_CONFIGURED = "not_configured"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    QUOTA_EXHAUSTED = "quota_exhausted"
    ALL_PROVIDERS_EXHAUSTED = "all_providers_exhausted"


# Kinds that stop a fallback chain immediately
FATAL_ERROR_KINDS = frozenset({ErrorKind.QUOTA_EXHAUSTED})


class Outcome(BaseModel, Generic[T]):
    """Discriminated result: either a value or an (error_kind, message) pair.

    Used instead of exceptions at every layer boundary.
    """

    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "Outcome":
        return cls(value=value)

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str) -> "Outcome":
        return cls(error_kind=error_kind, message=message)

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @property
    def is_fatal(self) -> bool:
        """True when the failure must abort the remaining candidates."""
        return self.error_kind in FATAL_ERROR_KINDS

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


class AttemptOutcome(str, Enum):
    """Result of trying one candidate, as reported to observability hooks."""

    ACCEPTED = "accepted"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    QUOTA_EXHAUSTED = "quota_exhausted"


class AttemptEvent(BaseModel):
    """One event per candidate attempt, emitted by the orchestrator."""

    candidate: ProviderCandidate
    outcome: AttemptOutcome
    elapsed_ms: Annotated[int, Field(ge=0)]
    message: Optional[str] = None
