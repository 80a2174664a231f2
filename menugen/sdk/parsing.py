"""
Strict schemas for structured provider replies.

Each reply kind has one pydantic model with explicit defaults, and one
parsing function returns a tagged success or failure instead of raising.
"""

import json
import re
from dataclasses import dataclass
from typing import Generic, List, Literal, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from menugen.core.errors import ParseError

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class RecipeLineReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ingredient: str = Field(min_length=1)
    quantity: str = ""

    @field_validator("ingredient", mode="before")
    @classmethod
    def _strip_ingredient(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_as_text(cls, value):
        if value is None:
            return ""
        return str(value).strip()


class NutritionReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_zero(cls, value):
        return 0.0 if value is None else value


class ProductReply(BaseModel):
    """Reply to a product generation request.

    `description` is required; everything else defaults to empty.
    """
    model_config = ConfigDict(extra="ignore")

    description: str
    recipe: List[RecipeLineReply] = Field(default_factory=list)
    nutritional_values: NutritionReply = Field(default_factory=NutritionReply)
    estimated_allergens: List[str] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def _strip_description(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("estimated_allergens", mode="before")
    @classmethod
    def _drop_blank_allergens(cls, value):
        if value is None:
            return []
        return [item for item in value if isinstance(item, str) and item.strip()]


class IngredientMatch(BaseModel):
    model_config = ConfigDict(extra="ignore")

    original: str
    normalized: str
    quantity: str = ""
    similarity_score: float = Field(default=0.0, ge=0, le=1)
    confidence: Literal["high", "medium", "low"] = "low"

    @field_validator("confidence", mode="before")
    @classmethod
    def _lower_confidence(cls, value):
        return value.lower().strip() if isinstance(value, str) else value


class IngredientMatchReply(BaseModel):
    """Reply to a semantic ingredient matching request."""
    model_config = ConfigDict(extra="ignore")

    matches: List[IngredientMatch] = Field(default_factory=list)


class IngredientNutritionReply(BaseModel):
    """Per-100g nutrition for a single ingredient."""
    model_config = ConfigDict(extra="ignore")

    calories_per_100g: float = Field(default=0.0, ge=0)
    protein_per_100g: float = Field(default=0.0, ge=0)
    carbs_per_100g: float = Field(default=0.0, ge=0)
    fat_per_100g: float = Field(default=0.0, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_zero(cls, value):
        return 0.0 if value is None else value


M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class ParseSuccess(Generic[M]):
    value: M
    ok: Literal[True] = True


@dataclass(frozen=True)
class ParseFailure:
    error: ParseError
    ok: Literal[False] = False


ParseOutcome = Union[ParseSuccess[M], ParseFailure]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the provider added one."""
    return _FENCE.sub("", text.strip())


def parse_reply(text: str, model: Type[M]) -> "ParseOutcome[M]":
    """Parse provider text into a reply model.

    Args:
        text: Raw completion text
        model: Reply schema to validate against

    Returns:
        ParseSuccess with the validated model, or ParseFailure carrying
        a ParseError describing what was wrong
    """
    if not text or not text.strip():
        return ParseFailure(ParseError(f"Empty {model.__name__} reply"))

    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        return ParseFailure(ParseError(f"Reply is not valid JSON: {e}"))

    if not isinstance(data, dict):
        return ParseFailure(ParseError(f"Expected a JSON object for {model.__name__}, got {type(data).__name__}"))

    try:
        return ParseSuccess(model.model_validate(data))
    except ValidationError as e:
        return ParseFailure(ParseError(f"Invalid {model.__name__}: {e.error_count()} error(s): {e.errors()[0]['msg']}"))
