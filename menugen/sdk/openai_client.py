"""
Text-generation provider and generation client.

`OpenAIProvider` wraps the OpenAI chat completions API behind the
`TextProvider` protocol. `GenerationClient` builds the product, matching
and ingredient-nutrition prompts, parses replies strictly and records
every call in the usage ledger, failures included.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence, Tuple

import openai
from openai import AsyncOpenAI

from ..config.loader import ProviderConfig
from ..core.errors import ParseError, ProviderError
from ..core.models import GenerationMode, Nutrition, RecipeLine, UsageStats
from ..core.pricing import PRICING_TABLE, TokenUsage, calculate_cost
from ..core.usage import INGREDIENT_MATCH, INGREDIENT_NUTRITION, PRODUCT_GENERATION, UsageLogger
from ..storage.models import IngredientRecord, UsageLogEntry
from .parsing import (
    IngredientMatch,
    IngredientMatchReply,
    IngredientNutritionReply,
    ProductReply,
    parse_reply,
)

logger = logging.getLogger(__name__)

# Client errors that will fail the same way on every attempt
_PERMANENT_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
    openai.NotFoundError,
)


@dataclass(frozen=True)
class CompletionRequest:
    """One prompt/response exchange with the provider."""
    system: str
    user: str
    model: str
    temperature: float
    max_output_tokens: int


@dataclass(frozen=True)
class Completion:
    """Provider reply text plus token counters."""
    text: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    request_id: Optional[str] = None
    model: str = ""

    @property
    def usage(self) -> TokenUsage:
        return TokenUsage(prompt_tokens=self.prompt_tokens, completion_tokens=self.completion_tokens)


class TextProvider(Protocol):
    """Anything that can answer a CompletionRequest."""

    async def complete(self, request: CompletionRequest) -> Completion:
        ...


class OpenAIProvider:
    """OpenAI chat completions as a TextProvider.

    Translates SDK exceptions to ProviderError so the retry policy only
    has to know about the project's own taxonomy.
    """

    def __init__(self, timeout_seconds: float = 60.0, client: Optional[AsyncOpenAI] = None):
        """Initialize the provider.

        Args:
            timeout_seconds: Transport timeout per request
            client: Preconfigured AsyncOpenAI client (defaults to one
                reading OPENAI_API_KEY from the environment)
        """
        # SDK-level retries stay off: each attempt is exactly one request
        self.client = client or AsyncOpenAI(timeout=timeout_seconds, max_retries=0)

    async def complete(self, request: CompletionRequest) -> Completion:
        """Send one chat completion request.

        Raises:
            ProviderError: On transport, rate-limit or API failures
            ParseError: If the reply carries no content
        """
        try:
            response = await self.client.chat.completions.create(
                model=request.model,
                messages=[
                    {"role": "system", "content": request.system},
                    {"role": "user", "content": request.user},
                ],
                temperature=request.temperature,
                max_tokens=request.max_output_tokens,
                response_format={"type": "json_object"},
            )
        except _PERMANENT_ERRORS as e:
            raise ProviderError(f"OpenAI rejected the request: {e}", retryable=False) from e
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

        usage = response.usage
        if not usage:
            raise ProviderError("OpenAI response missing usage information", retryable=False)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ParseError("No content in OpenAI response")

        return Completion(
            text=content,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            request_id=response.id,
            model=response.model or request.model,
        )


PRODUCT_SYSTEM_PROMPT = """You are an expert food menu assistant.
For each food or drink, generate:
1. A short description in the requested language (max 150 characters)
2. A structured recipe with ingredient names and quantities
3. Nutritional values per portion: calories, protein, carbs, fat (in grams except calories)
4. The ingredient names that may contain allergens

Rules:
- Return ONLY valid JSON, no other text
- ALL content must be in the requested language, including ingredient and allergen names
- Include only ingredients the customer actually eats; never list frying oil, boiling water or cooking spray

Response format:
{
  "description": "...",
  "recipe": [{"ingredient": "...", "quantity": "..."}],
  "nutritional_values": {"calories": 0, "protein": 0, "carbs": 0, "fat": 0},
  "estimated_allergens": ["..."]
}"""

DESCRIPTION_ONLY_SYSTEM_PROMPT = """You are an expert food menu assistant.
You receive an approved recipe and must:
1. Write a NEW description in the requested language (max 150 characters)
2. Recalculate nutritional values per portion from the EXACT ingredients given
3. List the ingredient names from the recipe that may contain allergens

Rules:
- Return ONLY valid JSON, no other text
- Do NOT modify the recipe; repeat it exactly as given
- ALL content must be in the requested language

Response format:
{
  "description": "...",
  "recipe": [{"ingredient": "...", "quantity": "..."}],
  "nutritional_values": {"calories": 0, "protein": 0, "carbs": 0, "fat": 0},
  "estimated_allergens": ["..."]
}"""

MATCH_SYSTEM_PROMPT = """You are an ingredient normalizer for a restaurant menu.
For each ingredient, find the best semantic match in the list of existing ingredients.
Consider synonyms, spelling variations and different forms of the same ingredient.
If no good match exists, return the original ingredient with confidence "low".

Return ONLY valid JSON:
{
  "matches": [
    {"original": "...", "normalized": "...", "quantity": "...", "similarity_score": 0.95, "confidence": "high"}
  ]
}"""

INGREDIENT_SYSTEM_PROMPT = """You are a nutrition expert. Provide nutritional values per 100g for the given ingredient.
Return ONLY valid JSON, for example:
{"calories_per_100g": 165, "protein_per_100g": 31.0, "carbs_per_100g": 0.0, "fat_per_100g": 3.6}"""

_LANGUAGE_NAMES = {"ro": "Romanian", "en": "English"}


def request_marker() -> str:
    """Per-request uniqueness marker so repeated prompts never hit a provider-side cache."""
    timestamp = datetime.now(timezone.utc).isoformat()
    return f"Timestamp: {timestamp} | Request ID: {uuid.uuid4().hex[:8]}"


def _recipe_text(recipe: Sequence[RecipeLine]) -> str:
    return ", ".join(f"{line.ingredient_name}: {line.quantity}" for line in recipe)


def product_prompt(name: str, language: str, mode: GenerationMode,
                   existing_recipe: Sequence[RecipeLine] = ()) -> Tuple[str, str]:
    """Build (system, user) prompts for product generation."""
    marker = request_marker()
    if mode == GenerationMode.DESCRIPTION_ONLY:
        recipe = _recipe_text(existing_recipe)
        if language == "ro":
            user = (
                f'Generează o descriere nouă și valorile nutriționale pentru produsul: "{name}" '
                f"folosind EXACT această rețetă: {recipe}. Nu modifica rețeta. {marker}"
            )
        else:
            user = (
                f'Generate a new description and nutritional values for product: "{name}" '
                f"using EXACTLY this recipe: {recipe}. Do NOT modify the recipe. {marker}"
            )
        return DESCRIPTION_ONLY_SYSTEM_PROMPT, user

    if language == "ro":
        user = (
            f'Generează date pentru produsul: "{name}" în limba română. Toate răspunsurile '
            f"trebuie să fie în română, inclusiv descrierea, ingredientele și alergenii. {marker}"
        )
    else:
        user = (
            f'Generate data for product: "{name}" in English. All responses must be in '
            f"English, including description, ingredients, and allergens. {marker}"
        )
    return PRODUCT_SYSTEM_PROMPT, user


def match_prompt(candidates: Sequence[RecipeLine], vocabulary: Sequence[str], language: str) -> str:
    """Build the user prompt for semantic ingredient matching."""
    wanted = "\n".join(f"- {line.ingredient_name} ({line.quantity})" for line in candidates)
    existing = "\n".join(f"- {name}" for name in vocabulary)
    return (
        f"Language: {_LANGUAGE_NAMES.get(language, language)}\n\n"
        f"Ingredients to normalize:\n{wanted}\n\n"
        f"Existing ingredients:\n{existing}\n\n"
        f"Find the best semantic match for each ingredient from the existing list. {request_marker()}"
    )


@dataclass(frozen=True)
class GeneratedContent:
    """Parsed product reply ready for the pipeline."""
    description: str
    recipe: Tuple[RecipeLine, ...]
    nutrition: Nutrition
    allergen_candidates: Tuple[str, ...]
    usage: UsageStats = field(default_factory=UsageStats)


class GenerationClient:
    """Builds prompts, calls the provider, parses replies and logs usage.

    Each method makes exactly one provider call; retrying is the
    caller's decision.
    """

    def __init__(self, provider: TextProvider, config: ProviderConfig, usage_logger: UsageLogger):
        PRICING_TABLE.get_pricing(config.model)
        self.provider = provider
        self.config = config
        self.usage_logger = usage_logger

    async def generate(
        self,
        name: str,
        language: str,
        mode: GenerationMode = GenerationMode.FULL,
        existing_recipe: Optional[Sequence[RecipeLine]] = None,
        tenant_id: str = "",
        item_id: Optional[str] = None,
    ) -> GeneratedContent:
        """Generate description, recipe, nutrition and allergen candidates.

        In DESCRIPTION_ONLY mode the returned recipe is `existing_recipe`
        verbatim whatever the reply contains.

        Args:
            name: Item name
            language: Language to write in
            mode: FULL or DESCRIPTION_ONLY
            existing_recipe: Approved recipe (required for DESCRIPTION_ONLY)
            tenant_id: Tenant charged for the call
            item_id: Item the call is for, recorded in the usage log

        Returns:
            GeneratedContent with the usage of this call

        Raises:
            ValueError: If DESCRIPTION_ONLY is requested without a recipe
            ProviderError: On transport failure
            ParseError: On a malformed reply
        """
        fixed_recipe = tuple(existing_recipe or ())
        if mode == GenerationMode.DESCRIPTION_ONLY and not fixed_recipe:
            raise ValueError("description_only generation requires an existing recipe")

        system, user = product_prompt(name, language, mode, fixed_recipe)
        request = CompletionRequest(
            system=system,
            user=user,
            model=self.config.model,
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
        )
        reply, usage = await self._call(PRODUCT_GENERATION, request, ProductReply, tenant_id, item_id)

        recipe = tuple(RecipeLine(line.ingredient, line.quantity) for line in reply.recipe)
        if mode == GenerationMode.DESCRIPTION_ONLY:
            if recipe and recipe != fixed_recipe:
                logger.warning("Provider altered the fixed recipe for %r; keeping the original", name)
            recipe = fixed_recipe

        values = reply.nutritional_values
        return GeneratedContent(
            description=reply.description,
            recipe=recipe,
            nutrition=Nutrition(values.calories, values.protein, values.carbs, values.fat),
            allergen_candidates=tuple(reply.estimated_allergens),
            usage=usage,
        )

    async def match_ingredients(
        self,
        candidates: Sequence[RecipeLine],
        vocabulary: Sequence[str],
        language: str,
        tenant_id: str = "",
    ) -> Tuple[List[IngredientMatch], UsageStats]:
        """Ask the provider to match candidates against a known vocabulary.

        Raises:
            ProviderError: On transport failure
            ParseError: On a malformed reply
        """
        request = CompletionRequest(
            system=MATCH_SYSTEM_PROMPT,
            user=match_prompt(candidates, vocabulary, language),
            model=self.config.model,
            temperature=self.config.match_temperature,
            max_output_tokens=self.config.match_max_output_tokens,
        )
        reply, usage = await self._call(INGREDIENT_MATCH, request, IngredientMatchReply, tenant_id)
        return reply.matches, usage

    async def ingredient_nutrition(
        self, name: str, language: str, tenant_id: str = ""
    ) -> Tuple[IngredientRecord, UsageStats]:
        """Get per-100g nutrition for a single ingredient.

        Raises:
            ProviderError: On transport failure
            ParseError: On a malformed reply
        """
        label = "Ingredientul" if language == "ro" else "Ingredient"
        request = CompletionRequest(
            system=INGREDIENT_SYSTEM_PROMPT,
            user=f'{label}: "{name}". {request_marker()}',
            model=self.config.model,
            temperature=self.config.nutrition_temperature,
            max_output_tokens=self.config.nutrition_max_output_tokens,
        )
        reply, usage = await self._call(INGREDIENT_NUTRITION, request, IngredientNutritionReply, tenant_id)
        record = IngredientRecord(
            name=name,
            language=language,
            calories_per_100g=reply.calories_per_100g,
            protein_per_100g=reply.protein_per_100g,
            carbs_per_100g=reply.carbs_per_100g,
            fat_per_100g=reply.fat_per_100g,
        )
        return record, usage

    async def _call(self, request_type, request, schema, tenant_id, item_id=None):
        """One provider call, timed, priced, logged and parsed."""
        started = time.monotonic()
        try:
            completion = await self.provider.complete(request)
        except (ProviderError, ParseError) as e:
            elapsed = int((time.monotonic() - started) * 1000)
            await self.usage_logger.record(UsageLogEntry(
                tenant_id=tenant_id,
                request_type=request_type,
                processing_time_ms=elapsed,
                error=str(e),
                model=request.model,
                item_id=item_id,
            ))
            raise

        elapsed = int((time.monotonic() - started) * 1000)
        usage = UsageStats(
            tokens_used=completion.usage.total_tokens,
            cost_estimate=calculate_cost(request.model, completion.usage),
            processing_time_ms=elapsed,
        )
        outcome = parse_reply(completion.text, schema)
        await self.usage_logger.record(UsageLogEntry(
            tenant_id=tenant_id,
            request_type=request_type,
            tokens_used=usage.tokens_used,
            cost_estimate=usage.cost_estimate,
            processing_time_ms=elapsed,
            error=None if outcome.ok else str(outcome.error),
            model=request.model,
            item_id=item_id,
            request_id=completion.request_id,
        ))
        if not outcome.ok:
            raise outcome.error
        return outcome.value, usage
