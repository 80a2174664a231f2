"""
Two-tier ingredient name normalization.

Tier 1 asks the provider to match each recipe ingredient against the
tenant's existing ingredient vocabulary; tier 2 falls back to edit
distance when there is no vocabulary or the provider is unavailable.
Unmatched ingredients are registered as new.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from menugen.config.loader import NormalizerConfig, RetryConfig

from .cache import CacheStore
from .errors import CacheError, ParseError, ProviderError
from .fuzzy import best_match
from .models import RecipeLine, UsageStats
from .retry import RetryExhausted, retry_with_backoff

if TYPE_CHECKING:
    from menugen.sdk.openai_client import GenerationClient

logger = logging.getLogger(__name__)

ACCEPTED_CONFIDENCE = ("high", "medium")
DEFAULT_MEMO_SIZE = 512


@dataclass(frozen=True)
class NormalizedIngredient:
    """Outcome of normalizing one recipe line."""
    original: str
    normalized: str
    quantity: str
    similarity: float
    confidence: str
    is_new: bool
    source: str  # exact, semantic, fuzzy or disabled


@dataclass
class NormalizationResult:
    ingredients: List[NormalizedIngredient] = field(default_factory=list)
    usage: UsageStats = field(default_factory=UsageStats)

    @property
    def recipe(self) -> Tuple[RecipeLine, ...]:
        return tuple(RecipeLine(i.normalized, i.quantity) for i in self.ingredients)


def _new_ingredient(line: RecipeLine, similarity: float, source: str) -> NormalizedIngredient:
    return NormalizedIngredient(
        original=line.ingredient_name,
        normalized=line.ingredient_name,
        quantity=line.quantity,
        similarity=similarity,
        confidence="low",
        is_new=True,
        source=source,
    )


class IngredientNormalizer:
    """Maps generated ingredient names onto a tenant's existing vocabulary."""

    def __init__(
        self,
        client: Optional["GenerationClient"],
        cache: CacheStore,
        config: Optional[NormalizerConfig] = None,
        retry: Optional[RetryConfig] = None,
        memo_size: int = DEFAULT_MEMO_SIZE,
    ):
        """
        Args:
            client: Generation client for semantic matching; None keeps
                normalization on the fuzzy tier only
            cache: Cache adapter providing the tenant vocabulary
            config: Normalizer settings
            retry: Retry policy for the matching call
            memo_size: Most semantic decisions kept; least recently used
                ones are evicted first
        """
        self.client = client
        self.cache = cache
        self.config = config or NormalizerConfig()
        self.retry = retry or RetryConfig()
        self.memo_size = memo_size
        self._semantic_memo: "OrderedDict[Tuple[str, Tuple[str, ...], str], NormalizedIngredient]" = OrderedDict()

    async def normalize(
        self,
        recipe: Sequence[RecipeLine],
        language: str,
        tenant_id: str,
        vocabulary: Optional[Sequence[str]] = None,
    ) -> NormalizationResult:
        """Normalize every line of a recipe.

        Args:
            recipe: Generated recipe lines
            language: Language of the ingredient names
            tenant_id: Tenant whose vocabulary is matched against
            vocabulary: Known names; loaded from the cache when omitted

        Returns:
            NormalizationResult with one entry per recipe line, in order
        """
        if not recipe:
            return NormalizationResult()
        if not self.config.enabled:
            return NormalizationResult([
                NormalizedIngredient(line.ingredient_name, line.ingredient_name, line.quantity,
                                     0.0, "low", True, "disabled")
                for line in recipe
            ])

        if vocabulary is None:
            vocabulary = await self._load_vocabulary(tenant_id)
        vocab = tuple(vocabulary)
        by_key = {name.casefold(): name for name in vocab}

        resolved: Dict[int, NormalizedIngredient] = {}
        pending: List[int] = []
        for index, line in enumerate(recipe):
            known = by_key.get(line.ingredient_name.strip().casefold())
            if known is not None:
                resolved[index] = NormalizedIngredient(
                    line.ingredient_name, known, line.quantity, 1.0, "high", False, "exact"
                )
            else:
                pending.append(index)

        usage = UsageStats()
        if pending and vocab and self.client is not None:
            semantic, usage = await self._semantic(
                [recipe[i] for i in pending], vocab, by_key, language, tenant_id
            )
            for index in list(pending):
                match = semantic.get(recipe[index].ingredient_name)
                if match is not None:
                    resolved[index] = match
                    pending.remove(index)

        for index in pending:
            resolved[index] = self._fuzzy(recipe[index], vocab)

        return NormalizationResult([resolved[i] for i in range(len(recipe))], usage)

    async def _load_vocabulary(self, tenant_id: str) -> List[str]:
        try:
            return await self.cache.vocabulary(tenant_id)
        except CacheError as e:
            logger.warning("Could not load ingredient vocabulary for tenant %s: %s", tenant_id, e)
            return []

    async def _semantic(
        self,
        lines: List[RecipeLine],
        vocab: Tuple[str, ...],
        by_key: Dict[str, str],
        language: str,
        tenant_id: str,
    ) -> Tuple[Dict[str, NormalizedIngredient], UsageStats]:
        """Tier 1. Returns decisions keyed by original name; omitted names fall through to fuzzy."""
        decisions: Dict[str, NormalizedIngredient] = {}
        unknown: List[RecipeLine] = []
        for line in lines:
            key = (language, vocab, line.ingredient_name)
            cached = self._semantic_memo.get(key)
            if cached is not None:
                self._semantic_memo.move_to_end(key)
                decisions[line.ingredient_name] = NormalizedIngredient(
                    cached.original, cached.normalized, line.quantity,
                    cached.similarity, cached.confidence, cached.is_new, cached.source,
                )
            else:
                unknown.append(line)

        if not unknown:
            return decisions, UsageStats()

        try:
            outcome = await retry_with_backoff(
                lambda: self.client.match_ingredients(unknown, vocab, language, tenant_id),
                self.retry,
                label="ingredient matching",
            )
        except (RetryExhausted, ProviderError, ParseError) as e:
            logger.warning("Semantic ingredient matching unavailable, using fuzzy matching: %s", e)
            return decisions, UsageStats()

        matches, usage = outcome.value
        replies = {match.original.strip().casefold(): match for match in matches}
        for line in unknown:
            reply = replies.get(line.ingredient_name.strip().casefold())
            if reply is None:
                continue
            target = by_key.get(reply.normalized.strip().casefold())
            if reply.confidence in ACCEPTED_CONFIDENCE and target is not None:
                decision = NormalizedIngredient(
                    line.ingredient_name, target, line.quantity,
                    reply.similarity_score, reply.confidence, False, "semantic",
                )
            else:
                decision = _new_ingredient(line, reply.similarity_score, "semantic")
            self._remember((language, vocab, line.ingredient_name), decision)
            decisions[line.ingredient_name] = decision

        return decisions, usage

    def _remember(self, key: Tuple[str, Tuple[str, ...], str], decision: NormalizedIngredient) -> None:
        self._semantic_memo[key] = decision
        self._semantic_memo.move_to_end(key)
        while len(self._semantic_memo) > self.memo_size:
            self._semantic_memo.popitem(last=False)

    def _fuzzy(self, line: RecipeLine, vocab: Sequence[str]) -> NormalizedIngredient:
        """Tier 2: edit-distance match against the vocabulary."""
        match = best_match(line.ingredient_name, vocab, self.config.fuzzy_threshold)
        if not match.accepted:
            return _new_ingredient(line, match.similarity, "fuzzy")
        return NormalizedIngredient(
            original=line.ingredient_name,
            normalized=match.match,
            quantity=line.quantity,
            similarity=match.similarity,
            confidence=match.confidence,
            is_new=False,
            source="fuzzy",
        )
