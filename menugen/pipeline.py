"""
Wiring for the generation pipeline.

Builds explicitly owned service objects over the SQLite stores; callers
own their lifetimes and tests can swap any collaborator.
"""

from dataclasses import dataclass
from typing import Optional

from menugen.config.loader import MenugenConfig
from menugen.core.batch import BatchOrchestrator
from menugen.core.cache import CacheStore
from menugen.core.cost_governor import CostGovernor
from menugen.core.generator import SingleItemGenerator
from menugen.core.language import LanguageDetector
from menugen.core.normalizer import IngredientNormalizer
from menugen.core.nutrition import NutritionEnhancer
from menugen.core.usage import UsageLogger
from menugen.sdk.openai_client import GenerationClient, TextProvider
from menugen.storage.db import DEFAULT_DB_PATH
from menugen.storage.repository import SQLiteIngredientStore, SQLiteItemStore, SQLiteUsageLedger


@dataclass
class Pipeline:
    orchestrator: BatchOrchestrator
    generator: SingleItemGenerator
    client: GenerationClient
    cache: CacheStore
    governor: CostGovernor
    ledger: SQLiteUsageLedger
    detector: LanguageDetector


def build_pipeline(
    provider: TextProvider,
    config: Optional[MenugenConfig] = None,
    db_path: str = DEFAULT_DB_PATH,
) -> Pipeline:
    """Assemble every pipeline component over one SQLite database.

    The schema must already exist (see `initialize_schema`).
    """
    config = config or MenugenConfig()
    ledger = SQLiteUsageLedger(db_path)
    cache = CacheStore(SQLiteItemStore(db_path))
    governor = CostGovernor(ledger, config.budget)
    client = GenerationClient(provider, config.provider, UsageLogger(ledger))
    detector = LanguageDetector(config.language.default, config.language.supported)
    generator = SingleItemGenerator(
        client=client,
        cache=cache,
        governor=governor,
        detector=detector,
        normalizer=IngredientNormalizer(client, cache, config.normalizer, config.retry),
        enhancer=NutritionEnhancer(client, SQLiteIngredientStore(db_path), config.nutrition, config.retry),
        retry=config.retry,
    )
    orchestrator = BatchOrchestrator(generator, cache, governor, config)
    return Pipeline(
        orchestrator=orchestrator,
        generator=generator,
        client=client,
        cache=cache,
        governor=governor,
        ledger=ledger,
        detector=detector,
    )
