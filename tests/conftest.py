"""
Shared test doubles and fixtures.
"""

import json
import os
import shutil
import tempfile
from typing import Dict, List, Optional, Tuple, Union

import pytest

from menugen.config.loader import BatchConfig, MenugenConfig, NutritionConfig, RetryConfig
from menugen.sdk.openai_client import (
    DESCRIPTION_ONLY_SYSTEM_PROMPT,
    INGREDIENT_SYSTEM_PROMPT,
    MATCH_SYSTEM_PROMPT,
    PRODUCT_SYSTEM_PROMPT,
    Completion,
    CompletionRequest,
)
from menugen.storage.db import initialize_schema

PRODUCT = "product"
MATCH = "match"
NUTRITION = "nutrition"

DEFAULT_PRODUCT_REPLY = {
    "description": "Burger suculent cu piept de pui la grătar",
    "recipe": [
        {"ingredient": "Piept de pui", "quantity": "150g"},
        {"ingredient": "Chiflă", "quantity": "1 buc"},
    ],
    "nutritional_values": {"calories": 420, "protein": 28, "carbs": 32, "fat": 18},
    "estimated_allergens": ["Chiflă"],
}

Reply = Union[str, dict, Exception]


class FakeProvider:
    """Scripted TextProvider that records every request it receives.

    Replies are queued per request kind (product, match, nutrition); once
    a queue is empty the kind's default reply is used.
    """

    def __init__(self):
        self.calls: List[Tuple[str, CompletionRequest]] = []
        self.queues: Dict[str, List[Reply]] = {PRODUCT: [], MATCH: [], NUTRITION: []}
        self.defaults: Dict[str, Reply] = {
            PRODUCT: DEFAULT_PRODUCT_REPLY,
            MATCH: {"matches": []},
            NUTRITION: {"calories_per_100g": 165, "protein_per_100g": 31.0,
                        "carbs_per_100g": 0.0, "fat_per_100g": 3.6},
        }

    def queue(self, kind: str, *replies: Reply) -> None:
        self.queues[kind].extend(replies)

    def calls_for(self, kind: str, name: Optional[str] = None) -> List[CompletionRequest]:
        """Requests of one kind, optionally only those mentioning `name` in quotes."""
        return [
            request for call_kind, request in self.calls
            if call_kind == kind and (name is None or f'"{name}"' in request.user)
        ]

    @staticmethod
    def _kind(request: CompletionRequest) -> str:
        if request.system in (PRODUCT_SYSTEM_PROMPT, DESCRIPTION_ONLY_SYSTEM_PROMPT):
            return PRODUCT
        if request.system == MATCH_SYSTEM_PROMPT:
            return MATCH
        if request.system == INGREDIENT_SYSTEM_PROMPT:
            return NUTRITION
        raise AssertionError(f"Unexpected system prompt: {request.system[:40]}")

    async def complete(self, request: CompletionRequest) -> Completion:
        kind = self._kind(request)
        self.calls.append((kind, request))
        queue = self.queues[kind]
        reply = queue.pop(0) if queue else self.defaults[kind]
        if isinstance(reply, Exception):
            raise reply
        text = reply if isinstance(reply, str) else json.dumps(reply, ensure_ascii=False)
        return Completion(
            text=text,
            prompt_tokens=100,
            completion_tokens=50,
            request_id=f"req-{len(self.calls)}",
            model=request.model,
        )


def fast_config(**overrides) -> MenugenConfig:
    """Default configuration with every delay set to zero."""
    values = dict(
        retry=RetryConfig(max_retries=3, base_delay_seconds=0.0, max_delay_seconds=0.0),
        batch=BatchConfig(max_batch_size=10, concurrency=3, window_delay_seconds=0.0),
        nutrition=NutritionConfig(enabled=True, batch_size=3, batch_delay_seconds=0.0),
    )
    values.update(overrides)
    return MenugenConfig(**values)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def db_path():
    """Temporary SQLite database with the schema created."""
    temp_dir = tempfile.mkdtemp()
    path = os.path.join(temp_dir, "test.db")
    initialize_schema(path)
    yield path
    shutil.rmtree(temp_dir, ignore_errors=True)
