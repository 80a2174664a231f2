"""
Batch request validation.
"""

from typing import Any, List, Mapping, Sequence, Union

from .errors import ValidationError
from .models import GenerationInput

MAX_NAME_LENGTH = 200

BatchItem = Union[GenerationInput, Mapping[str, Any]]


def _field(item: BatchItem, key: str, attribute: str) -> Any:
    if isinstance(item, GenerationInput):
        return getattr(item, attribute)
    if isinstance(item, Mapping):
        return item.get(key)
    raise ValidationError(f"Unsupported item type: {type(item).__name__}")


def validate_batch(
    tenant_id: str,
    items: Sequence[BatchItem],
    max_batch_size: int,
    supported_languages: Sequence[str],
) -> List[GenerationInput]:
    """Validate a batch request and convert it to generation inputs.

    Items are either GenerationInput objects or mappings with `id`,
    `name` and an optional `language_override`.

    Args:
        tenant_id: Tenant the batch belongs to
        items: Requested items
        max_batch_size: Largest allowed batch
        supported_languages: Allowed override codes

    Returns:
        One GenerationInput per item, in request order

    Raises:
        ValidationError: On the first invalid field, naming the item index
    """
    if not tenant_id or not str(tenant_id).strip():
        raise ValidationError("tenant_id is required")
    if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
        raise ValidationError("items must be a list")
    if not items:
        raise ValidationError("At least one item is required")
    if len(items) > max_batch_size:
        raise ValidationError(f"Maximum {max_batch_size} items allowed per request")

    inputs: List[GenerationInput] = []
    seen = set()
    for index, item in enumerate(items):
        item_id = _field(item, "id", "item_id")
        name = _field(item, "name", "name")
        override = _field(item, "language_override", "language_override")

        if not isinstance(item_id, str) or not item_id.strip():
            raise ValidationError(f"Item at index {index}: id is required and must be a non-empty string")
        if item_id in seen:
            raise ValidationError(f"Item at index {index}: duplicate id '{item_id}'")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(f"Item at index {index}: name is required and must be a non-empty string")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Item at index {index}: name must be at most {MAX_NAME_LENGTH} characters")
        if override is not None and override not in supported_languages:
            allowed = ", ".join(f'"{code}"' for code in supported_languages)
            raise ValidationError(f"Item at index {index}: language_override must be one of {allowed}")

        seen.add(item_id)
        inputs.append(GenerationInput(
            item_id=item_id,
            name=name,
            tenant_id=tenant_id,
            language_override=override,
        ))
    return inputs
