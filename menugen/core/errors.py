"""
Error taxonomy for the generation pipeline.

Batch-level errors abort a request before any side effect; item-level
errors are retried or degraded inside the pipeline.
"""

from typing import Dict


class MenugenError(Exception):
    """Base class for all pipeline errors."""
    code = "INTERNAL_ERROR"

    def to_dict(self) -> Dict[str, str]:
        """Structured error payload for callers that answer with JSON."""
        return {"error": str(self), "code": self.code}


class ValidationError(MenugenError):
    """Raised when a batch request is malformed or oversized."""
    code = "INVALID_INPUT"


class CostLimitError(MenugenError):
    """Raised when a tenant has reached its daily cost ceiling."""
    code = "COST_LIMIT_REACHED"

    def __init__(self, tenant_id: str, spent: float, ceiling: float):
        super().__init__(
            f"Daily cost limit of ${ceiling:.4f} reached for tenant {tenant_id}. "
            f"Current spend: ${spent:.4f}"
        )
        self.tenant_id = tenant_id
        self.spent = spent
        self.ceiling = ceiling


class ProviderError(MenugenError):
    """Raised when the text-generation provider call fails in transport."""
    code = "PROVIDER_ERROR"

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class ParseError(MenugenError):
    """Raised when a provider reply does not match the expected schema."""
    code = "PARSE_ERROR"


class CacheError(MenugenError):
    """Raised when the persistent store fails a read or write."""
    code = "CACHE_ERROR"
