"""
HTTP client reuse for the Mistral API.

One client per (api_key, model) is kept for the life of the process so an
interactive run reuses its connection across asks and refinements.
"""

from typing import Any, Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from mistralai import Mistral  # pragma: no cover


_client_cache: Dict[str, Any] = {}


def get_cached_client(api_key: str, model: str) -> "Mistral":
    """
    Get or create a cached Mistral client instance.

    Args:
        api_key: Mistral API key
        model: Model name (part of the cache key)

    Returns:
        Cached or newly created Mistral client instance
    """
    # Hash api_key so the raw key is not kept as a dict key
    cache_key = f"{hash(api_key)}:{model}"

    if cache_key not in _client_cache:
        from mistralai import Mistral
        _client_cache[cache_key] = Mistral(api_key=api_key)

    return _client_cache[cache_key]


def clear_client_cache() -> None:
    """Drop all cached clients."""
    _client_cache.clear()
