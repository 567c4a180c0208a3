"""Cache adapters - Implementations of the persistent store ports.

Available implementations:
- JsonPlaceCache: Bounded place cache with a JSON snapshot
- JsonUnresolvedTerms: Tracker of labels that failed resolution
"""

from .place_cache import JsonPlaceCache
from .unresolved_terms import JsonUnresolvedTerms

__all__ = ["JsonPlaceCache", "JsonUnresolvedTerms"]
