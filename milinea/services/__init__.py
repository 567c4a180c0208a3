"""Services layer - Application orchestration.

This module contains the application services that orchestrate the
flow of data through adapters to fulfill use cases.

Available services:
- ConversationService: One chat turn end to end
- TripIntentService: Dual extraction with arbitration
- PlaceResolver: Multi-strategy geocoding of place labels
- RouteMatchingEngine: Single-line trip search and ranking
"""

from .chat_service import ConversationService
from .cost_models import GlobalSpeedCostModel, PerLineSpeedCostModel, get_cost_model
from .intent_service import TripIntentService, arbitrate
from .place_resolver import PlaceResolver
from .route_matcher import RouteMatchingEngine, threshold_schedule

__all__ = [
    "ConversationService",
    "TripIntentService",
    "arbitrate",
    "PlaceResolver",
    "RouteMatchingEngine",
    "threshold_schedule",
    "GlobalSpeedCostModel",
    "PerLineSpeedCostModel",
    "get_cost_model",
]
