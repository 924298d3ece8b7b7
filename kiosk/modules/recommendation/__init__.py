"""Menu catalog and recommendation engine."""
from .catalog import load_catalog, models_to_preload
from .engine import RecommendationConfig, RecommendationEngine, recommend

__all__ = ["load_catalog", "models_to_preload", "RecommendationConfig",
           "RecommendationEngine", "recommend"]
