"""
Menu recommendation engine.

Scores every drink in the catalog against the recognition context with a
set of additive, explainable rules, then assembles a diversified top three:

    1. the best-scoring drink,
    2. the best drink from a different major category (coffee / tea / other),
    3. a random pick among the best popular drinks not yet chosen,

filling any empty slot by score. Each rule that awards points appends a
reason so the kiosk can tell the visitor why a drink was suggested.
"""

import random
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from kiosk.core.types import (
    MenuItem, RecognitionContext, ScoredItem, ServingType,
)

logger = logging.getLogger(__name__)


class Tag:
    """Catalog tags the scoring rules look at."""
    CAFFEINE = "caffeine"
    CAFFEINE_COFFEE = "caffeine-coffee"
    HIGH_CAFFEINE = "high-caffeine"
    NON_CAFFEINE = "non-caffeine"
    DECAF_AVAILABLE = "decaf-available"
    BOLD_COFFEE = "bold-coffee"
    SMOOTH_COFFEE = "smooth-coffee"
    COFFEE_FLAVOR = "coffee-flavor"
    TEA = "tea"
    SWEET = "sweet"
    EXTRA_SWEET = "extra-sweet"
    SOUR_SWEET = "sour-sweet"
    DESSERT_DRINK = "dessert-drink"
    CREAMY = "creamy"
    FRUIT = "fruit"
    CLEAN = "clean"
    POPULAR = "popular"
    CLASSIC = "classic"


COFFEE_TAGS = (Tag.CAFFEINE, Tag.CAFFEINE_COFFEE, Tag.BOLD_COFFEE,
               Tag.SMOOTH_COFFEE, Tag.COFFEE_FLAVOR)


class Category:
    COFFEE = "coffee"
    TEA = "tea"
    OTHER = "other"


def major_category(item: MenuItem) -> str:
    """Coarse grouping used to diversify the second pick."""
    if item.has_any(*COFFEE_TAGS):
        return Category.COFFEE
    if item.has_any(Tag.TEA):
        return Category.TEA
    return Category.OTHER


@dataclass
class RecommendationConfig:
    """Scoring weights and selection settings."""
    top_n: int = 3
    wildcard_pool_size: int = 5
    iced_min_temperature_c: float = 20.0

    weather_bonus: int = 25
    time_bonus: int = 20
    evening_high_caffeine_penalty: int = -30
    group_bonus: int = 15
    elderly_bonus: int = 25
    elderly_penalty: int = -15
    minor_bonus: int = 25
    minor_penalty: int = -30
    young_bonus: int = 15
    young_age_limit: float = 30.0
    gender_bonus: int = 10

    @classmethod
    def from_dict(cls, config: dict) -> "RecommendationConfig":
        """Create config from dictionary. Weights live under ``weights``."""
        weights = config.get("weights", {})
        defaults = cls()
        return cls(
            top_n=config.get("top_n", defaults.top_n),
            wildcard_pool_size=config.get("wildcard_pool_size", defaults.wildcard_pool_size),
            iced_min_temperature_c=config.get("iced_min_temperature_c",
                                              defaults.iced_min_temperature_c),
            **{name: weights.get(name, getattr(defaults, name)) for name in (
                "weather_bonus", "time_bonus", "evening_high_caffeine_penalty",
                "group_bonus", "elderly_bonus", "elderly_penalty", "minor_bonus",
                "minor_penalty", "young_bonus", "young_age_limit", "gender_bonus",
            )},
        )


def preferred_serving(context: RecognitionContext, config: RecommendationConfig) -> ServingType:
    """Serving type suggested by the weather, then the temperature."""
    if context.weather_condition.is_wet:
        return ServingType.HOT
    return temperature_serving(context.temperature_c, config)


def temperature_serving(temperature_c: float, config: RecommendationConfig) -> ServingType:
    if temperature_c >= config.iced_min_temperature_c:
        return ServingType.ICED
    return ServingType.HOT


# =============================================================================
# Scoring
# =============================================================================

def score_item(item: MenuItem, context: RecognitionContext,
               config: Optional[RecommendationConfig] = None) -> ScoredItem:
    """Apply every scoring rule to one item, in a fixed order."""
    config = config or RecommendationConfig()
    aggregates = context.aggregates
    hour = context.now.hour
    score = 0
    reasons = []

    # Weather / temperature
    if context.weather_condition.is_wet:
        if item.supports(ServingType.HOT):
            score += config.weather_bonus
            reasons.append("Something warm for a gloomy day")
    else:
        wanted = temperature_serving(context.temperature_c, config)
        if item.supports(wanted):
            score += config.weather_bonus
            reasons.append("Nice and cold for a hot day" if wanted is ServingType.ICED
                           else "Something warm for a chilly day")

    # Time of day
    if 7 <= hour < 11:
        if item.has_any(Tag.CAFFEINE, Tag.HIGH_CAFFEINE):
            score += config.time_bonus
            reasons.append("A morning caffeine boost")
    elif 14 <= hour < 17:
        if item.has_any(Tag.SWEET, Tag.DESSERT_DRINK):
            score += config.time_bonus
            reasons.append("A sweet pick-me-up for a sleepy afternoon")
    elif hour >= 18:
        if item.has_any(Tag.NON_CAFFEINE, Tag.DECAF_AVAILABLE):
            score += config.time_bonus
            reasons.append("Something easy for a relaxing evening")
        if item.has_any(Tag.HIGH_CAFFEINE):
            score += config.evening_high_caffeine_penalty

    # Group size
    group_size = len(context.visitors)
    if group_size > 1 and item.has_any(Tag.POPULAR, Tag.CLASSIC):
        score += config.group_bonus
        reasons.append(f"A crowd-pleaser for your group of {group_size}")

    # Age cohort
    if aggregates.has_elderly_majority:
        if item.has_any(Tag.SMOOTH_COFFEE, Tag.TEA):
            score += config.elderly_bonus
            reasons.append("A gentle drink our senior guests enjoy")
        if item.has_any(Tag.HIGH_CAFFEINE, Tag.EXTRA_SWEET):
            score += config.elderly_penalty
    elif aggregates.has_minor:
        if item.has_any(Tag.NON_CAFFEINE) and item.has_any(Tag.SWEET):
            score += config.minor_bonus
            reasons.append("Sweet and caffeine-free, great with kids")
        if item.has_any(Tag.HIGH_CAFFEINE):
            score += config.minor_penalty
    elif aggregates.average_age < config.young_age_limit:
        if item.has_any(Tag.DESSERT_DRINK, Tag.POPULAR, Tag.SOUR_SWEET):
            score += config.young_bonus
            reasons.append("A trending favorite with younger guests")

    # Gender lean
    if aggregates.dominant_gender == "female":
        if item.has_any(Tag.SOUR_SWEET, Tag.CREAMY, Tag.FRUIT):
            score += config.gender_bonus
            reasons.append("A flavor many of our female guests love")
    elif aggregates.dominant_gender == "male":
        if item.has_any(Tag.BOLD_COFFEE, Tag.CLEAN):
            score += config.gender_bonus
            reasons.append("A flavor many of our male guests love")

    return ScoredItem(item=item, score=float(score), reasons=tuple(reasons))


def rank(catalog: Sequence[MenuItem], context: RecognitionContext,
         config: Optional[RecommendationConfig] = None) -> List[ScoredItem]:
    """Score every drink and sort by score, keeping catalog order on ties."""
    config = config or RecommendationConfig()
    scored = [score_item(item, context, config) for item in catalog if not item.is_food]
    return sorted(scored, key=lambda s: -s.score)


# =============================================================================
# Selection
# =============================================================================

def recommend(catalog: Sequence[MenuItem], context: RecognitionContext,
              rng: Optional[random.Random] = None,
              config: Optional[RecommendationConfig] = None) -> List[ScoredItem]:
    """Diversified top-N recommendation.

    Args:
        catalog: Full menu; food items are ignored
        context: Visitors, weather and time for this request
        rng: Random source for the popular wildcard slot
        config: Weights and selection settings

    Returns:
        Up to ``top_n`` items with resolved serving type and image. Empty
        when there are no visitors or no drinks.
    """
    config = config or RecommendationConfig()
    rng = rng or random.Random()

    if not context.visitors:
        return []

    ranked = rank(catalog, context, config)
    if not ranked:
        logger.warning("No eligible drinks in catalog")
        return []

    picks = [ranked[0]]
    picked_ids = {ranked[0].id}

    top_category = major_category(ranked[0].item)
    for candidate in ranked[1:]:
        if major_category(candidate.item) != top_category:
            picks.append(candidate)
            picked_ids.add(candidate.id)
            break

    pool = [s for s in ranked
            if s.item.has_any(Tag.POPULAR) and s.id not in picked_ids][:config.wildcard_pool_size]
    if pool and len(picks) < config.top_n:
        wildcard = rng.choice(pool)
        picks.append(wildcard)
        picked_ids.add(wildcard.id)

    for candidate in ranked:
        if len(picks) >= config.top_n:
            break
        if candidate.id not in picked_ids:
            picks.append(candidate)
            picked_ids.add(candidate.id)

    preferred = preferred_serving(context, config)
    results = []
    for pick in picks[:config.top_n]:
        serving = preferred
        if not pick.item.supports(preferred) and pick.item.serving_types:
            serving = pick.item.serving_types[0]
        results.append(pick.resolved(serving))

    logger.debug("Recommended: %s",
                 ", ".join(f"{r.id}({r.score:.0f})" for r in results))
    return results


def choose_featured(results: Sequence[ScoredItem],
                    rng: Optional[random.Random] = None) -> Optional[ScoredItem]:
    """Pick the single recommendation the kiosk puts on screen."""
    if not results:
        return None
    return (rng or random.Random()).choice(list(results))


class RecommendationEngine:
    """Binds a catalog, weights and a random source for repeated requests."""

    def __init__(self, catalog: Sequence[MenuItem],
                 config: Optional[RecommendationConfig] = None,
                 rng: Optional[random.Random] = None):
        self._catalog = tuple(catalog)
        self.config = config or RecommendationConfig()
        self._rng = rng or random.Random()

    def recommend(self, context: RecognitionContext) -> List[ScoredItem]:
        return recommend(self._catalog, context, self._rng, self.config)

    def choose_featured(self, results: Sequence[ScoredItem]) -> Optional[ScoredItem]:
        return choose_featured(results, self._rng)

    @property
    def catalog(self):
        return self._catalog
