import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config.settings import Settings, settings as default_settings
from ..exceptions import QueryValidationError, UserNotFoundError
from ..models.documents import PropertyView, TRACKED_FEATURES
from ..models.query import SavedSearch, UserProfile
from ..models.query_spec import Bool, Clause, QuerySpec, Range, Term, Terms
from ..models.schemas import RecommendationAddress, RecommendationItem
from .canonical_store import CanonicalStore
from .clause_evaluator import matches
from .document_store import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Based on your preferences"
COMMON_FEATURE_THRESHOLD = 0.5


@dataclass(frozen=True)
class BoostSignal:
    """One non-exclusionary scoring clause and how to explain a hit it matched"""
    name: str
    clause: Clause
    weight: float
    reason: Callable[[Dict[str, Any]], str]


def _similar_type(source: Dict[str, Any]) -> str:
    return f"Similar {source['property_type'].lower()} properties"


def _popular_in(source: Dict[str, Any]) -> str:
    return f"Popular in {source['address']['city']}"


def _searched_listing(source: Dict[str, Any]) -> str:
    return f"Matches your recent {source['listing_type'].lower()} searches"


def _preferred_features(source: Dict[str, Any]) -> str:
    return "Matches your preferred features"


def _unique(values) -> List[Any]:
    return list(dict.fromkeys(v for v in values if v))


def common_features(favorites: Sequence[PropertyView], threshold: float = COMMON_FEATURE_THRESHOLD) -> List[str]:
    """Boolean features present in at least ``threshold`` of the favourites"""
    if not favorites:
        return []
    counts = {name: 0 for name in TRACKED_FEATURES}
    for favorite in favorites:
        if favorite.features is None:
            continue
        for name in TRACKED_FEATURES:
            if getattr(favorite.features, name) is True:
                counts[name] += 1
    return [name for name in TRACKED_FEATURES if counts[name] / len(favorites) >= threshold]


def recent_searches(profile: UserProfile, limit: int) -> List[SavedSearch]:
    return sorted(profile.recent_searches, key=lambda s: s.updated_at, reverse=True)[:limit]


def strongest_signal(signals: Sequence[BoostSignal], source: Dict[str, Any]) -> Optional[BoostSignal]:
    """Matching signal with the highest weight; the first declared wins ties"""
    best: Optional[BoostSignal] = None
    for signal in signals:
        if (best is None or signal.weight > best.weight) and matches(signal.clause, source):
            best = signal
    return best


class RecommendationService:
    """Personalised listings from a user's preferences, favourites and recent searches"""

    def __init__(self, store: DocumentStore, canonical: CanonicalStore, config: Settings = default_settings):
        self.store = store
        self.canonical = canonical
        self.index_name = config.index_name
        self.eligible_statuses = tuple(config.eligible_statuses)
        self.max_limit = config.max_page_size
        self.recent_search_limit = config.recent_search_limit
        self.boosts = dict(config.recommendation_boosts)

    def build_signals(self, profile: UserProfile) -> List[BoostSignal]:
        signals: List[BoostSignal] = []
        preferences = profile.preferences

        if preferences and preferences.preferred_property_types:
            types = _unique(t.value for t in preferences.preferred_property_types)
            signals.append(BoostSignal(
                "preferred_type",
                Terms("property_type", tuple(types), boost=self.boosts["preferred_type"]),
                self.boosts["preferred_type"],
                _similar_type,
            ))

        for name in common_features(profile.favorites):
            signals.append(BoostSignal(
                f"feature:{name}",
                Term(f"features.{name}", True, boost=self.boosts["common_feature"]),
                self.boosts["common_feature"],
                _preferred_features,
            ))

        favorite_cities = _unique(f.address.city for f in profile.favorites if f.address)
        if favorite_cities:
            signals.append(BoostSignal(
                "favorite_city",
                Terms("address.city.keyword", tuple(favorite_cities), boost=self.boosts["favorite_city"]),
                self.boosts["favorite_city"],
                _popular_in,
            ))

        criteria = [s.criteria for s in recent_searches(profile, self.recent_search_limit)]
        searched_types = _unique(t.value for c in criteria for t in c.property_types)
        searched_listings = _unique(t.value for c in criteria for t in c.listing_types)
        searched_cities = _unique(c.city for c in criteria)

        if searched_types:
            signals.append(BoostSignal(
                "searched_property_type",
                Terms("property_type", tuple(searched_types), boost=self.boosts["searched_property_type"]),
                self.boosts["searched_property_type"],
                _similar_type,
            ))
        if searched_listings:
            signals.append(BoostSignal(
                "searched_listing_type",
                Terms("listing_type", tuple(searched_listings), boost=self.boosts["searched_listing_type"]),
                self.boosts["searched_listing_type"],
                _searched_listing,
            ))
        if searched_cities:
            signals.append(BoostSignal(
                "searched_city",
                Terms("address.city.keyword", tuple(searched_cities), boost=self.boosts["searched_city"]),
                self.boosts["searched_city"],
                _popular_in,
            ))
        return signals

    def build_spec(self, profile: UserProfile, signals: Sequence[BoostSignal], limit: int) -> QuerySpec:
        filters: List[Clause] = [Terms("status", self.eligible_statuses)]
        preferences = profile.preferences
        if preferences and (preferences.price_range_min is not None or preferences.price_range_max is not None):
            filters.append(Range("price", gte=preferences.price_range_min, lte=preferences.price_range_max))

        favorite_ids = tuple(_unique(f.id for f in profile.favorites))
        must_not = (Terms("id", favorite_ids),) if favorite_ids else ()

        return QuerySpec(
            query=Bool(
                filter=tuple(filters),
                should=tuple(signal.clause for signal in signals),
                must_not=must_not,
            ),
            size=limit,
        )

    def to_item(self, hit: Dict[str, Any], signals: Sequence[BoostSignal]) -> RecommendationItem:
        source = hit["_source"]
        images = source.get("images") or []
        main_image = next((image for image in images if image.get("is_main")), images[0] if images else None)
        signal = strongest_signal(signals, source)

        return RecommendationItem(
            id=source["id"],
            title=source["title"],
            price=source["price"],
            currency=source["currency"],
            property_type=source["property_type"],
            listing_type=source["listing_type"],
            image=main_image["url"] if main_image else None,
            address=RecommendationAddress(
                city=source["address"].get("city", ""),
                country=source["address"].get("country", ""),
            ),
            score=hit.get("_score") or 0.0,
            match_reason=signal.reason(source) if signal else DEFAULT_REASON,
        )

    async def get_recommendations(self, user_id: str, limit: int = 10) -> List[RecommendationItem]:
        if not 1 <= limit <= self.max_limit:
            raise QueryValidationError.single("limit", f"must be between 1 and {self.max_limit}")

        profile = await self.canonical.get_user_profile(user_id)
        if profile is None:
            raise UserNotFoundError(user_id)

        signals = self.build_signals(profile)
        spec = self.build_spec(profile, signals, limit)
        response = await self.store.search(self.index_name, spec)

        favorite_ids = {f.id for f in profile.favorites}
        items = [
            self.to_item(hit, signals)
            for hit in response["hits"]["hits"]
            if hit["_source"]["id"] not in favorite_ids
        ]
        logger.debug("Recommended %d properties for user %s using %d signals", len(items), user_id, len(signals))
        return items
