import os
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


DEFAULT_RECOMMENDATION_BOOSTS = {
    "preferred_type": 1.8,
    "common_feature": 1.5,
    "favorite_city": 2.0,
    "searched_property_type": 1.8,
    "searched_listing_type": 1.8,
    "searched_city": 2.0,
}


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def _env_edges(name: str, default: str) -> Tuple[float, ...]:
    return tuple(float(edge) for edge in _env_list(name, default))


class Settings:
    """Application settings and configuration"""

    def __init__(self):
        self.elasticsearch_url = os.getenv("ELASTICSEARCH_URL", "http://localhost:9200")
        self.elasticsearch_username = os.getenv("ELASTICSEARCH_USERNAME")
        self.elasticsearch_password = os.getenv("ELASTICSEARCH_PASSWORD")
        self.elasticsearch_timeout = float(os.getenv("ELASTICSEARCH_TIMEOUT", "10"))

        # Document store
        self.document_store = os.getenv("DOCUMENT_STORE", "elasticsearch")
        self.index_name = os.getenv("PROPERTY_INDEX", "properties")
        self.refresh_on_write = os.getenv("REFRESH_ON_WRITE", "true").lower() == "true"

        # Canonical store seed (JSON with "properties" and "users")
        self.canonical_seed_file = os.getenv("CANONICAL_SEED_FILE")

        # API settings
        self.api_title = "Property Search API"
        self.api_description = "Faceted property search, market analytics, trends and recommendations"
        self.api_version = "1.0.0"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        # Search settings
        self.default_page_size = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
        self.max_page_size = int(os.getenv("MAX_PAGE_SIZE", "100"))
        self.facet_size = int(os.getenv("FACET_SIZE", "20"))
        self.facet_price_edges = _env_edges("FACET_PRICE_EDGES", "100000,200000,500000,1000000")
        self.eligible_statuses = _env_list("ELIGIBLE_STATUSES", "ACTIVE,PENDING")

        # Analytics
        self.distribution_price_edges = _env_edges(
            "DISTRIBUTION_PRICE_EDGES", "100000,200000,300000,500000,750000,1000000,2000000"
        )

        # Indexing
        self.rebuild_batch_size = int(os.getenv("REBUILD_BATCH_SIZE", "100"))

        # Recommendations
        self.recent_search_limit = int(os.getenv("RECENT_SEARCH_LIMIT", "5"))
        self.recommendation_boosts = self._load_recommendation_boosts()

    def _load_recommendation_boosts(self) -> Dict[str, float]:
        """Boost weights from RECOMMENDATION_BOOST_* variables, then the optional JSON file"""
        boosts = {
            name: float(os.getenv(f"RECOMMENDATION_BOOST_{name.upper()}", default))
            for name, default in DEFAULT_RECOMMENDATION_BOOSTS.items()
        }

        boosts_file = os.getenv("RECOMMENDATION_BOOSTS_FILE")
        if not boosts_file:
            return boosts

        try:
            with open(Path(boosts_file), "r", encoding="utf-8") as f:
                overrides = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not load recommendation boosts from %s: %s", boosts_file, e)
            return boosts

        for name, value in overrides.items():
            if name not in DEFAULT_RECOMMENDATION_BOOSTS:
                logger.warning("Ignoring unknown recommendation boost %r", name)
                continue
            boosts[name] = float(value)
        return boosts

    @property
    def elasticsearch_auth(self) -> Optional[Tuple[str, str]]:
        """Get Elasticsearch authentication tuple"""
        if self.elasticsearch_username and self.elasticsearch_password:
            return (self.elasticsearch_username, self.elasticsearch_password)
        return None


# Global settings instance
settings = Settings()
