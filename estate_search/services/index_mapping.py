from typing import Any, Dict

from ..models.documents import TRACKED_FEATURES


def property_index_definition() -> Dict[str, Any]:
    """Settings and field mappings for the property index"""
    features = {name: {"type": "boolean"} for name in TRACKED_FEATURES}
    features["build_year"] = {"type": "integer"}
    features["energy_rating"] = {"type": "keyword"}

    return {
        "settings": {
            "number_of_shards": 1,
            "number_of_replicas": 1,
            "analysis": {
                "analyzer": {
                    "folding": {
                        "type": "custom",
                        "tokenizer": "standard",
                        "filter": ["lowercase", "asciifolding"],
                    }
                }
            },
        },
        "mappings": {
            "properties": {
                "id": {"type": "keyword"},
                "title": {
                    "type": "text",
                    "analyzer": "folding",
                    "fields": {"keyword": {"type": "keyword"}},
                },
                "description": {"type": "text", "analyzer": "folding"},
                "price": {"type": "double"},
                "currency": {"type": "keyword"},
                "property_type": {"type": "keyword"},
                "listing_type": {"type": "keyword"},
                "status": {"type": "keyword"},
                "bedrooms": {"type": "integer"},
                "bathrooms": {"type": "integer"},
                "floor_area": {"type": "double"},
                "address": {
                    "properties": {
                        "street": {"type": "text", "analyzer": "folding"},
                        "city": {
                            "type": "text",
                            "analyzer": "folding",
                            "fields": {"keyword": {"type": "keyword"}},
                        },
                        "postcode": {"type": "keyword"},
                        "county": {"type": "keyword"},
                        "country": {"type": "keyword"},
                    }
                },
                "location": {"type": "geo_point"},
                "features": {"properties": features},
                "amenities": {"type": "keyword"},
                "images": {
                    "properties": {
                        "url": {"type": "keyword"},
                        "is_main": {"type": "boolean"},
                    }
                },
                "owner": {
                    "properties": {
                        "id": {"type": "keyword"},
                        "name": {"type": "text"},
                        "company": {"type": "text"},
                    }
                },
                "view_count": {"type": "integer"},
                "created_at": {"type": "date"},
                "updated_at": {"type": "date"},
                "published_at": {"type": "date"},
            }
        },
    }
