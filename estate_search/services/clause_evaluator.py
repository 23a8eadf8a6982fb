"""
Evaluate QuerySpec clauses against a single source document.

``evaluate`` returns ``None`` when the document does not match and a score
otherwise. Scores approximate the engine's: a matching term scores its boost
(1.0 by default), full text scores the best field's weight times the number
of matched query tokens, and a boolean sums its ``must`` and matching
``should`` clauses. Filter and ``must_not`` clauses never add to the score.
"""

import math
import re
import unicodedata
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..models.query_spec import Bool, Clause, FullText, GeoDistance, Match, Range, Term, Terms
from .date_buckets import parse_datetime

EARTH_RADIUS_KM = 6371.0088

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def get_path(source: Dict[str, Any], path: str) -> Any:
    if path.endswith(".keyword"):
        path = path[: -len(".keyword")]
    value: Any = source
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _values(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def fold(text: str) -> str:
    """Lowercase and strip diacritics, like the index's folding analyzer"""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall(fold(text))


def allowed_edits(token: str) -> int:
    """Edit tolerance of the engine's AUTO fuzziness"""
    if len(token) <= 2:
        return 0
    if len(token) <= 5:
        return 1
    return 2


def edit_distance(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def _token_matches(query_token: str, field_tokens: Iterable[str], fuzzy: bool) -> bool:
    limit = allowed_edits(query_token) if fuzzy else 0
    for token in field_tokens:
        if token == query_token:
            return True
        if limit and abs(len(token) - len(query_token)) <= limit and edit_distance(token, query_token) <= limit:
            return True
    return False


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _in_range(clause: Range, value: Any) -> bool:
    bounds = [(clause.gte, lambda v, b: v >= b), (clause.lte, lambda v, b: v <= b), (clause.lt, lambda v, b: v < b)]
    try:
        for bound, check in bounds:
            if bound is None:
                continue
            if isinstance(bound, datetime):
                if not check(parse_datetime(value), parse_datetime(bound)):
                    return False
            elif not check(value, bound):
                return False
    except (TypeError, ValueError):
        return False
    return True


def evaluate(clause: Clause, source: Dict[str, Any]) -> Optional[float]:
    if isinstance(clause, Term):
        expected = _plain(clause.value)
        if expected in _values(get_path(source, clause.field)):
            return clause.boost or 1.0
        return None

    if isinstance(clause, Terms):
        expected = {_plain(v) for v in clause.values}
        if any(v in expected for v in _values(get_path(source, clause.field))):
            return clause.boost or 1.0
        return None

    if isinstance(clause, Range):
        value = get_path(source, clause.field)
        if value is None or not _in_range(clause, value):
            return None
        return 1.0

    if isinstance(clause, GeoDistance):
        point = get_path(source, clause.field)
        if not point:
            return None
        distance = haversine_km(clause.lat, clause.lon, point["lat"], point["lon"])
        return 1.0 if distance <= clause.distance_km else None

    if isinstance(clause, FullText):
        return _evaluate_full_text(clause, source)

    if isinstance(clause, Match):
        return _evaluate_match(clause, source)

    if isinstance(clause, Bool):
        return _evaluate_bool(clause, source)

    raise TypeError(f"Unsupported clause: {type(clause).__name__}")


def matches(clause: Clause, source: Dict[str, Any]) -> bool:
    return evaluate(clause, source) is not None


def _evaluate_full_text(clause: FullText, source: Dict[str, Any]) -> Optional[float]:
    query_tokens = tokenize(clause.query)
    if not query_tokens:
        return None
    fuzzy = clause.fuzziness.upper() == "AUTO"
    best = 0.0
    for path, weight in clause.fields:
        field_tokens: List[str] = []
        for value in _values(get_path(source, path)):
            field_tokens.extend(tokenize(str(value)))
        matched = sum(1 for token in query_tokens if _token_matches(token, field_tokens, fuzzy))
        best = max(best, matched * weight)
    return best or None


def _evaluate_match(clause: Match, source: Dict[str, Any]) -> Optional[float]:
    query_tokens = tokenize(clause.query)
    if not query_tokens:
        return None
    field_tokens = set()
    for value in _values(get_path(source, clause.field)):
        field_tokens.update(tokenize(str(value)))
    matched = sum(1 for token in query_tokens if token in field_tokens)
    required = len(query_tokens) if clause.operator == "and" else 1
    return float(matched) if matched >= required else None


def _evaluate_bool(clause: Bool, source: Dict[str, Any]) -> Optional[float]:
    score = 0.0
    for sub in clause.must:
        sub_score = evaluate(sub, source)
        if sub_score is None:
            return None
        score += sub_score
    for sub in clause.filter:
        if not matches(sub, source):
            return None
    for sub in clause.must_not:
        if matches(sub, source):
            return None

    should_matched = 0
    for sub in clause.should:
        sub_score = evaluate(sub, source)
        if sub_score is not None:
            should_matched += 1
            score += sub_score

    required = clause.minimum_should_match
    if required is None:
        required = 1 if clause.should and not clause.must and not clause.filter else 0
    if should_matched < required:
        return None
    return score
