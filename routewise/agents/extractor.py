"""
Request extraction for the chat-turn workflow.

Turns a free-text travel message (plus the trip's prior RouteState) into an
ordered list of SegmentRequests and the driving preferences it mentions.
Extraction strategies are tried in a fixed priority order and the first one
that yields a chain of at least two stops wins.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..schemas.route import Preferences, SegmentRequest, chain_requests
from .state import RouteState, merge_trip_details, stored_chain

logger = logging.getLogger(__name__)

MILES_TO_KM = 1.609344

MONTHS = {
    "january", "february", "march", "april", "may", "june", "july", "august",
    "september", "october", "november", "december",
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept", "oct", "nov", "dec",
}

STOPWORDS = {
    "the", "and", "trip", "route", "road", "roads", "a", "an", "to", "from", "via", "with",
    "visit", "visiting", "drive", "driving", "day", "days", "night", "nights", "week", "weeks",
    "hour", "hours", "km", "kms", "miles", "plan", "planning", "my", "our", "we", "i", "me",
    "you", "it", "this", "that", "then", "also", "please", "want", "would", "like", "love",
    "stop", "stops", "itinerary", "through", "segment", "segments", "next", "finally",
    "first", "after", "before", "there", "here", "home", "back", "can", "could", "should",
    "let", "lets", "let's", "i'd", "i'm", "we'd", "we're", "show", "help", "make", "need",
    "today", "tomorrow", "weekend", "summer", "winter", "spring", "autumn", "fall",
    "north", "south", "east", "west", "max", "maximum", "daily", "per", "only", "daytime",
    "tolls", "highways", "ferries", "split", "break", "optimize", "optimise", "hi", "hello",
}

# Clauses that end a location phrase ("Bariloche in July", "Rome for 3 days")
TRAILING_CLAUSE = re.compile(
    r"\s+(?:in|during|for|with|and then|then|by|before|after|starting|departing|leaving|"
    r"no more than|not more than|max(?:imum)?|at most|up to|avoid(?:ing)?|without|driving|"
    r"because|but|so|while|next|this|tomorrow|around|using|please)\b.*$",
    re.IGNORECASE,
)

# "on"/"over" only end a phrase before a date ("Bariloche on July 5"), not in "Southend on Sea"
DATE_CLAUSE = re.compile(
    r"\s+(?:on|over)\s+(?:the\s+)?(?:\d|(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\b|"
    r"(?:mon|tues|wednes|thurs|fri|satur|sun)day\b|weekend\b).*$",
    re.IGNORECASE,
)

# Connectives that open a sentence ("Then Prague and Vienna")
LEADING_CONNECTIVE = re.compile(r"^(?:(?:and\s+)?then|and|next|finally|also|plus|after\s+that)\s+", re.IGNORECASE)

NUMBER = re.compile(r"^\d+(?:[.,]\d+)?(?:st|nd|rd|th)?$", re.IGNORECASE)
EDGE_PUNCTUATION = " \t\n\"'`()[]{}.,;:!?-"

# Separators inside an enumerated list of places
LIST_SEPARATOR = re.compile(r"\s*(?:,|;|&|->|→|\band then\b|\bthen\b|\band\b)\s*", re.IGNORECASE)

ROUTE_INTENT = re.compile(
    r"plan.*route|calculate.*route|driving.*route|road\s*trip|itinerary|route.*planning|"
    r"driving.*from|drive.*to|car.*trip|driving.*trip|route.*calculation|visit|"
    r"travel.*to|\bgo(?:ing)?\s+to\b|trip.*to|depart|from\s+\S+.*\s+to\s+",
    re.IGNORECASE,
)

DEPARTURE = re.compile(
    r"\b(?:depart(?:ing|s|ure)?|start(?:ing|s)?|leav(?:ing|es?)|set(?:ting)?\s+off|begin(?:ning)?|based)"
    r"\s+(?:from|in|at|out\s+of)\s+(?P<origin>[^,.;!?\n]+)",
    re.IGNORECASE,
)

BREAKDOWN_INTENT = re.compile(
    r"\b(?:split|break\s*(?:it|this|them|the\s+\w+)?\s*down|breakdown|optimi[sz]e|"
    r"re-?calculate|recompute|refine|shorter\s+(?:segments|legs|days)|divide)\b",
    re.IGNORECASE,
)


# ============================================================================
# LOCATION TOKENS
# ============================================================================

def _is_noise(token: str) -> bool:
    words = token.lower().split()
    return all(NUMBER.match(w) or w in MONTHS or w in STOPWORDS for w in words)


def clean_location(raw: Optional[str]) -> Optional[str]:
    """
    Normalize one candidate location phrase.

    Leading connectives ("then", "and"), trailing clauses and surrounding
    punctuation are stripped; lower-case names are title-cased. Returns None
    for numbers, month names, stopwords and fragments shorter than 3 characters.
    """
    if not raw:
        return None

    token = LEADING_CONNECTIVE.sub("", raw.strip(EDGE_PUNCTUATION))
    token = DATE_CLAUSE.sub("", TRAILING_CLAUSE.sub("", " " + token)).strip(EDGE_PUNCTUATION)
    token = re.sub(r"^(?:the|a|an)\s+", "", token, flags=re.IGNORECASE)
    token = re.sub(r"\s+", " ", token).strip(EDGE_PUNCTUATION)

    if len(token) < 3 or _is_noise(token):
        return None

    if token.islower():
        token = " ".join(word.capitalize() for word in token.split())
    return token


def filter_locations(tokens: List[Optional[str]]) -> List[str]:
    """
    Clean, deduplicate (case-insensitively, first seen wins) and drop any
    token contained in a longer retained token.
    """
    unique: List[str] = []
    seen = set()
    for raw in tokens:
        token = clean_location(raw)
        if token and token.lower() not in seen:
            seen.add(token.lower())
            unique.append(token)

    return [
        token for token in unique
        if not any(token.lower() in other.lower() and token.lower() != other.lower() for other in unique)
    ]


# ============================================================================
# PREFERENCES
# ============================================================================

_NUM = r"(\d+(?:\.\d+)?)"
_HOURS = r"(?:hours?|hrs?|h)\b"
_KM = r"(?:km|kms|kilomet(?:er|re)s?)\b"
_MILES = r"(?:mi|miles?)\b"
_LIMIT = r"(?:no\s+more\s+than|not\s+more\s+than|max(?:imum)?(?:\s+of)?|at\s+most|up\s+to|under|limit(?:ed)?\s+(?:of|to))"
_PER_DAY = r"(?:max(?:imum)?|per\s+day|a\s+day|daily|each\s+day|/\s*day)"


def _limit_patterns(unit: str) -> Tuple[re.Pattern, ...]:
    return (
        re.compile(rf"{_LIMIT}\s*(?:of\s+)?(?:driving\s+)?{_NUM}\s*{unit}", re.IGNORECASE),
        re.compile(rf"{_NUM}\s*{unit}\s*{_PER_DAY}", re.IGNORECASE),
        re.compile(rf"max(?:imum)?\s+(?:daily\s+)?(?:drive|driving|distance)\s+(?:time\s+)?(?:of\s+)?{_NUM}\s*{unit}",
                   re.IGNORECASE),
    )


HOUR_PATTERNS = _limit_patterns(_HOURS)
KM_PATTERNS = _limit_patterns(_KM)
MILE_PATTERNS = _limit_patterns(_MILES)

DAYTIME_PATTERN = re.compile(
    r"\b(?:daytime(?:\s+driving)?\s+only|daylight\s+only|only\s+(?:drive\s+)?(?:during\s+(?:the\s+)?"
    r"(?:day|daytime|daylight)|in\s+(?:the\s+)?daylight|by\s+day)|no\s+(?:night|nighttime|night-time)\s+driving|"
    r"(?:don'?t|do\s+not|never)\s+(?:want\s+to\s+)?drive\s+(?:at\s+night|after\s+dark)|before\s+dark)\b",
    re.IGNORECASE,
)

AVOID_CONTEXT = re.compile(
    r"\b(?:avoid(?:ing)?|no(?!\s+(?:more|longer|less)\b)|without|skip(?:ping)?|stay(?:ing)?\s+off|hate|don'?t\s+(?:like|want))\s+"
    r"(.{1,60}?)(?=[.;!?\n]|\bbut\b|\bhowever\b|\bprefer\b|\btake\b|\buse\b|$)",
    re.IGNORECASE,
)

AVOID_TERMS = (
    ("tolls", re.compile(r"\btolls?\b|\btoll\s+roads?\b", re.IGNORECASE)),
    ("highways", re.compile(r"\b(?:highways?|motorways?|freeways?|interstates?)\b", re.IGNORECASE)),
    ("ferries", re.compile(r"\bferr(?:y|ies)\b", re.IGNORECASE)),
    ("unpaved", re.compile(r"\b(?:unpaved|dirt|gravel)\b", re.IGNORECASE)),
)


def _first_number(patterns: Tuple[re.Pattern, ...], text: str) -> Optional[float]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            value = float(match.group(1))
            if value > 0:
                return value
    return None


def extract_preferences(message: str) -> Preferences:
    """
    Scan a message for driving limits, a daytime-only marker and avoidance terms.

    Each preference has its own pattern set; a preference that is not
    mentioned stays unset so that stored or default values apply.
    """
    hours = _first_number(HOUR_PATTERNS, message)

    km = _first_number(KM_PATTERNS, message)
    if km is None:
        miles = _first_number(MILE_PATTERNS, message)
        if miles is not None:
            km = round(miles * MILES_TO_KM, 1)

    daytime_only = True if DAYTIME_PATTERN.search(message) else None

    avoid: List[str] = []
    for context in AVOID_CONTEXT.finditer(message):
        phrase = context.group(1)
        for name, pattern in AVOID_TERMS:
            if pattern.search(phrase) and name not in avoid:
                avoid.append(name)

    return Preferences(
        max_daily_drive_hours=hours,
        max_daily_distance_km=km,
        avoid=avoid,
        daytime_only=daytime_only,
    )


def is_route_request(message: Optional[str]) -> bool:
    """True when the message asks for a route or for the current one to be reworked."""
    if not message:
        return False
    return bool(ROUTE_INTENT.search(message) or BREAKDOWN_INTENT.search(message))


# ============================================================================
# STRATEGIES
# ============================================================================

@dataclass(frozen=True)
class StrategyMatch:
    """Stop chains found by one strategy (one chain per from/to clause)."""
    chains: List[List[str]]
    from_prior_state: bool = False


class ExtractionStrategy:
    """One way of reading a route out of a message."""

    name = "base"

    def match(self, message: str, state: RouteState) -> Optional[StrategyMatch]:
        raise NotImplementedError


class ExplicitFromToStrategy(ExtractionStrategy):
    """'from A to B', optionally 'via C' / 'with a stop in C'."""

    name = "explicit_from_to"

    CLAUSE = re.compile(
        r"\bfrom\s+(?P<origin>[^,.;!?\n]+?)\s+to\s+(?P<destination>[^,.;!?\n]+?)"
        r"(?P<rest>(?:\s*,?\s*(?:via|through|stopping\s+(?:in|at|by)|with\s+(?:a\s+|one\s+)?"
        r"(?:stop|stopover|layover)s?\s+(?:in|at))\s+[^.;!?\n]+?)?)"
        r"(?=\s*(?:[,.;!?\n]|\band\s+then\b|\bthen\b|$))",
        re.IGNORECASE,
    )
    STOP_PHRASE = re.compile(
        r"(?:via|through|stopping\s+(?:in|at|by)|(?:stop|stopover|layover)s?\s+(?:in|at))\s+(?P<stops>.+)$",
        re.IGNORECASE,
    )

    def match(self, message: str, state: RouteState) -> Optional[StrategyMatch]:
        chains = []
        for clause in self.CLAUSE.finditer(message):
            destination_text = clause.group("destination")
            stops_text = ""

            # "to B via C" may land entirely in the destination group
            inline = re.search(r"\s+(?:via|through)\s+", destination_text, re.IGNORECASE)
            if inline:
                stops_text = destination_text[inline.end():]
                destination_text = destination_text[:inline.start()]

            rest = self.STOP_PHRASE.search(clause.group("rest") or "")
            if rest:
                stops_text = rest.group("stops")

            origin = clean_location(clause.group("origin"))
            destination = clean_location(destination_text)
            if not origin or not destination:
                continue

            stops = [s for s in LIST_SEPARATOR.split(stops_text) if s] if stops_text else []
            chain = filter_locations([origin] + stops + [destination])
            if len(chain) >= 2 and chain[0] == origin and chain[-1] == destination:
                chains.append(chain)
            elif origin.lower() != destination.lower():
                chains.append([origin, destination])

        return StrategyMatch(chains=chains) if chains else None


class EnumeratedListStrategy(ExtractionStrategy):
    """'visit A, B and C' / 'itinerary: A, B, C'."""

    name = "enumerated_list"

    LIST = re.compile(
        r"\b(?:visit(?:ing)?|see(?:ing)?|itinerary(?:\s+is)?\s*:?|stops?\s+(?:are|in|at)\s*:?|"
        r"(?:travel(?:ling|ing)?|road\s*trip|drive|driving)\s+(?:to|through|around)|going\s+to)"
        r"(?:\s+(?:visit|see|explore))?\s+"
        r"(?P<places>[^.;!?\n]+)",
        re.IGNORECASE,
    )

    def match(self, message: str, state: RouteState) -> Optional[StrategyMatch]:
        departure = DEPARTURE.search(message)
        origin = [departure.group("origin")] if departure else []

        for found in self.LIST.finditer(message):
            places = filter_locations(origin + LIST_SEPARATOR.split(found.group("places")))
            if len(places) >= 2:
                return StrategyMatch(chains=[places])
        return None


class NamedOriginStrategy(ExtractionStrategy):
    """'departing from X' plus destinations named anywhere else in the text."""

    name = "named_origin"

    PLACE = re.compile(
        r"\b[A-Z][\wÀ-ſ'’-]+(?:\s+(?:(?:de|del|da|do|dos|das|la|las|los|el|of|on|sur|am)\s+)?"
        r"[A-Z][\wÀ-ſ'’-]+)*"
    )

    def match(self, message: str, state: RouteState) -> Optional[StrategyMatch]:
        found = DEPARTURE.search(message)
        if not found:
            return None

        origin = clean_location(found.group("origin"))
        if not origin:
            return None

        remainder = message[:found.start()] + " " + message[found.end():]
        listed = EnumeratedListStrategy.LIST.search(remainder)
        if listed:
            candidates = LIST_SEPARATOR.split(listed.group("places"))
        else:
            candidates = [m.group(0) for m in self.PLACE.finditer(remainder)]

        chain = filter_locations([origin] + candidates)
        if len(chain) < 2 or chain[0].lower() != origin.lower():
            return None
        return StrategyMatch(chains=[chain])


class PriorStateStrategy(ExtractionStrategy):
    """Reuse the stored chain when the message only asks to rework the route."""

    name = "prior_state"

    def match(self, message: str, state: RouteState) -> Optional[StrategyMatch]:
        if not BREAKDOWN_INTENT.search(message):
            return None
        chain = stored_chain(state)
        if len(chain) < 2:
            return None
        return StrategyMatch(chains=[chain], from_prior_state=True)


DEFAULT_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    ExplicitFromToStrategy(),
    EnumeratedListStrategy(),
    NamedOriginStrategy(),
    PriorStateStrategy(),
)


# ============================================================================
# EXTRACTOR
# ============================================================================

@dataclass(frozen=True)
class Extraction:
    """Structured result of reading one message."""
    segments: List[SegmentRequest]
    preferences: Preferences
    strategy: str
    origin: Optional[str] = None
    destinations: List[str] = field(default_factory=list)


class RequestExtractor:
    """Runs the extraction strategies in priority order."""

    def __init__(self, strategies: Optional[Tuple[ExtractionStrategy, ...]] = None):
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES

    def extract(self, message: str, state: Optional[RouteState] = None) -> Optional[Extraction]:
        """
        Parse a message into ordered segment requests and preferences.

        Args:
            message: Raw chat text
            state: Prior trip state (stored chain and preferences)

        Returns:
            Extraction, or None when no actionable route could be identified;
            the caller should then ask the user to clarify.
        """
        state = state or RouteState()
        if not message or not message.strip():
            return None

        preferences = extract_preferences(message)

        for strategy in self.strategies:
            found = strategy.match(message, state)
            if not found:
                continue

            segments: List[SegmentRequest] = []
            for chain in found.chains:
                segments.extend(chain_requests(chain))
            if not segments:
                continue

            logger.info(f"Extracted {len(segments)} segments with strategy '{strategy.name}'")

            if found.from_prior_state:
                return Extraction(segments=segments, preferences=preferences, strategy=strategy.name)

            stops = [segments[0].origin]
            for segment in segments:
                for stop in (segment.origin, segment.destination):
                    if stop.lower() != stops[-1].lower():
                        stops.append(stop)

            return Extraction(
                segments=segments,
                preferences=preferences,
                strategy=strategy.name,
                origin=stops[0],
                destinations=stops[1:],
            )

        logger.info("No route segments found in message or prior trip state")
        return None


def merge_extraction(state: RouteState, extraction: Extraction) -> RouteState:
    """Merge an extraction into the trip state, returning the new state."""
    return merge_trip_details(
        state,
        origin=extraction.origin,
        destinations=extraction.destinations,
        preferences=extraction.preferences,
    )
