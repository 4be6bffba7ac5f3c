"""
Closed Vocabularies

Every enumerated search field draws its values from here. The same tables
build the interpretation prompt and validate what comes back from it, so a
value the prompt never offered can never survive validation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


# ============================================================================
# Enums
# ============================================================================

class Gender(str, Enum):
    """Gender values stored on profiles"""
    MAN = "Man"
    WOMAN = "Woman"
    NON_BINARY = "Non-binary"
    OTHER = "Other"


class Ethnicity(str, Enum):
    """Ethnic appearance buckets"""
    WHITE = "WHITE"
    BLACK = "BLACK"
    ASIAN = "ASIAN"
    HISPANIC = "HISPANIC"
    MIDDLE_EASTERN = "MIDDLE_EASTERN"


class SkillCategory(str, Enum):
    """Stunt skill categories"""
    FIGHT = "fight"
    DRIVE = "drive"
    SWIM = "swim"
    CLIMB = "climb"
    HORSE = "horse"
    GUN = "gun"
    ACROBAT = "acrobat"
    WIRE = "wire"
    FIRE = "fire"
    BIKE = "bike"
    DANCE = "dance"
    SKI = "ski"


class Availability(str, Enum):
    """Availability status"""
    AVAILABLE = "available"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"


class UnionStatus(str, Enum):
    """Union membership"""
    SAG_AFTRA = "SAG-AFTRA"
    NON_UNION = "Non-union"
    UNKNOWN = "Unknown"


class TravelRadius(str, Enum):
    """Travel radius tiers, declared in ascending order"""
    LOCAL = "local"
    MILES_50 = "50"
    MILES_100 = "100"
    MILES_200 = "200"
    STATE = "state"
    REGIONAL = "regional"
    NATIONAL = "national"
    INTERNATIONAL = "international"


# Absolute physical domains (inches / lbs)
HEIGHT_DOMAIN: Tuple[int, int] = (48, 96)
WEIGHT_DOMAIN: Tuple[int, int] = (80, 400)


# ============================================================================
# Aliases (free-text hints offered to the interpreter)
# ============================================================================

GENDER_ALIASES: Dict[Gender, List[str]] = {
    Gender.MAN: ["male", "man", "men", "guy", "guys", "dude", "boy", "boys", "gentleman"],
    Gender.WOMAN: ["female", "woman", "women", "girl", "girls", "lady", "ladies", "gal"],
    Gender.NON_BINARY: ["non-binary", "nonbinary", "nb", "they/them"],
    Gender.OTHER: ["transgender", "trans", "genderfluid"],
}

ETHNICITY_ALIASES: Dict[Ethnicity, List[str]] = {
    Ethnicity.WHITE: ["white", "caucasian", "european", "anglo"],
    Ethnicity.BLACK: ["black", "african", "african american", "afro", "dark skin", "darker skin"],
    Ethnicity.ASIAN: [
        "asian", "chinese", "japanese", "korean", "indian", "vietnamese", "thai",
        "filipino", "south asian", "east asian",
    ],
    Ethnicity.HISPANIC: [
        "hispanic", "latino", "latina", "latinx", "mexican", "spanish", "puerto rican",
        "colombian", "venezuelan", "central american",
    ],
    Ethnicity.MIDDLE_EASTERN: [
        "middle eastern", "arab", "persian", "iranian", "turkish", "lebanese",
        "syrian", "egyptian", "moroccan",
    ],
}

# Phrases that expand to several buckets at once
ETHNICITY_GROUPS: Dict[str, List[Ethnicity]] = {
    "poc": [Ethnicity.BLACK, Ethnicity.HISPANIC, Ethnicity.ASIAN, Ethnicity.MIDDLE_EASTERN],
    "person of color": [Ethnicity.BLACK, Ethnicity.HISPANIC, Ethnicity.ASIAN, Ethnicity.MIDDLE_EASTERN],
    "people of color": [Ethnicity.BLACK, Ethnicity.HISPANIC, Ethnicity.ASIAN, Ethnicity.MIDDLE_EASTERN],
}

SKILL_ALIASES: Dict[SkillCategory, List[str]] = {
    SkillCategory.FIGHT: [
        "fight", "fights", "fighter", "fighters", "fighting", "martial art", "martial arts",
        "martial artist", "martial artists", "combat", "boxing", "boxer", "karate", "mma",
        "wrestling", "wrestler", "jiu-jitsu", "kickboxing", "taekwondo", "muay thai",
        "self-defense",
    ],
    SkillCategory.DRIVE: [
        "drive", "driver", "drivers", "driving", "precision driving", "car", "cars",
        "vehicle", "racing", "drift", "drifting", "chase scenes", "automotive",
    ],
    SkillCategory.SWIM: [
        "swim", "swimmer", "swimmers", "swimming", "diving", "diver", "scuba",
        "underwater", "lifeguard", "aquatic",
    ],
    SkillCategory.CLIMB: [
        "climb", "climber", "climbers", "climbing", "rock climbing", "rappelling",
        "parkour", "free running",
    ],
    SkillCategory.HORSE: [
        "horse", "horses", "horseback", "riding", "rider", "equestrian", "mounted", "cavalry",
    ],
    SkillCategory.GUN: [
        "gun", "guns", "firearm", "firearms", "weapon", "weapons", "tactical", "military",
        "police", "swat", "weapons handling",
    ],
    SkillCategory.ACROBAT: [
        "acrobat", "acrobats", "acrobatic", "acrobatics", "gymnast", "gymnasts",
        "gymnastics", "tumbling", "flips", "circus", "contortion", "contortionist",
    ],
    SkillCategory.WIRE: [
        "wire", "wire work", "wirework", "flying", "harness", "aerial stunts", "rigging",
        "suspended",
    ],
    SkillCategory.FIRE: [
        "fire", "fire burn", "fire burns", "burn", "burns", "pyro", "pyrotechnics",
        "flame", "explosions",
    ],
    SkillCategory.BIKE: [
        "bike", "bikes", "bicycle", "bmx", "mountain bike", "cycling", "cyclist",
        "motorcycle", "motorcycles",
    ],
    SkillCategory.DANCE: [
        "dance", "dancer", "dancers", "dancing", "choreography", "ballet", "hip hop",
        "contemporary", "ballroom",
    ],
    SkillCategory.SKI: [
        "ski", "skier", "skiers", "skiing", "snowboard", "snowboarding", "winter sports",
        "ice skating", "hockey",
    ],
}

# Real-world skill names counted as a match for each category at retrieval time
RELATED_SKILLS: Dict[SkillCategory, List[str]] = {
    SkillCategory.FIGHT: [
        "martial arts", "combat", "boxing", "karate", "mma", "wrestling", "jiu-jitsu",
        "kickboxing", "taekwondo", "muay thai", "self-defense", "action", "sword", "knife",
    ],
    SkillCategory.GUN: [
        "firearms", "weapon", "tactical", "military", "police", "swat", "combat training",
        "weapons handling", "shooting",
    ],
    SkillCategory.DRIVE: [
        "motorcycle", "car", "vehicle", "racing", "drift", "precision driving",
        "chase scenes", "automotive",
    ],
    SkillCategory.SWIM: [
        "water", "diving", "scuba", "underwater", "pool", "ocean", "lifeguard",
        "synchronized swimming", "aquatic",
    ],
    SkillCategory.CLIMB: [
        "rope", "wall", "mountain", "rock climbing", "rappelling", "parkour",
        "free running", "scaling",
    ],
    SkillCategory.HORSE: ["riding", "equestrian", "horseback", "mounted", "cavalry", "western"],
    SkillCategory.ACROBAT: [
        "gymnastics", "tumbling", "flips", "aerial", "circus", "contortion", "flexibility",
    ],
    SkillCategory.WIRE: ["wire work", "flying", "harness", "aerial stunts", "rigging", "suspended"],
    SkillCategory.FIRE: ["pyro", "pyrotechnics", "flame", "burn", "fire safety", "explosions"],
    SkillCategory.BIKE: ["bicycle", "bmx", "mountain bike", "cycling", "motocross"],
    SkillCategory.DANCE: [
        "choreography", "ballet", "hip hop", "contemporary", "ballroom", "pole dancing",
        "movement",
    ],
    SkillCategory.SKI: ["snowboard", "winter sports", "ice skating", "hockey", "snow"],
}

AVAILABILITY_ALIASES: Dict[Availability, List[str]] = {
    Availability.AVAILABLE: ["available", "free", "open", "ready"],
    Availability.BUSY: ["busy", "working", "booked", "occupied"],
    Availability.UNAVAILABLE: ["unavailable", "not available"],
}

UNION_ALIASES: Dict[UnionStatus, List[str]] = {
    UnionStatus.SAG_AFTRA: ["sag", "aftra", "sag-aftra", "union", "unionized"],
    UnionStatus.NON_UNION: ["non-union", "nonunion", "non union", "not union"],
    UnionStatus.UNKNOWN: [],
}

TRAVEL_ALIASES: Dict[TravelRadius, List[str]] = {
    TravelRadius.LOCAL: ["local", "nearby", "locals"],
    TravelRadius.MILES_50: ["50 miles", "within 50", "50mi"],
    TravelRadius.MILES_100: ["100 miles", "within 100", "100mi"],
    TravelRadius.MILES_200: ["200 miles", "within 200", "200mi"],
    TravelRadius.STATE: ["statewide", "same state", "in state", "in-state"],
    TravelRadius.REGIONAL: ["regional", "multi-state", "region"],
    TravelRadius.NATIONAL: ["national", "nationwide", "anywhere in the us", "willing to travel"],
    TravelRadius.INTERNATIONAL: ["international", "internationally", "worldwide", "global", "abroad"],
}

TRAVEL_LABELS: Dict[TravelRadius, str] = {
    TravelRadius.LOCAL: "Local only",
    TravelRadius.MILES_50: "Within 50 miles",
    TravelRadius.MILES_100: "Within 100 miles",
    TravelRadius.MILES_200: "Within 200 miles",
    TravelRadius.STATE: "Statewide",
    TravelRadius.REGIONAL: "Regional (multi-state)",
    TravelRadius.NATIONAL: "National",
    TravelRadius.INTERNATIONAL: "International",
}

# Words that flag a generic, exploratory request
BROAD_SEARCH_TERMS: List[str] = [
    "performers", "people", "talent", "actors", "everyone", "all", "show me",
    "list", "who", "anyone", "available",
]


# ============================================================================
# Locations
# ============================================================================

@dataclass(frozen=True)
class LocationOption:
    """A structured market a profile can be based in"""
    value: str
    label: str
    market: str  # "tier1", "tier2", "international"
    state: Optional[str] = None
    country: Optional[str] = None
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def city(self) -> str:
        """City part of the label ("Atlanta" for "Atlanta, GA")"""
        return self.label.split(",")[0].strip()


def _loc(value: str, label: str, market: str, state: Optional[str], country: str, *aliases: str) -> LocationOption:
    return LocationOption(
        value=value, label=label, market=market, state=state, country=country, aliases=tuple(aliases),
    )


TIER1_MARKETS: List[LocationOption] = [
    _loc("los-angeles-ca", "Los Angeles, CA", "tier1", "CA", "USA",
         "la", "l.a.", "los angeles", "hollywood", "west hollywood", "weho", "burbank",
         "studio city", "beverly hills", "santa monica"),
    _loc("new-york-ny", "New York, NY", "tier1", "NY", "USA",
         "nyc", "new york", "manhattan", "brooklyn", "queens", "bronx", "long island"),
    _loc("atlanta-ga", "Atlanta, GA", "tier1", "GA", "USA",
         "atlanta", "atl", "hotlanta", "georgia"),
    _loc("chicago-il", "Chicago, IL", "tier1", "IL", "USA",
         "chicago", "windy city", "illinois"),
    _loc("miami-fl", "Miami, FL", "tier1", "FL", "USA",
         "miami", "south beach", "florida"),
    _loc("las-vegas-nv", "Las Vegas, NV", "tier1", "NV", "USA",
         "las vegas", "vegas", "sin city", "nevada"),
    _loc("austin-tx", "Austin, TX", "tier1", "TX", "USA",
         "austin", "texas"),
    _loc("orlando-fl", "Orlando, FL", "tier1", "FL", "USA",
         "orlando"),
]

TIER2_MARKETS: List[LocationOption] = [
    _loc("san-francisco-ca", "San Francisco, CA", "tier2", "CA", "USA",
         "san francisco", "sf", "bay area", "california"),
    _loc("san-diego-ca", "San Diego, CA", "tier2", "CA", "USA", "san diego"),
    _loc("dallas-tx", "Dallas, TX", "tier2", "TX", "USA", "dallas"),
    _loc("houston-tx", "Houston, TX", "tier2", "TX", "USA", "houston"),
    _loc("seattle-wa", "Seattle, WA", "tier2", "WA", "USA", "seattle", "washington state"),
    _loc("portland-or", "Portland, OR", "tier2", "OR", "USA", "portland", "oregon"),
    _loc("denver-co", "Denver, CO", "tier2", "CO", "USA", "denver", "boulder", "colorado"),
    _loc("phoenix-az", "Phoenix, AZ", "tier2", "AZ", "USA", "phoenix", "scottsdale", "arizona"),
    _loc("boston-ma", "Boston, MA", "tier2", "MA", "USA", "boston", "cambridge", "massachusetts"),
    _loc("philadelphia-pa", "Philadelphia, PA", "tier2", "PA", "USA",
         "philadelphia", "philly", "pennsylvania"),
    _loc("nashville-tn", "Nashville, TN", "tier2", "TN", "USA",
         "nashville", "music city", "tennessee"),
    _loc("charlotte-nc", "Charlotte, NC", "tier2", "NC", "USA", "charlotte", "north carolina"),
    _loc("tampa-fl", "Tampa, FL", "tier2", "FL", "USA", "tampa"),
    _loc("jacksonville-fl", "Jacksonville, FL", "tier2", "FL", "USA", "jacksonville"),
    _loc("sacramento-ca", "Sacramento, CA", "tier2", "CA", "USA", "sacramento"),
]

INTERNATIONAL_MARKETS: List[LocationOption] = [
    _loc("vancouver-bc", "Vancouver, BC", "international", "BC", "Canada",
         "vancouver", "british columbia"),
    _loc("toronto-on", "Toronto, ON", "international", "ON", "Canada", "toronto", "ontario"),
    _loc("london-uk", "London, UK", "international", None, "United Kingdom",
         "london", "england", "uk", "united kingdom"),
    _loc("dublin-ie", "Dublin, Ireland", "international", None, "Ireland", "dublin", "ireland"),
]

ALL_LOCATIONS: List[LocationOption] = TIER1_MARKETS + TIER2_MARKETS + INTERNATIONAL_MARKETS

_LOCATIONS_BY_VALUE: Dict[str, LocationOption] = {loc.value: loc for loc in ALL_LOCATIONS}


# ============================================================================
# Value sets + helpers
# ============================================================================

GENDER_VALUES = frozenset(g.value for g in Gender)
ETHNICITY_VALUES = frozenset(e.value for e in Ethnicity)
SKILL_VALUES = frozenset(s.value for s in SkillCategory)
AVAILABILITY_VALUES = frozenset(a.value for a in Availability)
UNION_VALUES = frozenset(u.value for u in UnionStatus)
TRAVEL_ORDER: List[str] = [t.value for t in TravelRadius]
TRAVEL_VALUES = frozenset(TRAVEL_ORDER)
LOCATION_VALUES = frozenset(_LOCATIONS_BY_VALUE)


def find_location_by_value(value: Optional[str]) -> Optional[LocationOption]:
    """Look up a location by its code"""
    if not value:
        return None
    return _LOCATIONS_BY_VALUE.get(value)


def find_location_by_alias(term: str) -> Optional[LocationOption]:
    """Find the first location whose aliases or label contain the search term"""
    term = term.lower().strip()
    if not term:
        return None
    for loc in ALL_LOCATIONS:
        if any(term in alias for alias in loc.aliases) or term in loc.label.lower():
            return loc
    return None


def locations_by_state(state: str) -> List[LocationOption]:
    return [loc for loc in ALL_LOCATIONS if loc.state == state]


def locations_by_market(market: str) -> List[LocationOption]:
    return [loc for loc in ALL_LOCATIONS if loc.market == market]


def location_label(value: Optional[str]) -> Optional[str]:
    """Display label for a location code, or the raw value if unknown"""
    loc = find_location_by_value(value)
    return loc.label if loc else value


def tier_rank(tier: Optional[str]) -> int:
    """Position of a travel tier in the total order. Missing tiers rank as local."""
    if not tier or tier not in TRAVEL_VALUES:
        return 0
    return TRAVEL_ORDER.index(tier)


def tiers_at_or_above(tier: str) -> List[str]:
    """All travel tiers that satisfy a request for ``tier``"""
    return TRAVEL_ORDER[tier_rank(tier):]


def normalize_ethnicity(label: Optional[str]) -> Optional[str]:
    """Map a legacy free-text ethnicity label to its bucket, or None"""
    if not label:
        return None
    text = label.strip()
    if text.upper() in ETHNICITY_VALUES:
        return text.upper()
    lowered = text.lower()
    for bucket, aliases in ETHNICITY_ALIASES.items():
        if bucket.value.lower().replace("_", " ") == lowered:
            return bucket.value
        if any(alias in lowered for alias in aliases):
            return bucket.value
    return None


def vocabulary_snapshot() -> Dict[str, object]:
    """Plain-data view of every closed vocabulary"""
    return {
        "gender": sorted(GENDER_VALUES),
        "locations": [
            {"value": loc.value, "label": loc.label, "market": loc.market} for loc in ALL_LOCATIONS
        ],
        "ethnicities": [e.value for e in Ethnicity],
        "skills": [s.value for s in SkillCategory],
        "availability": [a.value for a in Availability],
        "union_status": [u.value for u in UnionStatus],
        "travel_radius": TRAVEL_ORDER,
        "height_domain": list(HEIGHT_DOMAIN),
        "weight_domain": list(WEIGHT_DOMAIN),
    }
