# Cameroon-focused default knowledge base
"""
Default Local Context for CivicPulse

Hard-coded fallback bundle served whenever the configuration store is
empty or unreachable, plus the fixed region and city lookup tables used
for region detection.

Usage:
    from civicpulse.context.defaults import default_bundle, REGION_ALIASES

    bundle = default_bundle()
    bundle.political_figures.figure_names()
"""

from datetime import datetime, timezone
from typing import Dict, List, Tuple

from .schemas import ContextBundle


# =============================================================================
# Slang
# =============================================================================

DEFAULT_SLANG_PATTERNS: Dict[str, Dict] = {
    "pidgin": {
        "phrases": {
            "greetings": ["how far", "how body", "wetin dey happen", "na so"],
            "agreement": ["na so", "true talk", "i agree sotay", "na correct"],
            "disagreement": ["no be so", "wey lie", "dat na wash", "fake news"],
        },
        "emotions": {
            "anger": ["i don vex", "vex", "wahala"],
            "joy": ["i dey happy", "sweet die", "na fine thing"],
            "fear": ["i dey fear", "fear dey catch"],
        },
    },
    "fr": {
        "phrases": {
            "slang": ["wesh", "genre", "franchement", "carrément"],
            "politics": ["les politiciens", "le gouvernement", "les élections"],
        },
        "emotions": {
            "anger": ["énervé", "fâché", "en colère", "ras-le-bol"],
            "joy": ["content", "heureux", "joie"],
            "fear": ["peur", "inquiet"],
            "hope": ["espoir"],
        },
    },
    "en": {},
}

# =============================================================================
# Political Figures
# =============================================================================

DEFAULT_POLITICAL_FIGURES: Dict[str, object] = {
    "current_officials": {
        "president": ["paul biya", "biya", "le président"],
        "prime_minister": ["joseph dion ngute", "dion ngute", "prime minister", "premier ministre"],
    },
    "nicknames": {
        "paul_biya": ["le lion", "pdb"],
        "maurice_kamto": ["président élu", "le professeur"],
    },
    "political_parties": ["cpdm", "rdpc", "mrc", "sdf", "upc", "pcrn"],
    "detected_figures": [],
}

# =============================================================================
# Regional Crisis Context
# =============================================================================

DEFAULT_REGIONAL_CONTEXT: Dict[str, Dict[str, List[str]]] = {
    "Northwest": {
        "keywords": ["ambazonia", "amba boys", "separatists", "ghost town", "anglophone crisis"],
        "emotions": ["fear", "anger"],
    },
    "Southwest": {
        "keywords": ["ambazonia", "amba fighters", "separatist", "lockdown", "anglophone crisis"],
        "emotions": ["fear", "anger"],
    },
    "Far North": {
        "keywords": ["boko haram", "suicide bomber", "insurgents", "kidnapping"],
        "emotions": ["fear"],
    },
}

# =============================================================================
# Threat Escalation
# =============================================================================

DEFAULT_THREAT_MULTIPLIERS: Dict[str, float] = {
    "kill": 3, "massacre": 3, "bomb": 3, "kidnap": 3, "ambush": 3,
    "attack": 2, "burn": 2, "weapons": 2, "guns": 2, "war": 2,
    "violence": 2, "riot": 2, "uprising": 2,
    "tuer": 3, "attaque": 2, "guerre": 2,
    "protest": 1, "ghost town": 1,
}

DEFAULT_SARCASM_MARKERS: List[str] = [
    "yeah right", "as if", "thanks for nothing", "na wa o", "bravo o",
]

# =============================================================================
# Topics (categories the figure/party/region scans never produce)
# =============================================================================

DEFAULT_TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "economy": [
        "prices", "inflation", "unemployment", "taxes", "salaries",
        "cost of living", "franc cfa", "vie chère",
    ],
    "youth": ["youth", "young people", "jeunes", "jeunesse", "graduates"],
    "infrastructure": [
        "roads", "potholes", "electricity", "power cut", "eneo",
        "camwater", "water shortage", "délestage",
    ],
    "corruption": [
        "corruption", "bribe", "embezzlement", "détournement", "tchoko", "gombo",
    ],
    "education": ["school", "schools", "university", "teachers", "exams", "gce", "bac"],
}


def default_bundle() -> ContextBundle:
    """Fresh copy of the hard-coded default knowledge base."""
    return ContextBundle(
        slang_patterns=DEFAULT_SLANG_PATTERNS,
        political_figures=DEFAULT_POLITICAL_FIGURES,
        regional_context=DEFAULT_REGIONAL_CONTEXT,
        threat_multipliers=DEFAULT_THREAT_MULTIPLIERS,
        sarcasm_markers=DEFAULT_SARCASM_MARKERS,
        topic_keywords=DEFAULT_TOPIC_KEYWORDS,
        version=1,
        last_evolution=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


# =============================================================================
# Region Detection Tables
# =============================================================================

# Compound names precede their components ("Far North" before "North",
# "Southwest" before "West") because the first match wins.
REGION_ALIASES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Far North", ("far north", "extrême-nord", "extreme nord", "extreme north")),
    ("Northwest", ("northwest", "north west", "north-west", "nord-ouest")),
    ("Southwest", ("southwest", "south west", "south-west", "sud-ouest")),
    ("North", ("north", "nord")),
    ("South", ("south", "sud")),
    ("West", ("west", "ouest")),
    ("East", ("east",)),
    ("Centre", ("centre",)),
    ("Littoral", ("littoral",)),
    ("Adamawa", ("adamawa", "adamaoua")),
)

CAMEROON_REGIONS: Tuple[str, ...] = tuple(name for name, _ in REGION_ALIASES)

CITY_REGIONS: Tuple[Tuple[str, str], ...] = (
    # Centre
    ("yaoundé", "Centre"), ("yaounde", "Centre"), ("bafia", "Centre"),
    ("nanga-eboko", "Centre"), ("mbalmayo", "Centre"),
    # Littoral
    ("douala", "Littoral"), ("edéa", "Littoral"), ("edea", "Littoral"),
    ("nkongsamba", "Littoral"),
    # Northwest
    ("bamenda", "Northwest"), ("abakwa", "Northwest"), ("kumbo", "Northwest"),
    ("nkambe", "Northwest"), ("mbengwi", "Northwest"), ("fundong", "Northwest"),
    # Southwest
    ("buea", "Southwest"), ("limbe", "Southwest"), ("kumba", "Southwest"),
    ("mamfe", "Southwest"), ("tiko", "Southwest"), ("mundemba", "Southwest"),
    # Far North
    ("maroua", "Far North"), ("kousséri", "Far North"), ("kousseri", "Far North"),
    ("yagoua", "Far North"), ("mokolo", "Far North"),
    # North
    ("garoua", "North"), ("tcholliré", "North"), ("tchollire", "North"), ("guider", "North"),
    # Adamawa
    ("ngaoundéré", "Adamawa"), ("ngaoundere", "Adamawa"), ("meiganga", "Adamawa"),
    ("tibati", "Adamawa"),
    # East
    ("bertoua", "East"), ("batouri", "East"), ("bélabo", "East"), ("belabo", "East"),
    # South
    ("ebolowa", "South"), ("sangmélima", "South"), ("sangmelima", "South"), ("kribi", "South"),
    # West
    ("bafoussam", "West"), ("mbouda", "West"), ("bafang", "West"),
    ("foumban", "West"), ("dschang", "West"),
)
