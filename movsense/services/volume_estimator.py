"""Volumetric estimator for MovSense.

Fallback cubic-feet and weight estimates for items the model did not
size. Values follow standard moving-industry cube sheets.

Matching is first-match-wins over ESTIMATION_RULES, so specific patterns
("queen bed") must stay ahead of general ones ("bed").
"""

import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

DEFAULT_WEIGHT_PER_CF = 7.0
FALLBACK_LARGE_CF = 30.0
FALLBACK_SMALL_CF = 8.0
FALLBACK_DEFAULT_CF = 15.0

_INCH_PATTERN = re.compile(r"(\d+)\s*[-+]?\s*inch", re.IGNORECASE)

# (minimum inches, cubic feet), checked top down
TV_SIZE_TABLE = [(70, 55.0), (60, 45.0), (50, 40.0), (40, 35.0)]


@dataclass
class EstimationRule:
    """One pattern rule.

    Attributes:
        pattern: Regex matched against the lowercased label.
        base_cf: Cubic feet before size adjustment.
        base_weight: Item-specific weight in pounds, if known.
        weight_per_cf: Custom density used when base_weight is absent.
        size_multiplier: Cubic-feet multipliers keyed small/medium/large/extra_large.
        weight_multiplier: Weight multipliers with the same keys.
    """

    pattern: str
    base_cf: float
    base_weight: Optional[float] = None
    weight_per_cf: Optional[float] = None
    size_multiplier: Dict[str, float] = field(default_factory=dict)
    weight_multiplier: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        self._regex = re.compile(self.pattern, re.IGNORECASE)

    def matches(self, label: str) -> bool:
        return bool(self._regex.search(label))


def _multipliers(small=None, medium=None, large=None, extra_large=None) -> Dict[str, float]:
    return {
        k: v for k, v in
        {"small": small, "medium": medium, "large": large, "extra_large": extra_large}.items()
        if v is not None
    }


ESTIMATION_RULES: List[EstimationRule] = [
    # Seating
    EstimationRule(r"sofa.*3.*cushion|sectional", 35, 245),
    EstimationRule(r"sofa|couch", 35, 245,
                   size_multiplier=_multipliers(small=0.7, large=1.5, extra_large=2),
                   weight_multiplier=_multipliers(small=0.7, large=1.5, extra_large=2)),
    EstimationRule(r"loveseat", 30, 210),
    EstimationRule(r"armchair", 12, 105),
    EstimationRule(r"recliner", 25, 175),
    EstimationRule(r"accent chair|office chair", 12, 84),
    EstimationRule(r"dining chair|kitchen chair", 5, 35),
    EstimationRule(r"bar stool", 5, 35),
    EstimationRule(r"ottoman", 8, 56),
    EstimationRule(r"rocking chair", 15, 105),

    # Tables
    EstimationRule(r"dining table.*4.*6|dining table", 30, 210,
                   size_multiplier=_multipliers(small=0.8, large=1.5),
                   weight_multiplier=_multipliers(small=0.8, large=1.5)),
    EstimationRule(r"coffee table", 12, 84,
                   size_multiplier=_multipliers(small=0.7, large=1.5),
                   weight_multiplier=_multipliers(small=0.7, large=1.5)),
    EstimationRule(r"end table", 5, 35),
    EstimationRule(r"side table|console table", 5, 35),
    EstimationRule(r"kitchen island", 40, 280,
                   size_multiplier=_multipliers(small=0.7, large=1.3),
                   weight_multiplier=_multipliers(small=0.7, large=1.3)),
    EstimationRule(r"outdoor table", 15, 105),

    # Beds
    EstimationRule(r"bed.*single|bed.*twin|twin bed|single bed", 45, 315),
    EstimationRule(r"bed.*double|double bed|full bed", 50, 350),
    EstimationRule(r"queen bed", 65, 455),
    EstimationRule(r"king bed", 70, 490),
    EstimationRule(r"mattress|box spring", 25, 175),

    # Storage
    EstimationRule(r"dresser.*small|dresser.*≤4", 30, 210),
    EstimationRule(r"dresser.*medium|dresser.*5.*8", 40, 280,
                   size_multiplier=_multipliers(small=0.7, medium=1, large=1.5),
                   weight_multiplier=_multipliers(small=0.7, medium=1, large=1.5)),
    EstimationRule(r"dresser.*large|dresser.*8\+", 50, 350),
    EstimationRule(r"dresser", 40, 280,
                   size_multiplier=_multipliers(small=0.7, medium=1, large=1.5),
                   weight_multiplier=_multipliers(small=0.7, medium=1, large=1.5)),
    EstimationRule(r"chest of drawers", 30, 210),
    EstimationRule(r"nightstand", 5, 35),
    EstimationRule(r"wardrobe.*small", 20, 140),
    EstimationRule(r"wardrobe.*large", 40, 280),
    EstimationRule(r"wardrobe|armoire", 40, 280,
                   size_multiplier=_multipliers(small=0.7, large=1.8),
                   weight_multiplier=_multipliers(small=0.7, large=1.8)),
    EstimationRule(r"bookshelf|bookcase", 20, 140,
                   size_multiplier=_multipliers(small=0.7, large=1.5),
                   weight_multiplier=_multipliers(small=0.7, large=1.5)),
    EstimationRule(r"china cabinet", 15, 105,
                   size_multiplier=_multipliers(small=0.7, large=1.5),
                   weight_multiplier=_multipliers(small=0.7, large=1.5)),
    EstimationRule(r"cabinet", 15, 105),

    # Electronics
    EstimationRule(r"tv.*40.*49|television.*40.*49", 40, 280),
    EstimationRule(r"tv.*50.*59|television.*50.*59", 45, 315),
    EstimationRule(r"tv.*60\+|television.*60\+|tv.*70\+", 55, 385),
    EstimationRule(r"tv|television", 40, 280),
    EstimationRule(r"entertainment center|tv stand|media center", 50, 350),

    # Appliances
    EstimationRule(r"refrigerator.*≤6|fridge.*≤6", 30, 210),
    EstimationRule(r"refrigerator.*7.*10|fridge.*7.*10", 45, 315),
    EstimationRule(r"refrigerator|fridge", 35, 245,
                   size_multiplier=_multipliers(small=0.7, large=1.5),
                   weight_multiplier=_multipliers(small=0.7, large=1.5)),
    EstimationRule(r"washer|washing machine", 25, 175),
    EstimationRule(r"dryer", 25, 175),
    EstimationRule(r"microwave", 10, 70),
    EstimationRule(r"microwave.*cart", 15, 105),
    EstimationRule(r"dishwasher", 12, 84),
    EstimationRule(r"stove|oven|range", 15, 105),

    # Specialty
    EstimationRule(r"piano.*upright", 70, 490, weight_per_cf=7),
    EstimationRule(r"piano.*baby grand|piano.*grand", 80, 560, weight_per_cf=7),
    EstimationRule(r"piano", 70, 490),
    EstimationRule(r"pool table|billiard table", 40, 280),
    EstimationRule(r"safe.*<300|safe.*under.*300", 10, 150),
    EstimationRule(r"safe.*300.*600|safe.*300-600", 25, 450),
    EstimationRule(r"safe", 10, 150,
                   size_multiplier=_multipliers(large=3),
                   weight_multiplier=_multipliers(large=4)),
    EstimationRule(r"treadmill|exercise equipment|gym equipment", 30, 200),
    EstimationRule(r"aquarium|fish tank", 20, 200,
                   size_multiplier=_multipliers(small=0.5, large=3),
                   weight_multiplier=_multipliers(small=0.5, large=5)),

    # Outdoor
    EstimationRule(r"outdoor sofa|patio sofa", 50, 350),
    EstimationRule(r"outdoor chair|patio chair", 5, 35),
    EstimationRule(r"outdoor dining table", 30, 210),
    EstimationRule(r"grill|bbq", 25, 175),

    # Garage / workshop
    EstimationRule(r"workbench", 50, 350,
                   size_multiplier=_multipliers(small=0.7, large=1.5),
                   weight_multiplier=_multipliers(small=0.7, large=1.5)),
    EstimationRule(r"boat.*10.*12|aluminum.*boat", 250, 800),
    EstimationRule(r"boat", 250, 1000,
                   size_multiplier=_multipliers(small=0.7, large=1.5),
                   weight_multiplier=_multipliers(small=0.7, large=1.5)),
    EstimationRule(r"riding.*lawn.*mower|riding.*mower", 150, 500),
    EstimationRule(r"lawn.*mower|mower", 15, 50),
    EstimationRule(r"shop.*vacuum|vacuum.*shop", 10, 50),

    # Misc
    EstimationRule(r"desk|office desk", 60, 420,
                   size_multiplier=_multipliers(small=0.7, large=1.3),
                   weight_multiplier=_multipliers(small=0.7, large=1.3)),
    EstimationRule(r"file.*cabinet.*medium", 10, 70),
    EstimationRule(r"file.*cabinet.*large", 20, 140),
    EstimationRule(r"file.*cabinet", 10, 70),
    EstimationRule(r"mirror", 3, 20,
                   size_multiplier=_multipliers(large=5),
                   weight_multiplier=_multipliers(large=5)),
    EstimationRule(r"lamp.*floor|floor lamp", 3, 20),
    EstimationRule(r"lamp.*table|table lamp", 2, 14),
    EstimationRule(r"rug.*large|area.*rug.*large", 10, 70),
    EstimationRule(r"rug.*small|small.*rug", 3, 21),
    EstimationRule(r"rug|area rug", 10, 70,
                   size_multiplier=_multipliers(small=0.5, large=2),
                   weight_multiplier=_multipliers(small=0.3, large=2)),
    EstimationRule(r"plant|potted plant", 5, 35,
                   size_multiplier=_multipliers(small=0.5, large=3),
                   weight_multiplier=_multipliers(small=0.5, large=5)),
    EstimationRule(r"box.*medium|cardboard.*box.*medium", 3, 21),
    EstimationRule(r"box.*large|cardboard.*box.*large", 6, 42),
    EstimationRule(r"dish.*pack.*box", 10, 70),
    EstimationRule(r"wardrobe.*box", 16, 112),
    EstimationRule(r"box|cardboard box", 6, 42,
                   size_multiplier=_multipliers(small=3, large=10),
                   weight_multiplier=_multipliers(small=0.5, large=2)),
    EstimationRule(r"water dispenser", 10, 70),
    EstimationRule(r"christmas tree", 15, 30),
    EstimationRule(r"storage.*drawer|plastic.*drawer", 8, 30),
    EstimationRule(r"folding chair", 5, 35),
    EstimationRule(r"sofa.*sectional.*piece", 10, 70),
]


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _size_factor(multipliers: Dict[str, float], size: str) -> float:
    """Pick the multiplier for a size descriptor.

    Checked in order small, large, extra large, medium. "extra large"
    contains "large", so only "xl" reaches the extra-large branch.
    """
    if not multipliers:
        return 1.0
    if "small" in size or "compact" in size:
        return multipliers.get("small", 1.0)
    if "large" in size or "big" in size:
        return multipliers.get("large", 1.0)
    if "extra large" in size or "xl" in size:
        return multipliers.get("extra_large", 1.5)
    if "medium" in size:
        return multipliers.get("medium", 1.0)
    return 1.0


def find_rule(label: str) -> Optional[EstimationRule]:
    """First rule whose pattern matches the label."""
    normalized = (label or "").lower()
    for rule in ESTIMATION_RULES:
        if rule.matches(normalized):
            return rule
    return None


def _tv_cubic_feet(label: str, size: str) -> Optional[float]:
    match = _INCH_PATTERN.search(size) or _INCH_PATTERN.search(label)
    if not match:
        return None
    inches = int(match.group(1))
    for minimum, cubic_feet in TV_SIZE_TABLE:
        if inches >= minimum:
            return cubic_feet
    return None


def estimate_cubic_feet(label: str, size: Optional[str] = None) -> float:
    """Estimate cubic feet for an item from its label and size descriptor."""
    normalized_label = (label or "").lower()
    normalized_size = (size or "").lower()

    rule = find_rule(normalized_label)
    if rule is not None:
        cf = rule.base_cf * _size_factor(rule.size_multiplier, normalized_size)

        if "tv" in normalized_label or "television" in normalized_label:
            tv_cf = _tv_cubic_feet(normalized_label, normalized_size)
            if tv_cf is not None:
                cf = tv_cf

        return _round_half_up(cf, 1)

    if "large" in normalized_label or "big" in normalized_label:
        return FALLBACK_LARGE_CF
    if "small" in normalized_label or "compact" in normalized_label:
        return FALLBACK_SMALL_CF
    return FALLBACK_DEFAULT_CF


def estimate_weight(cubic_feet: float, label: Optional[str] = None, size: Optional[str] = None) -> float:
    """Estimate weight in pounds.

    Prefers the matched rule's item weight, scaled by its size multiplier
    and rescaled when the estimated cubic feet differ from the rule's base.
    Otherwise falls back to 7 lb per cubic foot.
    """
    if label:
        rule = find_rule(label)
        if rule is not None:
            if rule.base_weight is not None:
                normalized_size = (size or "").lower()
                weight = rule.base_weight * _size_factor(rule.weight_multiplier, normalized_size)

                calculated_cf = estimate_cubic_feet(label, size)
                if calculated_cf != rule.base_cf and calculated_cf > 0:
                    weight = (weight / rule.base_cf) * calculated_cf

                return _round_half_up(weight)

            if rule.weight_per_cf is not None:
                return _round_half_up(cubic_feet * rule.weight_per_cf)

    return _round_half_up(cubic_feet * DEFAULT_WEIGHT_PER_CF)
