from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union
import logging

from chart_engine.precision import normalize_degrees


logger = logging.getLogger(__name__)


class Element(Enum):
    FIRE = "Fire"
    EARTH = "Earth"
    AIR = "Air"
    WATER = "Water"


class Modality(Enum):
    CARDINAL = "Cardinal"
    FIXED = "Fixed"
    MUTABLE = "Mutable"


class SignPolarity(Enum):
    MASCULINE = "Masculine"
    FEMININE = "Feminine"


class Sign(Enum):
    """Zodiac signs with their classical classifications and rulers."""
    ARIES = (0, "Aries", Element.FIRE, Modality.CARDINAL, SignPolarity.MASCULINE, "Mars", None)
    TAURUS = (30, "Taurus", Element.EARTH, Modality.FIXED, SignPolarity.FEMININE, "Venus", None)
    GEMINI = (60, "Gemini", Element.AIR, Modality.MUTABLE, SignPolarity.MASCULINE, "Mercury", None)
    CANCER = (90, "Cancer", Element.WATER, Modality.CARDINAL, SignPolarity.FEMININE, "Moon", None)
    LEO = (120, "Leo", Element.FIRE, Modality.FIXED, SignPolarity.MASCULINE, "Sun", None)
    VIRGO = (150, "Virgo", Element.EARTH, Modality.MUTABLE, SignPolarity.FEMININE, "Mercury", None)
    LIBRA = (180, "Libra", Element.AIR, Modality.CARDINAL, SignPolarity.MASCULINE, "Venus", None)
    SCORPIO = (210, "Scorpio", Element.WATER, Modality.FIXED, SignPolarity.FEMININE, "Mars", "Pluto")
    SAGITTARIUS = (240, "Sagittarius", Element.FIRE, Modality.MUTABLE, SignPolarity.MASCULINE, "Jupiter", None)
    CAPRICORN = (270, "Capricorn", Element.EARTH, Modality.CARDINAL, SignPolarity.FEMININE, "Saturn", None)
    AQUARIUS = (300, "Aquarius", Element.AIR, Modality.FIXED, SignPolarity.MASCULINE, "Saturn", "Uranus")
    PISCES = (330, "Pisces", Element.WATER, Modality.MUTABLE, SignPolarity.FEMININE, "Jupiter", "Neptune")

    def __init__(self, start_degree, sign_name, element, modality, polarity, ruler, modern_ruler):
        self.start_degree = start_degree
        self.sign_name = sign_name
        self.element = element
        self.modality = modality
        self.polarity = polarity
        self.ruler = ruler
        self.modern_ruler = modern_ruler

    @property
    def ordinal(self) -> int:
        return self.start_degree // 30

    @classmethod
    def from_degree(cls, degree: float) -> "Sign":
        """Sign occupied by an ecliptic longitude."""
        return list(cls)[int(normalize_degrees(degree) // 30) % 12]

    @classmethod
    def from_name(cls, name: str) -> Optional["Sign"]:
        for sign in cls:
            if sign.sign_name.lower() == str(name).strip().lower():
                return sign
        return None


class ChartKind(str, Enum):
    NATAL = "natal"
    EVENT = "event"
    TRANSIT = "transit"


class ChartPairKind(str, Enum):
    """Context an orb is resolved for."""

    NATAL = "natal"
    SYNASTRY = "synastry"
    TRANSIT = "transit"
    COMPOSITE = "composite"


class Motion(str, Enum):
    APPLYING = "applying"
    SEPARATING = "separating"
    EXACT = "exact"


class PlanetCategory(str, Enum):
    LUMINARIES = "luminaries"
    PERSONAL = "personal"
    SOCIAL = "social"
    OUTER = "outer"
    ANGLES = "angles"


class AspectClassification(str, Enum):
    MAJOR = "major"
    MINOR = "minor"
    ESOTERIC = "esoteric"


class PatternType(Enum):
    T_SQUARE = "T-Square"
    GRAND_TRINE = "Grand Trine"
    GRAND_CROSS = "Grand Cross"
    YOD = "Yod"
    MYSTIC_RECTANGLE = "Mystic Rectangle"
    KITE = "Kite"
    STELLIUM = "Stellium"


class DispositorTerminus(str, Enum):
    FINAL = "final"
    NOT_IN_CHART = "not_in_chart"
    CYCLE = "cycle"


# ---------------------------------------------------------------------------
# Chart input
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Point:
    name: str
    degree: float
    speed: Optional[float] = None  # degrees per day, negative when retrograde

    def __post_init__(self):
        object.__setattr__(self, "degree", normalize_degrees(self.degree))

    @property
    def sign(self) -> Sign:
        return Sign.from_degree(self.degree)

    @property
    def retrograde(self) -> bool:
        return self.speed is not None and self.speed < 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Point":
        speed = data.get("speed")
        return cls(
            name=str(data["name"]),
            degree=float(data["degree"]),
            speed=float(speed) if speed is not None else None,
        )


@dataclass(frozen=True)
class Chart:
    name: str
    points: Tuple[Point, ...]
    kind: ChartKind = ChartKind.NATAL
    ascendant: Optional[float] = None
    midheaven: Optional[float] = None
    cusps: Optional[Tuple[float, ...]] = None  # exactly 12 when present
    location: Optional[str] = None

    @property
    def is_transit(self) -> bool:
        return self.kind is ChartKind.TRANSIT

    def all_points(self) -> List[Point]:
        """Chart points plus the angles, which take part in aspects."""
        points = list(self.points)
        if self.ascendant is not None:
            points.append(Point("Ascendant", self.ascendant))
        if self.midheaven is not None:
            points.append(Point("Midheaven", self.midheaven))
        return points

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Chart":
        raw_points = data.get("points", data.get("planets", [])) or []
        cusps = data.get("cusps", data.get("house_cusps"))
        kind = data.get("kind", data.get("chart_type")) or ChartKind.NATAL.value
        return cls(
            name=str(data["name"]),
            points=tuple(Point.from_dict(p) for p in raw_points),
            kind=ChartKind(kind),
            ascendant=_optional_degree(data.get("ascendant")),
            midheaven=_optional_degree(data.get("midheaven")),
            cusps=tuple(normalize_degrees(float(c)) for c in cusps) if cusps else None,
            location=data.get("location"),
        )


def _optional_degree(value: Any) -> Optional[float]:
    if value is None:
        return None
    return normalize_degrees(float(value))


# ---------------------------------------------------------------------------
# Aspects and orbs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AspectDefinition:
    name: str
    angle: float
    orb: float
    classification: Optional[AspectClassification] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AspectDefinition":
        classification = data.get("classification")
        return cls(
            name=str(data["name"]),
            angle=float(data["angle"]),
            orb=float(data["orb"]),
            classification=AspectClassification(classification) if classification else None,
        )


@dataclass(frozen=True)
class AspectCategory:
    """Orb band used to group aspects for display."""
    name: str
    max_orb: float
    min_orb: Optional[float] = None  # exclusive lower bound

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AspectCategory":
        min_orb = data.get("min_orb")
        return cls(
            name=str(data["name"]),
            max_orb=float(data["max_orb"]),
            min_orb=float(min_orb) if min_orb is not None else None,
        )


@dataclass(frozen=True)
class AspectObservation:
    point_a: str
    point_b: str
    chart_a: str
    chart_b: str
    aspect_name: str
    angle: float
    orb: float
    motion: Motion

    @property
    def chart_names(self) -> FrozenSet[str]:
        return frozenset((self.chart_a, self.chart_b))

    def is_within(self, chart_name: str) -> bool:
        return self.chart_a == chart_name and self.chart_b == chart_name

    def crosses(self, first: str, second: str) -> bool:
        return first != second and self.chart_names == frozenset((first, second))


@dataclass
class CategoryOrbRules:
    default_orb: Optional[float] = None
    aspect_orbs: Dict[str, float] = field(default_factory=dict)


@dataclass
class ClassificationOrbRules:
    orb_multiplier: Optional[float] = None
    min_orb: Optional[float] = None
    max_orb: Optional[float] = None


@dataclass
class ContextOrbRules:
    orb_multiplier: Optional[float] = None
    aspect_multipliers: Dict[str, float] = field(default_factory=dict)


@dataclass
class OrbConfiguration:
    """Hierarchical orb rules consumed by ``OrbResolver``."""

    planet_categories: Dict[PlanetCategory, CategoryOrbRules] = field(default_factory=dict)
    aspect_classification: Dict[AspectClassification, ClassificationOrbRules] = field(default_factory=dict)
    contextual_orbs: Dict[ChartPairKind, ContextOrbRules] = field(default_factory=dict)
    planet_mapping: Dict[str, PlanetCategory] = field(default_factory=dict)
    global_fallback_orb: Optional[float] = None  # None reads orbs.global_fallback_orb
    preset_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "OrbConfiguration":
        data = data or {}
        categories = {
            PlanetCategory(key): CategoryOrbRules(
                default_orb=_optional_float(rules.get("default_orb")),
                aspect_orbs={k: float(v) for k, v in (rules.get("aspect_orbs") or {}).items()},
            )
            for key, rules in (data.get("planet_categories") or {}).items()
        }
        classifications = {
            AspectClassification(key): ClassificationOrbRules(
                orb_multiplier=_optional_float(rules.get("orb_multiplier")),
                min_orb=_optional_float(rules.get("min_orb")),
                max_orb=_optional_float(rules.get("max_orb")),
            )
            for key, rules in (data.get("aspect_classification") or {}).items()
        }
        contexts = {}
        for key, rules in (data.get("contextual_orbs") or {}).items():
            # "transits" is accepted as an alias of the transit context
            kind = ChartPairKind.TRANSIT if key == "transits" else ChartPairKind(key)
            contexts[kind] = ContextOrbRules(
                orb_multiplier=_optional_float(rules.get("orb_multiplier")),
                aspect_multipliers={k: float(v) for k, v in (rules.get("aspect_multipliers") or {}).items()},
            )
        mapping = {name: PlanetCategory(cat) for name, cat in (data.get("planet_mapping") or {}).items()}
        return cls(
            planet_categories=categories,
            aspect_classification=classifications,
            contextual_orbs=contexts,
            planet_mapping=mapping,
            global_fallback_orb=_optional_float(data.get("global_fallback_orb")),
            preset_name=data.get("preset_name"),
        )


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlacedPoint:
    """A point located in sign (and house) and tagged with its chart."""
    name: str
    degree: float
    sign: Sign
    chart_name: Optional[str] = None
    house: Optional[int] = None
    dignities: Tuple[str, ...] = ()

    @property
    def degree_in_sign(self) -> float:
        return self.degree % 30


@dataclass(frozen=True)
class Pattern:
    """Base of the closed set of aspect pattern variants."""

    pattern_type: ClassVar[PatternType]

    def members(self) -> Tuple[PlacedPoint, ...]:
        raise NotImplementedError

    def chart_names(self) -> FrozenSet[str]:
        """Provenance: the charts the pattern's members come from."""
        return frozenset(m.chart_name for m in self.members() if m.chart_name)

    def member_names(self) -> Tuple[str, ...]:
        return tuple(m.name for m in self.members())


@dataclass(frozen=True)
class TSquare(Pattern):
    pattern_type: ClassVar[PatternType] = PatternType.T_SQUARE

    apex: PlacedPoint
    opposition: Tuple[PlacedPoint, PlacedPoint]
    modality: Modality
    average_orb: float

    def members(self) -> Tuple[PlacedPoint, ...]:
        return (self.apex,) + tuple(self.opposition)


@dataclass(frozen=True)
class GrandTrine(Pattern):
    pattern_type: ClassVar[PatternType] = PatternType.GRAND_TRINE

    points: Tuple[PlacedPoint, PlacedPoint, PlacedPoint]
    element: Element
    average_orb: float

    def members(self) -> Tuple[PlacedPoint, ...]:
        return tuple(self.points)


@dataclass(frozen=True)
class GrandCross(Pattern):
    pattern_type: ClassVar[PatternType] = PatternType.GRAND_CROSS

    points: Tuple[PlacedPoint, PlacedPoint, PlacedPoint, PlacedPoint]
    modality: Modality
    average_orb: float

    def members(self) -> Tuple[PlacedPoint, ...]:
        return tuple(self.points)


@dataclass(frozen=True)
class Yod(Pattern):
    pattern_type: ClassVar[PatternType] = PatternType.YOD

    apex: PlacedPoint
    base: Tuple[PlacedPoint, PlacedPoint]
    average_orb: float

    def members(self) -> Tuple[PlacedPoint, ...]:
        return (self.apex,) + tuple(self.base)


@dataclass(frozen=True)
class MysticRectangle(Pattern):
    pattern_type: ClassVar[PatternType] = PatternType.MYSTIC_RECTANGLE

    oppositions: Tuple[Tuple[PlacedPoint, PlacedPoint], Tuple[PlacedPoint, PlacedPoint]]
    average_orb: float

    def members(self) -> Tuple[PlacedPoint, ...]:
        return tuple(self.oppositions[0]) + tuple(self.oppositions[1])


@dataclass(frozen=True)
class Kite(Pattern):
    pattern_type: ClassVar[PatternType] = PatternType.KITE

    grand_trine: Tuple[PlacedPoint, PlacedPoint, PlacedPoint]
    opposition: PlacedPoint
    average_orb: float

    def members(self) -> Tuple[PlacedPoint, ...]:
        return tuple(self.grand_trine) + (self.opposition,)


@dataclass(frozen=True)
class Stellium(Pattern):
    pattern_type: ClassVar[PatternType] = PatternType.STELLIUM

    points: Tuple[PlacedPoint, ...]
    houses: Tuple[int, ...]
    degree_span: float
    sign: Optional[Sign] = None  # None for a house-only stellium

    def members(self) -> Tuple[PlacedPoint, ...]:
        return tuple(self.points)


AspectPattern = Union[TSquare, GrandTrine, GrandCross, Yod, MysticRectangle, Kite, Stellium]


# ---------------------------------------------------------------------------
# Dispositors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DispositorChain:
    """Rulership path followed from ``point`` until it terminates."""
    point: str
    path: Tuple[str, ...]
    terminus: DispositorTerminus
    external_rulers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DispositorCycle:
    path: Tuple[str, ...]  # closed: first and last entries are the same point

    @property
    def points(self) -> Tuple[str, ...]:
        return self.path[:-1]


@dataclass(frozen=True)
class DispositorAnalysis:
    rulers: Dict[str, Tuple[str, ...]]
    finals: Tuple[str, ...]
    cycles: Tuple[DispositorCycle, ...]
    chains: Tuple[DispositorChain, ...] = ()

    def unique_cycles(self) -> Tuple[DispositorCycle, ...]:
        """Cycles with rotations of the same loop collapsed to one entry."""
        seen = set()
        unique: List[DispositorCycle] = []
        for cycle in self.cycles:
            members = cycle.points
            if not members:
                continue
            start = members.index(min(members))
            canonical = members[start:] + members[:start]
            if canonical in seen:
                continue
            seen.add(canonical)
            unique.append(cycle)
        return tuple(unique)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignDistributions:
    elements: Dict[str, Tuple[str, ...]]
    modalities: Dict[str, int]
    polarities: Dict[str, int]


@dataclass(frozen=True)
class HouseOverlays:
    first_in_second: Dict[str, int]  # first chart's points in second chart's houses
    second_in_first: Dict[str, int]


@dataclass(frozen=True)
class ChartAnalysis:
    chart: Chart
    placements: Tuple[PlacedPoint, ...]
    aspects: Tuple[AspectObservation, ...]
    patterns: Tuple[Pattern, ...]
    stelliums: Tuple[Stellium, ...]
    sign_distributions: Optional[SignDistributions] = None
    dispositors: Optional[DispositorAnalysis] = None


@dataclass(frozen=True)
class PairwiseAnalysis:
    first: Chart
    second: Chart
    aspects: Tuple[AspectObservation, ...]
    patterns: Tuple[Pattern, ...]
    house_overlays: Optional[HouseOverlays] = None


@dataclass(frozen=True)
class TransitAnalysis:
    natal_chart: Chart
    transit_chart: Chart
    aspects: Tuple[AspectObservation, ...]
    patterns: Tuple[Pattern, ...]


@dataclass(frozen=True)
class GlobalAnalysis:
    charts: Tuple[Chart, ...]
    patterns: Tuple[Pattern, ...]


@dataclass(frozen=True)
class Report:
    settings: Any
    chart_analyses: Tuple[ChartAnalysis, ...]
    pairwise_analyses: Tuple[PairwiseAnalysis, ...] = ()
    global_analysis: Optional[GlobalAnalysis] = None
    transit_analyses: Tuple[TransitAnalysis, ...] = ()
    global_transit_analysis: Optional[GlobalAnalysis] = None

    def chart_analysis(self, chart_name: str) -> Optional[ChartAnalysis]:
        for analysis in self.chart_analyses:
            if analysis.chart.name == chart_name:
                return analysis
        return None


# ---------------------------------------------------------------------------
# Salience
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PointSalience:
    point: str
    total_score: int
    rank: int


@dataclass(frozen=True)
class ChartSalience:
    """Scores for one chart analysis, index-aligned with its item tuples."""
    chart_name: str
    placements: Tuple[float, ...]
    aspects: Tuple[float, ...]
    patterns: Tuple[float, ...]
    stelliums: Tuple[float, ...]
    ranking: Tuple[PointSalience, ...] = ()

    def scores(self) -> Tuple[float, ...]:
        return self.placements + self.aspects + self.patterns + self.stelliums


@dataclass(frozen=True)
class LinkSalience:
    """Scores for a pairwise or transit analysis."""
    chart_names: Tuple[str, str]
    aspects: Tuple[float, ...]
    patterns: Tuple[float, ...]

    def scores(self) -> Tuple[float, ...]:
        return self.aspects + self.patterns


@dataclass(frozen=True)
class SalienceReport:
    report: Report
    charts: Tuple[ChartSalience, ...]
    pairwise: Tuple[LinkSalience, ...] = ()
    transits: Tuple[LinkSalience, ...] = ()

    def all_scores(self) -> List[float]:
        scores: List[float] = []
        for entry in self.charts + self.pairwise + self.transits:
            scores.extend(entry.scores())
        return scores

    def chart(self, chart_name: str) -> Optional[ChartSalience]:
        for entry in self.charts:
            if entry.chart_name == chart_name:
                return entry
        return None
