"""
Sexagenary (stem-branch) cycle arithmetic.

The 10 Heavenly Stems and 12 Earthly Branches pair up into a cycle of 60
terms (甲子, 乙丑, ... 癸亥). A stem only ever pairs with a branch of the same
polarity, so 60 of the 120 possible combinations exist.

Handles:
- Stem and branch reference tables
- StemBranch value type (ordinal 0-59)
- combine / ordinal / from_ordinal / step
- Label parsing for manually entered pillars
"""

from dataclasses import dataclass
from enum import Enum
from functools import total_ordering

from bazi_chart.errors import ContractViolation


# ============================================================
# FUNDAMENTAL DATA STRUCTURES
# ============================================================

class Polarity(Enum):
    YANG = "yang"
    YIN = "yin"


class Element(Enum):
    WOOD = "wood"
    FIRE = "fire"
    EARTH = "earth"
    METAL = "metal"
    WATER = "water"


@dataclass(frozen=True)
class HeavenlyStem:
    chinese: str
    pinyin: str
    element: Element
    polarity: Polarity
    index: int  # 0-9 in the cycle

    def __str__(self):
        return f"{self.pinyin} ({self.polarity.value} {self.element.value})"


@dataclass(frozen=True)
class EarthlyBranch:
    chinese: str
    pinyin: str
    animal: str
    element: Element
    polarity: Polarity
    index: int  # 0-11 in the cycle

    def __str__(self):
        return f"{self.pinyin} ({self.animal})"


# ============================================================
# STEM AND BRANCH DEFINITIONS
# ============================================================

HEAVENLY_STEMS = (
    HeavenlyStem("甲", "Jia", Element.WOOD, Polarity.YANG, 0),
    HeavenlyStem("乙", "Yi", Element.WOOD, Polarity.YIN, 1),
    HeavenlyStem("丙", "Bing", Element.FIRE, Polarity.YANG, 2),
    HeavenlyStem("丁", "Ding", Element.FIRE, Polarity.YIN, 3),
    HeavenlyStem("戊", "Wu", Element.EARTH, Polarity.YANG, 4),
    HeavenlyStem("己", "Ji", Element.EARTH, Polarity.YIN, 5),
    HeavenlyStem("庚", "Geng", Element.METAL, Polarity.YANG, 6),
    HeavenlyStem("辛", "Xin", Element.METAL, Polarity.YIN, 7),
    HeavenlyStem("壬", "Ren", Element.WATER, Polarity.YANG, 8),
    HeavenlyStem("癸", "Gui", Element.WATER, Polarity.YIN, 9),
)

EARTHLY_BRANCHES = (
    EarthlyBranch("子", "Zi", "Rat", Element.WATER, Polarity.YANG, 0),
    EarthlyBranch("丑", "Chou", "Ox", Element.EARTH, Polarity.YIN, 1),
    EarthlyBranch("寅", "Yin", "Tiger", Element.WOOD, Polarity.YANG, 2),
    EarthlyBranch("卯", "Mao", "Rabbit", Element.WOOD, Polarity.YIN, 3),
    EarthlyBranch("辰", "Chen", "Dragon", Element.EARTH, Polarity.YANG, 4),
    EarthlyBranch("巳", "Si", "Snake", Element.FIRE, Polarity.YIN, 5),
    EarthlyBranch("午", "Wu", "Horse", Element.FIRE, Polarity.YANG, 6),
    EarthlyBranch("未", "Wei", "Goat", Element.EARTH, Polarity.YIN, 7),
    EarthlyBranch("申", "Shen", "Monkey", Element.METAL, Polarity.YANG, 8),
    EarthlyBranch("酉", "You", "Rooster", Element.METAL, Polarity.YIN, 9),
    EarthlyBranch("戌", "Xu", "Dog", Element.EARTH, Polarity.YANG, 10),
    EarthlyBranch("亥", "Hai", "Pig", Element.WATER, Polarity.YIN, 11),
)

# Lookup helpers
STEM_BY_CHINESE = {s.chinese: s for s in HEAVENLY_STEMS}
BRANCH_BY_CHINESE = {b.chinese: b for b in EARTHLY_BRANCHES}
STEM_BY_PINYIN = {s.pinyin.lower(): s for s in HEAVENLY_STEMS}
BRANCH_BY_PINYIN = {b.pinyin.lower(): b for b in EARTHLY_BRANCHES}

CYCLE_LENGTH = 60


# ============================================================
# STEM-BRANCH VALUE
# ============================================================

@total_ordering
@dataclass(frozen=True, eq=False)
class StemBranch:
    """One term of the 60 cycle. Equality and ordering are by ordinal."""
    ordinal: int

    def __post_init__(self):
        if not isinstance(self.ordinal, int) or not 0 <= self.ordinal < CYCLE_LENGTH:
            raise ContractViolation(f"Sexagenary ordinal out of range: {self.ordinal!r}")

    @property
    def stem(self) -> HeavenlyStem:
        return HEAVENLY_STEMS[self.ordinal % 10]

    @property
    def branch(self) -> EarthlyBranch:
        return EARTHLY_BRANCHES[self.ordinal % 12]

    @property
    def label(self) -> str:
        return self.stem.chinese + self.branch.chinese

    @property
    def pinyin(self) -> str:
        return f"{self.stem.pinyin} {self.branch.pinyin}"

    def __eq__(self, other):
        if not isinstance(other, StemBranch):
            return NotImplemented
        return self.ordinal == other.ordinal

    def __lt__(self, other):
        if not isinstance(other, StemBranch):
            return NotImplemented
        return self.ordinal < other.ordinal

    def __hash__(self):
        return hash(self.ordinal)

    def __str__(self):
        return self.label

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "pinyin": self.pinyin,
            "ordinal": self.ordinal,
            "stem": {
                "chinese": self.stem.chinese,
                "pinyin": self.stem.pinyin,
                "element": self.stem.element.value,
                "polarity": self.stem.polarity.value,
            },
            "branch": {
                "chinese": self.branch.chinese,
                "pinyin": self.branch.pinyin,
                "animal": self.branch.animal,
                "element": self.branch.element.value,
            },
        }


# ============================================================
# CYCLE ARITHMETIC
# ============================================================

def combine(stem_index: int, branch_index: int) -> StemBranch:
    """
    Pair a stem with a branch.

    Only pairs of equal parity exist. The ordinal n satisfies
    n = stem (mod 10) and n = branch (mod 12); with equal parity the
    solution in 0..59 is unique.

    Raises:
        ContractViolation: index out of range or mismatched polarity
    """
    if not 0 <= stem_index < 10 or not 0 <= branch_index < 12:
        raise ContractViolation(f"Stem/branch index out of range: ({stem_index}, {branch_index})")
    if stem_index % 2 != branch_index % 2:
        raise ContractViolation(
            f"{HEAVENLY_STEMS[stem_index].chinese}{EARTHLY_BRANCHES[branch_index].chinese} "
            f"is not a sexagenary pair (polarity mismatch)"
        )
    # 6 * (stem - branch) steps through the five branch offsets that share a stem
    return StemBranch((6 * stem_index - 5 * branch_index) % CYCLE_LENGTH)


def ordinal(stem_branch: StemBranch) -> int:
    return stem_branch.ordinal


def from_ordinal(n: int) -> StemBranch:
    return StemBranch(n)


def step(stem_branch: StemBranch, delta: int) -> StemBranch:
    """Advance by delta terms (negative steps backward), wrapping at 60."""
    return StemBranch((stem_branch.ordinal + delta) % CYCLE_LENGTH)


def is_yang(stem_index: int) -> bool:
    # Even index = Yang
    return stem_index % 2 == 0


def year_stem_branch(year: int) -> StemBranch:
    """Sexagenary label of a year (year 4 CE was 甲子)."""
    return StemBranch((year - 4) % CYCLE_LENGTH)


def parse_label(text: str) -> StemBranch:
    """
    Parse a pillar label typed by a person.

    Accepts the two-glyph form ("甲子") or pinyin ("Jia Zi", "jia-zi").

    Raises:
        ContractViolation: unknown glyphs or a pair that is not in the cycle
    """
    if not isinstance(text, str):
        raise ContractViolation(f"Pillar label must be a string, got {type(text).__name__}")
    cleaned = text.strip()

    if len(cleaned) == 2 and cleaned[0] in STEM_BY_CHINESE and cleaned[1] in BRANCH_BY_CHINESE:
        return combine(STEM_BY_CHINESE[cleaned[0]].index, BRANCH_BY_CHINESE[cleaned[1]].index)

    parts = cleaned.lower().replace("-", " ").split()
    if len(parts) == 2 and parts[0] in STEM_BY_PINYIN and parts[1] in BRANCH_BY_PINYIN:
        return combine(STEM_BY_PINYIN[parts[0]].index, BRANCH_BY_PINYIN[parts[1]].index)

    raise ContractViolation(f"Not a stem-branch label: {text!r}")


JIA_ZI = StemBranch(0)
