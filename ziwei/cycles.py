"""
Stem/branch cycle primitives shared by every placement rule.

Handles:
- Heavenly Stem and Earthly Branch definitions
- The twelve two-hour blocks (shi chen) and their keys
- Signed modulo normalization onto the 10- and 12-position rings
- Year stem/branch derivation
"""

from dataclasses import dataclass
from enum import Enum

from ziwei.errors import InvalidInput


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
    index: int  # 0-11 in the cycle, also the fixed ring position

    def __str__(self):
        return f"{self.pinyin} ({self.animal})"


@dataclass(frozen=True)
class HourBlock:
    key: str
    branch: EarthlyBranch
    start_hour: int  # first clock hour of the two-hour block

    @property
    def index(self) -> int:
        return self.branch.index


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

# Chinese hours (shi chen) are 2-hour blocks:
# 23:00-00:59 = zi, 01:00-02:59 = chou, ... 21:00-22:59 = hai
HOUR_BLOCKS = tuple(
    HourBlock(branch.pinyin.lower(), branch, (23 + 2 * branch.index) % 24)
    for branch in EARTHLY_BRANCHES
)

HOUR_KEYS = tuple(block.key for block in HOUR_BLOCKS)

# Lookup helper
HOUR_BLOCK_BY_KEY = {h.key: h for h in HOUR_BLOCKS}


# ============================================================
# INDEX ARITHMETIC
# ============================================================

STEM_CYCLE = 10
BRANCH_CYCLE = 12


def normalize(value: int, modulus: int = BRANCH_CYCLE) -> int:
    """Wrap any integer onto [0, modulus); negative values wrap backwards."""
    return value % modulus


def year_stem_index(year: int) -> int:
    # Year 4 CE was Jia Zi, the start of the cycle
    return normalize(year - 4, STEM_CYCLE)


def year_branch_index(year: int) -> int:
    return normalize(year - 4, BRANCH_CYCLE)


def hour_index(hour_key: str) -> int:
    """
    Position of an hour-block key in the zi..hai sequence.

    Raises InvalidInput for an unknown key instead of letting a
    "not found" sentinel leak into the placement arithmetic.
    """
    block = HOUR_BLOCK_BY_KEY.get(hour_key)
    if block is None:
        raise InvalidInput(
            f"Unknown hour key {hour_key!r}; expected one of {', '.join(HOUR_KEYS)}"
        )
    return block.index


def sexagenary_label(stem: HeavenlyStem, branch: EarthlyBranch) -> str:
    return f"{stem.chinese}{branch.chinese}"
