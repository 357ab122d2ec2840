"""
Zi Wei Dou Shu (紫微斗数) chart computation engine.

Handles:
- Life (命宫) and Body (身宫) sector placement from lunar month and hour
- Palace stems via Five Tigers Escape (五虎遁)
- Five Element Bureau (五行局) from the Life sector's Na Yin
- The Zi Wei and Tian Fu primary star groups
- Hour, month, year-stem and year-branch auxiliary stars

Design principle: This module COMPUTES and PLACES. It does not interpret.
Interpretation is the text-generation layer's job; it receives the chart
read-only through generate_context.

Every table below is total over its key space. Completeness is checked once
at import, and a lookup miss at call time raises InvariantViolation rather
than falling back to a default.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional

from ziwei.cycles import (
    BRANCH_CYCLE, EARTHLY_BRANCHES, Element, EarthlyBranch, HEAVENLY_STEMS,
    HeavenlyStem, HOUR_BLOCK_BY_KEY, HOUR_KEYS, STEM_CYCLE, hour_index,
    normalize, year_branch_index, year_stem_index,
)
from ziwei.errors import InvalidInput, InvariantViolation

logger = logging.getLogger(__name__)


# ============================================================
# FUNDAMENTAL DATA STRUCTURES
# ============================================================

class Gender(Enum):
    MALE = "male"
    FEMALE = "female"


class StarCategory(Enum):
    PRIMARY = "primary"          # 主星, the fourteen major stars
    BENEFICIAL = "beneficial"    # 吉星
    DETRIMENTAL = "detrimental"  # 煞星
    MINOR = "minor"              # 杂曜


class Bureau(Enum):
    """Five Element Bureau; the value is the divisor used by the Zi Wei locator."""
    WATER = 2
    WOOD = 3
    METAL = 4
    EARTH = 5
    FIRE = 6

    @property
    def divisor(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return f"{self.name.title()} {self.value}"

    @property
    def chinese(self) -> str:
        return _BUREAU_CHINESE[self]

    @property
    def element(self) -> Element:
        return Element(self.name.lower())


_BUREAU_CHINESE = MappingProxyType({
    Bureau.WATER: "水二局",
    Bureau.WOOD: "木三局",
    Bureau.METAL: "金四局",
    Bureau.EARTH: "土五局",
    Bureau.FIRE: "火六局",
})

BUREAU_BY_ELEMENT = MappingProxyType({b.element: b for b in Bureau})

# Roles in counting order; Life sits on its own sector and the rest follow
# counter-clockwise around the ring.
ROLES = (
    "Life",       # 命宫
    "Siblings",   # 兄弟
    "Spouse",     # 夫妻
    "Children",   # 子女
    "Wealth",     # 财帛
    "Health",     # 疾厄
    "Travel",     # 迁移
    "Friends",    # 交友
    "Career",     # 官禄
    "Property",   # 田宅
    "Fortune",    # 福德
    "Parents",    # 父母
)


@dataclass(frozen=True)
class Star:
    name: str
    chinese: str
    category: StarCategory

    def __str__(self):
        return f"{self.name} ({self.chinese})"

    def to_dict(self):
        return {
            "name": self.name,
            "chinese": self.chinese,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class BirthRecord:
    """
    Lunar birth data as the engine consumes it.

    is_leap_month and gender are carried for downstream collaborators;
    none of the placement rules read them.
    """
    year: int
    month: int
    day: int
    hour_key: str
    is_leap_month: bool = False
    gender: Optional[Gender] = None

    def __post_init__(self):
        for name in ("year", "month", "day"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInput(f"Lunar {name} must be an integer, got {value!r}")
        if not 1 <= self.month <= 12:
            raise InvalidInput(f"Lunar month must be 1-12, got {self.month}")
        if not 1 <= self.day <= 30:
            raise InvalidInput(f"Lunar day must be 1-30, got {self.day}")
        if self.hour_key not in HOUR_BLOCK_BY_KEY:
            raise InvalidInput(
                f"Unknown hour key {self.hour_key!r}; expected one of {', '.join(HOUR_KEYS)}"
            )
        if self.gender is not None and not isinstance(self.gender, Gender):
            object.__setattr__(self, "gender", parse_gender(self.gender))

    def to_dict(self):
        return {
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "hour": self.hour_key,
            "is_leap_month": self.is_leap_month,
            "gender": self.gender.value if self.gender else None,
        }


def parse_gender(value) -> Gender:
    if isinstance(value, Gender):
        return value
    try:
        return Gender(str(value).strip().lower())
    except ValueError:
        raise InvalidInput(f"Gender must be 'male' or 'female', got {value!r}") from None


@dataclass
class Sector:
    ring_position: int  # 0-11, fixed to the branch with the same index
    role: str
    stem: HeavenlyStem
    branch: EarthlyBranch
    markers: list = field(default_factory=list)

    def __str__(self):
        return f"{self.role}: {self.stem.pinyin} {self.branch.pinyin}"

    @property
    def primary_markers(self) -> list:
        return [m for m in self.markers if m.category is StarCategory.PRIMARY]

    @property
    def is_empty(self) -> bool:
        """No primary stars (空宫); a valid state read downstream."""
        return not self.primary_markers

    def to_dict(self):
        return {
            "ring_position": self.ring_position,
            "role": self.role,
            "stem": self.stem.pinyin,
            "branch": self.branch.pinyin,
            "markers": [m.to_dict() for m in self.markers],
        }


@dataclass
class ChartSkeleton:
    sectors: tuple
    life_sector_index: int
    body_sector_index: int
    bureau: Bureau
    year_stem: HeavenlyStem
    year_branch: EarthlyBranch

    @property
    def life_sector(self) -> Sector:
        return self.sectors[self.life_sector_index]

    @property
    def body_sector(self) -> Sector:
        return self.sectors[self.body_sector_index]

    def sector_by_role(self, role: str) -> Sector:
        for sector in self.sectors:
            if sector.role == role:
                return sector
        raise KeyError(role)

    def find_star(self, name: str) -> Sector:
        """Return the sector holding the named star."""
        for sector in self.sectors:
            if any(m.name == name for m in sector.markers):
                return sector
        raise KeyError(name)

    def to_dict(self):
        return {
            "sectors": [s.to_dict() for s in self.sectors],
            "life_sector_index": self.life_sector_index,
            "body_sector_index": self.body_sector_index,
            "bureau": {
                "name": self.bureau.label,
                "divisor": self.bureau.divisor,
                "chinese": self.bureau.chinese,
            },
            "year": {
                "stem": self.year_stem.pinyin,
                "branch": self.year_branch.pinyin,
            },
        }


# ============================================================
# LOOKUP TABLES
# ============================================================

# Five Tigers Escape: year stem -> stem of the Yin (寅, ring 2) sector
FIVE_TIGERS = MappingProxyType({
    0: 2, 5: 2,   # Jia/Ji year → Bing Yin
    1: 4, 6: 4,   # Yi/Geng year → Wu Yin
    2: 6, 7: 6,   # Bing/Xin year → Geng Yin
    3: 8, 8: 8,   # Ding/Ren year → Ren Yin
    4: 0, 9: 0,   # Wu/Gui year → Jia Yin
})

# Na Yin (纳音): one element per consecutive pair of the 60 Jia Zi cycle
NA_YIN = (
    ("海中金", Element.METAL),   # Jia Zi, Yi Chou
    ("炉中火", Element.FIRE),    # Bing Yin, Ding Mao
    ("大林木", Element.WOOD),    # Wu Chen, Ji Si
    ("路旁土", Element.EARTH),   # Geng Wu, Xin Wei
    ("剑锋金", Element.METAL),   # Ren Shen, Gui You
    ("山头火", Element.FIRE),    # Jia Xu, Yi Hai
    ("涧下水", Element.WATER),   # Bing Zi, Ding Chou
    ("城头土", Element.EARTH),   # Wu Yin, Ji Mao
    ("白蜡金", Element.METAL),   # Geng Chen, Xin Si
    ("杨柳木", Element.WOOD),    # Ren Wu, Gui Wei
    ("泉中水", Element.WATER),   # Jia Shen, Yi You
    ("屋上土", Element.EARTH),   # Bing Xu, Ding Hai
    ("霹雳火", Element.FIRE),    # Wu Zi, Ji Chou
    ("松柏木", Element.WOOD),    # Geng Yin, Xin Mao
    ("长流水", Element.WATER),   # Ren Chen, Gui Si
    ("沙中金", Element.METAL),   # Jia Wu, Yi Wei
    ("山下火", Element.FIRE),    # Bing Shen, Ding You
    ("平地木", Element.WOOD),    # Wu Xu, Ji Hai
    ("壁上土", Element.EARTH),   # Geng Zi, Xin Chou
    ("金箔金", Element.METAL),   # Ren Yin, Gui Mao
    ("覆灯火", Element.FIRE),    # Jia Chen, Yi Si
    ("天河水", Element.WATER),   # Bing Wu, Ding Wei
    ("大驿土", Element.EARTH),   # Wu Shen, Ji You
    ("钗钏金", Element.METAL),   # Geng Xu, Xin Hai
    ("桑柘木", Element.WOOD),    # Ren Zi, Gui Chou
    ("大溪水", Element.WATER),   # Jia Yin, Yi Mao
    ("沙中土", Element.EARTH),   # Bing Chen, Ding Si
    ("天上火", Element.FIRE),    # Wu Wu, Ji Wei
    ("石榴木", Element.WOOD),    # Geng Shen, Xin You
    ("大海水", Element.WATER),   # Ren Xu, Gui Hai
)

# (stem index, branch index) -> Bureau for all 60 valid pairs
BUREAU_BY_PAIR = MappingProxyType({
    (n % STEM_CYCLE, n % BRANCH_CYCLE): BUREAU_BY_ELEMENT[NA_YIN[n // 2][1]]
    for n in range(60)
})

# Zi Wei group, offsets counted backward from Zi Wei
ZI_WEI_GROUP = (
    (Star("Zi Wei", "紫微", StarCategory.PRIMARY), 0),
    (Star("Tian Ji", "天机", StarCategory.PRIMARY), -1),
    (Star("Tai Yang", "太阳", StarCategory.PRIMARY), -3),
    (Star("Wu Qu", "武曲", StarCategory.PRIMARY), -4),
    (Star("Tian Tong", "天同", StarCategory.PRIMARY), -5),
    (Star("Lian Zhen", "廉贞", StarCategory.PRIMARY), -8),
)

# Tian Fu group, offsets counted forward from Tian Fu
TIAN_FU_GROUP = (
    (Star("Tian Fu", "天府", StarCategory.PRIMARY), 0),
    (Star("Tai Yin", "太阴", StarCategory.PRIMARY), 1),
    (Star("Tan Lang", "贪狼", StarCategory.PRIMARY), 2),
    (Star("Ju Men", "巨门", StarCategory.PRIMARY), 3),
    (Star("Tian Xiang", "天相", StarCategory.PRIMARY), 4),
    (Star("Tian Liang", "天梁", StarCategory.PRIMARY), 5),
    (Star("Qi Sha", "七杀", StarCategory.PRIMARY), 6),
    (Star("Po Jun", "破军", StarCategory.PRIMARY), 10),
)

WEN_CHANG = Star("Wen Chang", "文昌", StarCategory.BENEFICIAL)
WEN_QU = Star("Wen Qu", "文曲", StarCategory.BENEFICIAL)
DI_KONG = Star("Di Kong", "地空", StarCategory.DETRIMENTAL)
DI_JIE = Star("Di Jie", "地劫", StarCategory.DETRIMENTAL)
ZUO_FU = Star("Zuo Fu", "左辅", StarCategory.BENEFICIAL)
YOU_BI = Star("You Bi", "右弼", StarCategory.BENEFICIAL)
LU_CUN = Star("Lu Cun", "禄存", StarCategory.BENEFICIAL)
QING_YANG = Star("Qing Yang", "擎羊", StarCategory.DETRIMENTAL)
TUO_LUO = Star("Tuo Luo", "陀罗", StarCategory.DETRIMENTAL)
TIAN_KUI = Star("Tian Kui", "天魁", StarCategory.BENEFICIAL)
TIAN_YUE = Star("Tian Yue", "天钺", StarCategory.BENEFICIAL)
HUO_XING = Star("Huo Xing", "火星", StarCategory.DETRIMENTAL)
LING_XING = Star("Ling Xing", "铃星", StarCategory.DETRIMENTAL)
TIAN_MA = Star("Tian Ma", "天马", StarCategory.BENEFICIAL)
HONG_LUAN = Star("Hong Luan", "红鸾", StarCategory.MINOR)
TIAN_XI = Star("Tian Xi", "天喜", StarCategory.MINOR)

# Lu Cun (禄存) by year stem
LU_CUN_POSITIONS = MappingProxyType({
    0: 2,    # Jia → Yin
    1: 3,    # Yi → Mao
    2: 5,    # Bing → Si
    3: 6,    # Ding → Wu
    4: 5,    # Wu → Si
    5: 6,    # Ji → Wu
    6: 8,    # Geng → Shen
    7: 9,    # Xin → You
    8: 11,   # Ren → Hai
    9: 0,    # Gui → Zi
})

# Tian Kui / Tian Yue (魁钺) by year stem
NOBLEMAN_POSITIONS = MappingProxyType({
    0: (1, 7), 4: (1, 7), 6: (1, 7),   # Jia/Wu/Geng → Chou/Wei
    1: (0, 8), 5: (0, 8),              # Yi/Ji → Zi/Shen
    2: (11, 9), 3: (11, 9),            # Bing/Ding → Hai/You
    8: (5, 3), 9: (5, 3),              # Ren/Gui → Si/Mao
    7: (6, 2),                         # Xin → Wu/Yin
})

# Three Harmony frames (三合) keyed by the frame's element
THREE_HARMONY = MappingProxyType({
    Element.FIRE: (2, 6, 10),    # Yin-Wu-Xu
    Element.WATER: (8, 0, 4),    # Shen-Zi-Chen
    Element.METAL: (5, 9, 1),    # Si-You-Chou
    Element.WOOD: (11, 3, 7),    # Hai-Mao-Wei
})

FRAME_BY_BRANCH = MappingProxyType({
    branch: element
    for element, frame in THREE_HARMONY.items()
    for branch in frame
})

# Huo Xing / Ling Xing starting branches per year-branch frame; both then
# advance clockwise by the hour index
FIRE_BELL_BASES = MappingProxyType({
    Element.FIRE: (1, 3),     # Chou / Mao
    Element.WATER: (2, 10),   # Yin / Xu
    Element.METAL: (3, 10),   # Mao / Xu
    Element.WOOD: (9, 10),    # You / Xu
})

# Tian Ma (天马) per year-branch frame
TIAN_MA_POSITIONS = MappingProxyType({
    Element.FIRE: 8,     # Shen
    Element.WATER: 2,    # Yin
    Element.METAL: 11,   # Hai
    Element.WOOD: 5,     # Si
})


def _require_keys(table, expected, table_name: str):
    missing = set(expected) - set(table)
    if missing:
        raise InvariantViolation(f"{table_name} is missing keys {sorted(missing, key=str)}")


def _verify_tables():
    stems = range(STEM_CYCLE)
    branches = range(BRANCH_CYCLE)
    _require_keys(FIVE_TIGERS, stems, "FIVE_TIGERS")
    _require_keys(LU_CUN_POSITIONS, stems, "LU_CUN_POSITIONS")
    _require_keys(NOBLEMAN_POSITIONS, stems, "NOBLEMAN_POSITIONS")
    _require_keys(FRAME_BY_BRANCH, branches, "FRAME_BY_BRANCH")
    _require_keys(FIRE_BELL_BASES, THREE_HARMONY, "FIRE_BELL_BASES")
    _require_keys(TIAN_MA_POSITIONS, THREE_HARMONY, "TIAN_MA_POSITIONS")
    # Every sector pairs a stem and branch of equal parity
    pairs = [(s, b) for s in stems for b in branches if s % 2 == b % 2]
    _require_keys(BUREAU_BY_PAIR, pairs, "BUREAU_BY_PAIR")
    if len(BUREAU_BY_PAIR) != 60:
        raise InvariantViolation(f"BUREAU_BY_PAIR has {len(BUREAU_BY_PAIR)} entries, expected 60")


_verify_tables()


def _lookup(table, key, table_name: str):
    try:
        return table[key]
    except KeyError:
        raise InvariantViolation(f"{table_name} has no entry for {key!r}") from None


# ============================================================
# SECTOR PLACEMENT
# ============================================================

def life_sector_index(month: int, hour_idx: int) -> int:
    """Life (命宫): start at Yin, count months forward, then hours backward."""
    return normalize(2 + (month - 1) - hour_idx)


def body_sector_index(month: int, hour_idx: int) -> int:
    """Body (身宫): start at Yin, count months forward, then hours forward."""
    return normalize(2 + (month - 1) + hour_idx)


def sector_stem_index(year_stem_idx: int, ring_position: int) -> int:
    """
    Stem of a ring position by Five Tigers Escape.

    The stem table gives the stem at Yin (ring 2); stems then advance one per
    ring step and wrap on the 10-cycle independently of the 12-position ring.
    """
    start_stem = _lookup(FIVE_TIGERS, year_stem_idx, "FIVE_TIGERS")
    return normalize(start_stem + (ring_position - 2), STEM_CYCLE)


def role_at(life_idx: int, ring_position: int) -> str:
    return ROLES[normalize(life_idx - ring_position)]


def bureau_for(stem_idx: int, branch_idx: int) -> Bureau:
    return _lookup(BUREAU_BY_PAIR, (stem_idx, branch_idx), "BUREAU_BY_PAIR")


# ============================================================
# STAR PLACEMENT
# ============================================================
#
# Each rule returns a list of (ring_position, Star) and never touches the
# sectors; compute_chart applies them in order.

def locate_zi_wei(day: int, divisor: int) -> int:
    """
    Ring position of Zi Wei from lunar day and bureau divisor.

    Exact division: quotient Q, count Q - 1 steps forward from Yin.
    Otherwise round the quotient up; diff is what the day falls short of the
    next multiple. From Yin + Q - 1, an odd diff steps back diff positions and
    an even diff steps forward diff positions.
    """
    if day % divisor == 0:
        quotient = day // divisor
        return normalize(2 + quotient - 1)

    quotient = day // divisor + 1
    diff = quotient * divisor - day
    base = normalize(2 + quotient - 1)
    if diff % 2 == 1:
        return normalize(base - diff)
    return normalize(base + diff)


def tian_fu_anchor(zi_wei_idx: int) -> int:
    """Tian Fu mirrors Zi Wei across the Yin-Shen axis."""
    return normalize(4 - zi_wei_idx)


def place_primary_stars(day: int, bureau: Bureau) -> list:
    zi_wei_idx = locate_zi_wei(day, bureau.divisor)
    tian_fu_idx = tian_fu_anchor(zi_wei_idx)

    placements = [(normalize(zi_wei_idx + offset), star) for star, offset in ZI_WEI_GROUP]
    placements += [(normalize(tian_fu_idx + offset), star) for star, offset in TIAN_FU_GROUP]
    return placements


def place_hour_stars(hour_idx: int) -> list:
    return [
        (normalize(10 - hour_idx), WEN_CHANG),   # from Xu, backward
        (normalize(4 + hour_idx), WEN_QU),       # from Chen, forward
        (normalize(11 - hour_idx), DI_KONG),     # from Hai, backward
        (normalize(11 + hour_idx), DI_JIE),      # from Hai, forward
    ]


def place_month_stars(month: int) -> list:
    return [
        (normalize(4 + (month - 1)), ZUO_FU),    # from Chen, forward
        (normalize(10 - (month - 1)), YOU_BI),   # from Xu, backward
    ]


def place_year_stem_stars(year_stem_idx: int) -> list:
    lu_cun_idx = _lookup(LU_CUN_POSITIONS, year_stem_idx, "LU_CUN_POSITIONS")
    kui_idx, yue_idx = _lookup(NOBLEMAN_POSITIONS, year_stem_idx, "NOBLEMAN_POSITIONS")
    return [
        (lu_cun_idx, LU_CUN),
        (normalize(lu_cun_idx + 1), QING_YANG),
        (normalize(lu_cun_idx - 1), TUO_LUO),
        (kui_idx, TIAN_KUI),
        (yue_idx, TIAN_YUE),
    ]


def place_year_branch_stars(year_branch_idx: int, hour_idx: int) -> list:
    frame = _lookup(FRAME_BY_BRANCH, year_branch_idx, "FRAME_BY_BRANCH")
    huo_base, ling_base = _lookup(FIRE_BELL_BASES, frame, "FIRE_BELL_BASES")
    tian_ma_idx = _lookup(TIAN_MA_POSITIONS, frame, "TIAN_MA_POSITIONS")
    hong_luan_idx = normalize(3 - year_branch_idx)  # from Mao, backward
    return [
        (normalize(huo_base + hour_idx), HUO_XING),
        (normalize(ling_base + hour_idx), LING_XING),
        (tian_ma_idx, TIAN_MA),
        (hong_luan_idx, HONG_LUAN),
        (normalize(hong_luan_idx + 6), TIAN_XI),
    ]


# ============================================================
# FULL CHART COMPUTATION
# ============================================================

def compute_chart(record: BirthRecord) -> ChartSkeleton:
    """
    Compute a Zi Wei Dou Shu chart skeleton from lunar birth data.

    Pure and deterministic: a fresh ChartSkeleton is built on every call and
    the module tables are only read.

    Args:
        record: validated lunar birth data

    Returns:
        ChartSkeleton with 12 sectors in ring order (Zi..Hai), the Life and
        Body sector indices, and the bureau.
    """
    ys_idx = year_stem_index(record.year)
    yb_idx = year_branch_index(record.year)
    h_idx = hour_index(record.hour_key)

    life_idx = life_sector_index(record.month, h_idx)
    body_idx = body_sector_index(record.month, h_idx)

    sectors = tuple(
        Sector(
            ring_position=pos,
            role=role_at(life_idx, pos),
            stem=HEAVENLY_STEMS[sector_stem_index(ys_idx, pos)],
            branch=EARTHLY_BRANCHES[pos],
        )
        for pos in range(BRANCH_CYCLE)
    )

    life = sectors[life_idx]
    bureau = bureau_for(life.stem.index, life.branch.index)

    logger.debug(
        "year %s%s hour=%d life=%d body=%d bureau=%s",
        HEAVENLY_STEMS[ys_idx].pinyin, EARTHLY_BRANCHES[yb_idx].pinyin,
        h_idx, life_idx, body_idx, bureau.label,
    )

    placements = (
        place_primary_stars(record.day, bureau)
        + place_hour_stars(h_idx)
        + place_month_stars(record.month)
        + place_year_stem_stars(ys_idx)
        + place_year_branch_stars(yb_idx, h_idx)
    )
    for pos, star in placements:
        sectors[pos].markers.append(star)

    return ChartSkeleton(
        sectors=sectors,
        life_sector_index=life_idx,
        body_sector_index=body_idx,
        bureau=bureau,
        year_stem=HEAVENLY_STEMS[ys_idx],
        year_branch=EARTHLY_BRANCHES[yb_idx],
    )
