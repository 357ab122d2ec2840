"""
Generate reading context for a chart.

This is the main entry point for the interpretation layer: it orchestrates
chart computation and produces a single JSON payload for the text-generation
collaborator, then merges the returned per-sector text back by sector order.

Nothing here changes star placement. Every function reads the ChartSkeleton
and returns new dicts.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ziwei.chart import BirthRecord, ChartSkeleton, Gender, compute_chart, parse_gender
from ziwei.cycles import (
    EARTHLY_BRANCHES, EarthlyBranch, HEAVENLY_STEMS, HeavenlyStem, Polarity,
    normalize, sexagenary_label, year_branch_index, year_stem_index,
)
from ziwei.settings import DECADE_COUNT

logger = logging.getLogger(__name__)

NO_READING = "No reading available."


# ============================================================
# CHART PROJECTIONS
# ============================================================

def chart_label(chart: ChartSkeleton) -> str:
    """Short chart summary, e.g. "Earth 5 - Life in Wu Yin"."""
    life = chart.life_sector
    return f"{chart.bureau.label} - Life in {life.stem.pinyin} {life.branch.pinyin}"


def simplified_sectors(chart: ChartSkeleton) -> list[dict]:
    """Per-sector projection sent to the text-generation collaborator."""
    return [
        {
            "role": s.role,
            "stem": s.stem.pinyin,
            "branch": s.branch.pinyin,
            "stars": ", ".join(m.name for m in s.markers),
        }
        for s in chart.sectors
    ]


def merge_narratives(chart: ChartSkeleton, narratives, placeholder: str = NO_READING) -> list[dict]:
    """
    Attach generated text to copies of the sectors.

    Args:
        chart: computed chart (left untouched)
        narratives: texts keyed by sector order, either a list (index = ring
            position) or a dict {ring_position: text}
        placeholder: text for sectors with no narrative

    Returns:
        12 sector dicts in ring order, each with a "description"
    """
    if narratives is None:
        narratives = {}
    elif not isinstance(narratives, dict):
        narratives = dict(enumerate(narratives))

    merged = []
    for sector in chart.sectors:
        entry = sector.to_dict()
        entry["description"] = narratives.get(sector.ring_position) or placeholder
        merged.append(entry)

    missing = [s["ring_position"] for s in merged if s["description"] == placeholder]
    if missing:
        logger.warning("No narrative for sectors %s", missing)
    return merged


# ============================================================
# DECADE BANDS (大限)
# ============================================================

def decade_bands(chart: ChartSkeleton, gender=None, count: int = DECADE_COUNT) -> list[dict]:
    """
    Compute decade bands (大限 Da Xian).

    Direction of count depends on gender + year stem polarity:
    - Yang stem year + Male OR Yin stem year + Female → count FORWARD
    - Yang stem year + Female OR Yin stem year + Male → count BACKWARD
    Without a gender the bands count forward.

    The first band sits on the Life sector and starts at the age equal to
    the bureau divisor; each band covers ten years.
    """
    gender = parse_gender(gender) if gender is not None else None
    year_yang = chart.year_stem.polarity is Polarity.YANG
    if gender is None:
        forward = True
    else:
        forward = (year_yang and gender is Gender.MALE) or (not year_yang and gender is Gender.FEMALE)

    step = 1 if forward else -1
    start_age = chart.bureau.divisor

    bands = []
    for i in range(count):
        sector = chart.sectors[normalize(chart.life_sector_index + step * i)]
        age_start = start_age + i * 10
        age_end = age_start + 9
        bands.append({
            "number": i + 1,
            "age_start": age_start,
            "age_end": age_end,
            "ring_position": sector.ring_position,
            "role": sector.role,
            "stem": sector.stem.pinyin,
            "branch": sector.branch.pinyin,
            "stars": [m.name for m in sector.markers],
            "description": f"DX{i + 1}: {sector.role} ({sector.stem.pinyin} {sector.branch.pinyin}) ages {age_start}-{age_end}",
        })
    return bands


# ============================================================
# ANNUAL PILLAR (流年)
# ============================================================

@dataclass(frozen=True)
class AnnualPillar:
    year: int
    stem: HeavenlyStem
    branch: EarthlyBranch

    def __str__(self):
        return f"{self.stem.pinyin} {self.branch.pinyin} ({self.branch.animal})"

    def to_dict(self):
        return {
            "year": self.year,
            "stem": self.stem.pinyin,
            "branch": self.branch.pinyin,
            "animal": self.branch.animal,
            "ganzhi": sexagenary_label(self.stem, self.branch),
            "description": str(self),
        }


def annual_pillar(year: int) -> AnnualPillar:
    """Compute the stem and branch of a calendar year."""
    return AnnualPillar(
        year=year,
        stem=HEAVENLY_STEMS[year_stem_index(year)],
        branch=EARTHLY_BRANCHES[year_branch_index(year)],
    )


def annual_context(chart: ChartSkeleton, year: int) -> dict:
    """
    Annual pillar and the annual Life sector for a target year.

    The annual Life sector is the natal sector whose branch matches the
    year branch.
    """
    ap = annual_pillar(year)
    sector = chart.sectors[ap.branch.index]
    return {
        "annual_pillar": ap.to_dict(),
        "annual_life_sector": {
            "ring_position": sector.ring_position,
            "natal_role": sector.role,
            "stem": sector.stem.pinyin,
            "branch": sector.branch.pinyin,
            "stars": [m.name for m in sector.markers],
            "is_empty": sector.is_empty,
        },
    }


# ============================================================
# FULL CONTEXT
# ============================================================

def generate_reading_context(record: BirthRecord, target_year: Optional[int] = None,
                             gender=None) -> dict:
    """
    Generate the complete context payload for a reading.

    This is what gets passed to the text-generation layer.
    """
    if target_year is None:
        target_year = datetime.now().year
    if gender is None:
        gender = record.gender

    chart = compute_chart(record)
    life = chart.life_sector
    body = chart.body_sector

    context = {
        "generated_at": datetime.now().isoformat(),
        "target_year": target_year,
        "birth": record.to_dict(),
        "chart_label": chart_label(chart),
        "bureau": {
            "name": chart.bureau.label,
            "divisor": chart.bureau.divisor,
            "chinese": chart.bureau.chinese,
        },
        "life_sector": {"ring_position": life.ring_position, "stem": life.stem.pinyin,
                        "branch": life.branch.pinyin},
        "body_sector": {"ring_position": body.ring_position, "role": body.role,
                        "branch": body.branch.pinyin},
        "sectors": simplified_sectors(chart),
        "decade_bands": decade_bands(chart, gender),
        "current_year": annual_context(chart, target_year),
        "chart": chart.to_dict(),
    }

    logger.info("Reading context built for %s (%s)", target_year, context["chart_label"])
    return context
