"""
Tests for the Zi Wei Dou Shu chart engine.

Covers sector placement, Five Tigers stems, bureau lookup, the Zi Wei
locator, auxiliary star rules, table completeness and input validation.
"""

from types import MappingProxyType

import pytest

from ziwei import chart as engine
from ziwei.chart import (
    BUREAU_BY_PAIR, Bureau, BirthRecord, Gender, ROLES, StarCategory,
    TIAN_FU_GROUP, ZI_WEI_GROUP, body_sector_index, compute_chart,
    life_sector_index, locate_zi_wei, sector_stem_index, tian_fu_anchor,
)
from ziwei.cycles import HOUR_KEYS, normalize
from ziwei.errors import InvalidInput, InvariantViolation


class TestGoldenChart:
    """Lunar 1990-1-1, zi hour, checked star by star."""

    def test_indices(self, golden_chart):
        assert golden_chart.life_sector_index == 2
        assert golden_chart.body_sector_index == 2
        assert golden_chart.year_stem.pinyin == "Geng"
        assert golden_chart.year_branch.pinyin == "Wu"

    def test_bureau(self, golden_chart):
        # Life sector is Wu Yin (城头土) → Earth 5
        assert golden_chart.life_sector.stem.pinyin == "Wu"
        assert golden_chart.life_sector.branch.pinyin == "Yin"
        assert golden_chart.bureau is Bureau.EARTH
        assert golden_chart.bureau.divisor == 5

    def test_stems(self, golden_chart):
        stems = [s.stem.pinyin for s in golden_chart.sectors]
        assert stems == ["Bing", "Ding", "Wu", "Ji", "Geng", "Xin",
                         "Ren", "Gui", "Jia", "Yi", "Bing", "Ding"]

    def test_roles(self, golden_chart):
        roles = {s.ring_position: s.role for s in golden_chart.sectors}
        assert roles == {
            2: "Life", 1: "Siblings", 0: "Spouse", 11: "Children",
            10: "Wealth", 9: "Health", 8: "Travel", 7: "Friends",
            6: "Career", 5: "Property", 4: "Fortune", 3: "Parents",
        }

    def test_star_placement(self, golden_chart, stars_by_position):
        assert stars_by_position(golden_chart) == {
            0: ["Tan Lang"],
            1: ["Tian Tong", "Ju Men", "Tian Kui", "Huo Xing"],
            2: ["Wu Qu", "Tian Xiang"],
            3: ["Tai Yang", "Tian Liang", "Ling Xing", "Tian Xi"],
            4: ["Qi Sha", "Wen Qu", "Zuo Fu"],
            5: ["Tian Ji"],
            6: ["Zi Wei"],
            7: ["Tuo Luo", "Tian Yue"],
            8: ["Po Jun", "Lu Cun", "Tian Ma"],
            9: ["Qing Yang", "Hong Luan"],
            10: ["Lian Zhen", "Tian Fu", "Wen Chang", "You Bi"],
            11: ["Tai Yin", "Di Kong", "Di Jie"],
        }

    def test_categories(self, golden_chart):
        categories = {m.name: m.category for s in golden_chart.sectors for m in s.markers}
        assert categories["Zi Wei"] is StarCategory.PRIMARY
        assert categories["Po Jun"] is StarCategory.PRIMARY
        assert categories["Wen Chang"] is StarCategory.BENEFICIAL
        assert categories["Tian Ma"] is StarCategory.BENEFICIAL
        assert categories["Di Kong"] is StarCategory.DETRIMENTAL
        assert categories["Qing Yang"] is StarCategory.DETRIMENTAL
        assert categories["Hong Luan"] is StarCategory.MINOR
        assert sum(c is StarCategory.PRIMARY for c in categories.values()) == 14

    def test_lookups(self, golden_chart):
        assert golden_chart.sector_by_role("Career").ring_position == 6
        assert golden_chart.find_star("Lu Cun").branch.pinyin == "Shen"
        assert golden_chart.body_sector is golden_chart.life_sector
        with pytest.raises(KeyError):
            golden_chart.sector_by_role("Lover")
        with pytest.raises(KeyError):
            golden_chart.find_star("Tian Yao")

    def test_empty_sectors(self, golden_chart):
        empty = [s.ring_position for s in golden_chart.sectors if s.is_empty]
        assert empty == [7, 9]

    def test_to_dict_shape(self, golden_chart):
        data = golden_chart.to_dict()
        assert len(data["sectors"]) == 12
        assert data["bureau"] == {"name": "Earth 5", "divisor": 5, "chinese": "土五局"}
        assert data["year"] == {"stem": "Geng", "branch": "Wu"}
        first = data["sectors"][0]
        assert first == {
            "ring_position": 0,
            "role": "Spouse",
            "stem": "Bing",
            "branch": "Zi",
            "markers": [{"name": "Tan Lang", "chinese": "贪狼", "category": "primary"}],
        }


class TestSectorPlacement:

    @pytest.mark.parametrize("month,hour,life,body", [
        (1, 0, 2, 2),
        (1, 2, 0, 4),
        (12, 11, 2, 0),
        (6, 6, 1, 1),
        (3, 1, 3, 5),
    ])
    def test_life_and_body(self, month, hour, life, body):
        assert life_sector_index(month, hour) == life
        assert body_sector_index(month, hour) == body

    @pytest.mark.parametrize("year_stem,yin_stem", [
        (0, 2), (5, 2), (1, 4), (6, 4), (2, 6), (7, 6), (3, 8), (8, 8), (4, 0), (9, 0),
    ])
    def test_five_tigers_at_yin(self, year_stem, yin_stem):
        assert sector_stem_index(year_stem, 2) == yin_stem

    def test_stems_advance_one_per_ring_step(self):
        for year_stem in range(10):
            start = sector_stem_index(year_stem, 2)
            for pos in range(12):
                assert sector_stem_index(year_stem, pos) == normalize(start + pos - 2, 10)

    def test_sector_stem_and_branch_share_parity(self):
        for year_stem in range(10):
            for pos in range(12):
                assert sector_stem_index(year_stem, pos) % 2 == pos % 2


class TestZiWeiLocator:

    @pytest.mark.parametrize("bureau,expected_branch", [
        (Bureau.WATER, 1),   # Chou
        (Bureau.WOOD, 4),    # Chen
        (Bureau.METAL, 11),  # Hai
        (Bureau.EARTH, 6),   # Wu
        (Bureau.FIRE, 9),    # You
    ])
    def test_first_day_per_bureau(self, bureau, expected_branch):
        assert locate_zi_wei(1, bureau.divisor) == expected_branch

    @pytest.mark.parametrize("day,divisor,expected", [
        (2, 2, 2),    # exact
        (10, 2, 6),   # exact, Q = 5
        (3, 2, 2),    # diff 1, odd → back
        (2, 3, 1),    # diff 1, odd → back
        (2, 4, 4),    # diff 2, even → forward
        (2, 5, 11),   # diff 3, odd → back across Zi
        (2, 6, 6),    # diff 4, even → forward
        (30, 6, 6),   # exact, Q = 5
        (30, 5, 7),   # exact, Q = 6
        (29, 6, 5),   # diff 1, odd → back
    ])
    def test_division_branches(self, day, divisor, expected):
        assert locate_zi_wei(day, divisor) == expected

    def test_exact_division_does_not_shift(self):
        for divisor in (2, 3, 4, 5, 6):
            for q in range(1, 30 // divisor + 1):
                assert locate_zi_wei(q * divisor, divisor) == normalize(2 + q - 1)

    @pytest.mark.parametrize("zi_wei,tian_fu", [(0, 4), (2, 2), (6, 10), (8, 8), (11, 5)])
    def test_tian_fu_mirror(self, zi_wei, tian_fu):
        assert tian_fu_anchor(zi_wei) == tian_fu

    def test_exact_division_in_full_chart(self, water_record, stars_by_position):
        chart = compute_chart(water_record)
        assert chart.life_sector_index == 0
        assert chart.bureau is Bureau.WATER
        assert chart.find_star("Zi Wei").ring_position == 6
        assert chart.find_star("Tian Fu").ring_position == 10


class TestAuxiliaryStars:

    def _positions(self, record):
        chart = compute_chart(record)
        return {m.name: s.ring_position for s in chart.sectors for m in s.markers}

    @pytest.mark.parametrize("hour_key", HOUR_KEYS)
    def test_hour_stars(self, hour_key):
        h = HOUR_KEYS.index(hour_key)
        pos = self._positions(BirthRecord(2000, 5, 12, hour_key))
        assert pos["Wen Chang"] == normalize(10 - h)
        assert pos["Wen Qu"] == normalize(4 + h)
        assert pos["Di Kong"] == normalize(11 - h)
        assert pos["Di Jie"] == normalize(11 + h)

    @pytest.mark.parametrize("month", range(1, 13))
    def test_month_stars(self, month):
        pos = self._positions(BirthRecord(2000, month, 12, "wu"))
        assert pos["Zuo Fu"] == normalize(4 + month - 1)
        assert pos["You Bi"] == normalize(10 - (month - 1))

    @pytest.mark.parametrize("year,lu_cun,kui,yue", [
        (1984, 2, 1, 7),    # Jia
        (1985, 3, 0, 8),    # Yi
        (1986, 5, 11, 9),   # Bing
        (1987, 6, 11, 9),   # Ding
        (1988, 5, 1, 7),    # Wu
        (1989, 6, 0, 8),    # Ji
        (1990, 8, 1, 7),    # Geng
        (1991, 9, 6, 2),    # Xin
        (1992, 11, 5, 3),   # Ren
        (1993, 0, 5, 3),    # Gui
    ])
    def test_year_stem_stars(self, year, lu_cun, kui, yue):
        pos = self._positions(BirthRecord(year, 3, 8, "mao"))
        assert pos["Lu Cun"] == lu_cun
        assert pos["Qing Yang"] == normalize(lu_cun + 1)
        assert pos["Tuo Luo"] == normalize(lu_cun - 1)
        assert pos["Tian Kui"] == kui
        assert pos["Tian Yue"] == yue

    @pytest.mark.parametrize("year_branch,huo,ling,ma", [
        (2, 1, 3, 8), (6, 1, 3, 8), (10, 1, 3, 8),      # Yin-Wu-Xu
        (8, 2, 10, 2), (0, 2, 10, 2), (4, 2, 10, 2),     # Shen-Zi-Chen
        (5, 3, 10, 11), (9, 3, 10, 11), (1, 3, 10, 11),  # Si-You-Chou
        (11, 9, 10, 5), (3, 9, 10, 5), (7, 9, 10, 5),    # Hai-Mao-Wei
    ])
    @pytest.mark.parametrize("hour_key", ["zi", "si", "hai"])
    def test_year_branch_stars(self, year_branch, huo, ling, ma, hour_key):
        year = 1984 + year_branch
        h = HOUR_KEYS.index(hour_key)
        pos = self._positions(BirthRecord(year, 7, 20, hour_key))
        assert pos["Huo Xing"] == normalize(huo + h)
        assert pos["Ling Xing"] == normalize(ling + h)
        assert pos["Tian Ma"] == ma
        assert pos["Hong Luan"] == normalize(3 - year_branch)
        assert pos["Tian Xi"] == normalize(3 - year_branch + 6)


class TestChartInvariants:

    YEARS = (1900, 1949, 1984, 1990, 2023, 2100, -1)
    DAYS = (1, 2, 15, 29, 30)

    def _charts(self):
        for year in self.YEARS:
            for month in range(1, 13):
                for day in self.DAYS:
                    for hour_key in HOUR_KEYS[::3]:
                        yield compute_chart(BirthRecord(year, month, day, hour_key))

    def test_structure(self):
        for chart in self._charts():
            assert [s.ring_position for s in chart.sectors] == list(range(12))
            assert sorted(s.role for s in chart.sectors) == sorted(ROLES)
            assert chart.sectors[chart.life_sector_index].role == "Life"
            assert isinstance(chart.bureau, Bureau)
            assert sum(len(s.markers) for s in chart.sectors) == 30

    def test_primary_groups_rederive(self):
        for chart in self._charts():
            positions = {m.name: s.ring_position for s in chart.sectors for m in s.markers}
            zi_wei = positions["Zi Wei"]
            for star, offset in ZI_WEI_GROUP:
                assert positions[star.name] == normalize(zi_wei + offset)
            anchor = normalize(4 - zi_wei)
            for star, offset in TIAN_FU_GROUP:
                assert positions[star.name] == normalize(anchor + offset)

    def test_deterministic(self, golden_record):
        assert compute_chart(golden_record).to_dict() == compute_chart(golden_record).to_dict()

    def test_fresh_chart_per_call(self, golden_record):
        first = compute_chart(golden_record)
        first.sectors[0].markers.clear()
        second = compute_chart(golden_record)
        assert second.sectors[0].markers

    def test_leap_flag_and_gender_do_not_move_stars(self):
        plain = compute_chart(BirthRecord(2023, 2, 10, "chen"))
        leap = compute_chart(BirthRecord(2023, 2, 10, "chen", is_leap_month=True, gender="female"))
        assert plain.to_dict() == leap.to_dict()


class TestBureauTable:

    def test_sixty_pairs(self):
        assert len(BUREAU_BY_PAIR) == 60
        assert all(s % 2 == b % 2 for s, b in BUREAU_BY_PAIR)

    def test_each_bureau_has_twelve_pairs(self):
        for bureau in Bureau:
            assert sum(1 for b in BUREAU_BY_PAIR.values() if b is bureau) == 12

    def test_divisors_are_a_bijection(self):
        assert sorted(b.divisor for b in Bureau) == [2, 3, 4, 5, 6]
        assert {b.label for b in Bureau} == {"Water 2", "Wood 3", "Metal 4", "Earth 5", "Fire 6"}

    @pytest.mark.parametrize("pair,bureau", [
        ((0, 0), Bureau.METAL),   # Jia Zi
        ((2, 0), Bureau.WATER),   # Bing Zi
        ((4, 0), Bureau.FIRE),    # Wu Zi
        ((6, 0), Bureau.EARTH),   # Geng Zi
        ((8, 0), Bureau.WOOD),    # Ren Zi
        ((4, 2), Bureau.EARTH),   # Wu Yin
        ((9, 11), Bureau.WATER),  # Gui Hai
    ])
    def test_known_pairs(self, pair, bureau):
        assert BUREAU_BY_PAIR[pair] is bureau

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            engine.FIVE_TIGERS[0] = 4
        with pytest.raises(TypeError):
            BUREAU_BY_PAIR[(0, 0)] = Bureau.WATER


class TestErrors:

    def test_unknown_hour_key_rejected(self):
        with pytest.raises(InvalidInput):
            BirthRecord(year=1990, month=1, day=1, hour_key="noon")

    @pytest.mark.parametrize("kwargs", [
        {"month": 0}, {"month": 13}, {"day": 0}, {"day": 31},
        {"year": "1990"}, {"month": 1.5}, {"day": True},
    ])
    def test_structural_ranges(self, kwargs):
        fields = {"year": 1990, "month": 1, "day": 1, "hour_key": "zi"}
        fields.update(kwargs)
        with pytest.raises(InvalidInput):
            BirthRecord(**fields)

    def test_gender_parsed(self):
        assert BirthRecord(1990, 1, 1, "zi", gender="Female").gender is Gender.FEMALE
        with pytest.raises(InvalidInput):
            BirthRecord(1990, 1, 1, "zi", gender="other")

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            BirthRecord(1990, 1, 1, "noon")

    def test_table_miss_raises_invariant_violation(self, monkeypatch, golden_record):
        broken = MappingProxyType({k: v for k, v in engine.FIVE_TIGERS.items() if k != 6})
        monkeypatch.setattr(engine, "FIVE_TIGERS", broken)
        with pytest.raises(InvariantViolation):
            compute_chart(golden_record)

    def test_nobleman_miss_raises_invariant_violation(self, monkeypatch):
        broken = MappingProxyType({k: v for k, v in engine.NOBLEMAN_POSITIONS.items() if k != 7})
        monkeypatch.setattr(engine, "NOBLEMAN_POSITIONS", broken)
        with pytest.raises(InvariantViolation):
            engine._verify_tables()
        with pytest.raises(InvariantViolation):
            compute_chart(BirthRecord(1991, 1, 1, "zi"))
