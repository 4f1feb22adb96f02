# =============================================================================
# tests/test_time_grid.py
# Unit Tests for the time grid
# =============================================================================

import pytest

from errors import ConfigurationError, InvalidTimeFormat
from time_grid import TimeGrid, format_time, parse_time, round_half_up


class TestTimeParsing:
    """HH:mm parsing and formatting"""

    @pytest.mark.parametrize("value,expected", [
        ("00:00", 0),
        ("07:30", 450),
        ("7:05", 425),
        ("17:59", 1079),
        ("24:15", 1455),
    ])
    def test_parse_valid(self, value, expected):
        assert parse_time(value) == expected

    @pytest.mark.parametrize("value", ["", "7", "07:60", "ab:cd", "07-30", "07:3", None, 730])
    def test_parse_invalid_raises(self, value):
        with pytest.raises(InvalidTimeFormat):
            parse_time(value)

    def test_invalid_time_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_time("nope")

    def test_format_pads(self):
        assert format_time(425) == "07:05"

    def test_format_negative_raises(self):
        with pytest.raises(InvalidTimeFormat):
            format_time(-5)

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2


class TestTimeGrid:
    """Offsets, geometry and drops"""

    def test_time_to_offset(self, grid):
        assert grid.time_to_offset("07:00") == 0
        assert grid.time_to_offset("08:15") == 75
        assert grid.time_to_offset("06:30") == -30

    def test_offset_to_time_rounds(self, grid):
        assert grid.offset_to_time(75) == "08:15"
        assert grid.offset_to_time(74.6) == "08:15"
        assert grid.offset_to_time(74.4) == "08:14"

    def test_roundtrip_over_window(self, grid):
        for minutes in range(0, grid.window_minutes + 1):
            t = format_time(grid.start_minutes + minutes)
            assert grid.offset_to_time(grid.time_to_offset(t)) == t

    def test_malformed_time_rejected(self, grid):
        with pytest.raises(InvalidTimeFormat):
            grid.time_to_offset("half past seven")

    def test_case_geometry(self, grid, make_case):
        case = make_case(start_time="08:00", ai_p50_minutes=60, ai_p90_minutes=70, turnover_minutes=20)
        assert grid.case_geometry(case) == {'top': 90.0, 'procedure_height': 90.0, 'turnover_height': 30.0}

    def test_geometry_not_clamped(self, grid, make_case):
        early = make_case(start_time="06:00")
        late = make_case(start_time="17:30", ai_p50_minutes=120, ai_p90_minutes=150)
        assert grid.case_geometry(early)['top'] == -90.0
        geo = grid.case_geometry(late)
        assert geo['top'] + geo['procedure_height'] > grid.total_height

    def test_apply_move(self, grid, make_case):
        case = make_case(id='x', room='OR 1 (Gen)', start_time='07:30')
        moved = grid.apply_move(case, 'OR 3 (Cardio)', 135)
        assert moved.room == 'OR 3 (Cardio)'
        assert moved.start_time == '08:30'
        assert moved.id == 'x'
        assert moved.ai_p50_minutes == case.ai_p50_minutes

    def test_pixels_round_to_nearest_minute(self, grid):
        # 100 px / 1.5 = 66.67 min -> 67
        assert grid.pixels_to_time(100) == "08:07"

    def test_time_slots(self, grid):
        slots = grid.time_slots()
        assert len(slots) == 23
        assert slots[0] == {'time': '07:00', 'minutes': 0, 'is_hour': True}
        assert slots[1]['is_hour'] is False
        assert slots[-1]['time'] == '18:00'

    @pytest.mark.parametrize("kwargs", [
        {'start_hour': 18, 'end_hour': 7},
        {'start_hour': 7, 'end_hour': 7},
        {'pixels_per_minute': 0},
    ])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ConfigurationError):
            TimeGrid(**kwargs)

    def test_defaults_from_config(self):
        grid = TimeGrid()
        assert grid.window_minutes == 660
        assert grid.pixels_per_minute == 1.5
