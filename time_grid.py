# time_grid.py
import math
import re

from errors import ConfigurationError, InvalidTimeFormat
from hospital_config import GRID

# HH:mm, minute resolution. Hours past 23 are allowed so a room that spills
# past midnight after compaction still round-trips.
_TIME_RE = re.compile(r'^(\d{1,2}):([0-5]\d)$')


def round_half_up(value):
    """Round to the nearest integer, .5 away from zero for positives (like JS Math.round)."""
    return int(math.floor(value + 0.5))


def parse_time(value):
    """'HH:mm' -> minutes since midnight."""
    if not isinstance(value, str):
        raise InvalidTimeFormat(value)
    match = _TIME_RE.match(value.strip())
    if not match:
        raise InvalidTimeFormat(value)
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(minutes):
    """Minutes since midnight -> 'HH:mm' (rounded to the nearest minute)."""
    total = round_half_up(minutes)
    if total < 0:
        raise InvalidTimeFormat(minutes)
    return f"{total // 60:02d}:{total % 60:02d}"


class TimeGrid:
    """
    Maps clock times to vertical offsets of the day grid and back.

    Offsets are minutes since start_hour; pixels are offsets times
    pixels_per_minute. Nothing is clamped to the day window, a case starting
    before start_hour gets a negative top.
    """

    def __init__(self, start_hour=None, end_hour=None, pixels_per_minute=None):
        self.start_hour = GRID['START_HOUR'] if start_hour is None else start_hour
        self.end_hour = GRID['END_HOUR'] if end_hour is None else end_hour
        self.pixels_per_minute = GRID['PIXELS_PER_MINUTE'] if pixels_per_minute is None else pixels_per_minute

        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ConfigurationError(
                f"Invalid day window {self.start_hour}-{self.end_hour}",
                details={'start_hour': self.start_hour, 'end_hour': self.end_hour},
            )
        if self.pixels_per_minute <= 0:
            raise ConfigurationError(
                f"pixels_per_minute must be positive, got {self.pixels_per_minute}",
                details={'pixels_per_minute': self.pixels_per_minute},
            )

    @property
    def start_minutes(self):
        return self.start_hour * 60

    @property
    def window_minutes(self):
        return (self.end_hour - self.start_hour) * 60

    @property
    def total_height(self):
        return self.window_minutes * self.pixels_per_minute

    def time_to_offset(self, time):
        return parse_time(time) - self.start_minutes

    def offset_to_time(self, offset_minutes):
        return format_time(self.start_minutes + offset_minutes)

    def pixels_to_time(self, pixel_offset):
        return self.offset_to_time(round_half_up(pixel_offset / self.pixels_per_minute))

    def case_geometry(self, case):
        ppm = self.pixels_per_minute
        return {
            'top': self.time_to_offset(case.start_time) * ppm,
            'procedure_height': case.ai_p50_minutes * ppm,
            'turnover_height': case.turnover_minutes * ppm,
        }

    def apply_move(self, case, target_room_name, pixel_offset):
        """Drop a case into a room column at a pixel offset; returns the updated case."""
        return case.with_changes(room=target_room_name, start_time=self.pixels_to_time(pixel_offset))

    def time_slots(self, step_minutes=30):
        """Grid lines: [{'time', 'minutes', 'is_hour'}] from start_hour to end_hour inclusive."""
        slots = []
        for minutes in range(0, self.window_minutes + 1, step_minutes):
            slots.append({
                'time': self.offset_to_time(minutes),
                'minutes': minutes,
                'is_hour': minutes % 60 == 0,
            })
        return slots
