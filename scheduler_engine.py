from ortools.sat.python import cp_model

from errors import OptimizationError
from hospital_config import CONSTANTS
from logging_config import get_logger
from room_resolver import resolve_room, room_names
from time_grid import format_time, parse_time

logger = get_logger(__name__)

# Objective weight per start minute (earlier is better for more acute cases)
PRIORITY_WEIGHTS = {'Elective': 1, 'Urgent': 2, 'Emergent': 3}


def _partition(cases, rooms):
    """[(position, case)] per canonical room in input order, plus the unresolved cases."""
    buckets = {name: [] for name in room_names(rooms)}
    unplaced = []
    for pos, c in enumerate(cases):
        key = resolve_room(c.room, rooms)
        if key is None:
            unplaced.append(c)
        else:
            buckets[key].append((pos, c))
    if unplaced:
        logger.warning(
            f"{len(unplaced)} case(s) with unknown rooms left untouched: "
            + ", ".join(f"{c.id} ('{c.room}')" for c in unplaced)
        )
    return buckets, unplaced


def compact(cases, rooms, day_floor=None):
    """
    Re-time every room so its cases run back to back.

    Inside a room cases keep the order of their current start times. The
    first one starts at max(current start, day floor); each next one starts
    when the previous case plus its turnover is done. Only start_time
    changes. Output is sorted by new start time (input order breaks ties),
    followed by the cases whose room could not be resolved, unchanged.
    """
    cases = list(cases)
    floor = parse_time(day_floor or CONSTANTS['DAY_FLOOR'])
    buckets, unplaced = _partition(cases, rooms)

    packed = []
    for name, bucket in buckets.items():
        bucket.sort(key=lambda item: parse_time(item[1].start_time))
        cursor = None
        for pos, c in bucket:
            start = max(parse_time(c.start_time), floor) if cursor is None else cursor
            packed.append((start, pos, c.with_changes(start_time=format_time(start))))
            cursor = start + c.ai_p50_minutes + c.turnover_minutes

    packed.sort(key=lambda item: (item[0], item[1]))
    moved = sum(1 for _, pos, c in packed if c.start_time != cases[pos].start_time)
    logger.info(f"Compaction re-timed {moved} of {len(packed)} case(s) across {len(buckets)} room(s)")
    return [c for _, _, c in packed] + unplaced


class RoomSequencer:
    """
    CP-SAT re-sequencing of each room's cases.

    Unlike compact(), the solver is free to reorder cases inside a room.
    Rooms never change and occupied intervals (P50 + turnover) inside a room
    may not overlap. Minimizes makespan plus priority-weighted start times.
    """

    def __init__(self, rooms, day_floor=None, time_limit=None):
        self.rooms = rooms
        self.day_floor = parse_time(day_floor or CONSTANTS['DAY_FLOOR'])
        self.solver = cp_model.CpSolver()
        self.solver.parameters.max_time_in_seconds = time_limit or CONSTANTS['OPTIMIZER_TIME_LIMIT']
        self.solver.parameters.num_workers = 1

    def solve(self, cases):
        if not cases:
            return []

        model = cp_model.CpModel()
        buckets, unplaced = _partition(cases, self.rooms)
        placed = [item for bucket in buckets.values() for item in bucket]
        if not placed:
            return list(unplaced)

        horizon = max(self.day_floor, 24 * 60) + sum(c.occupied_minutes for _, c in placed)
        starts = {}
        ends = {}

        for name, bucket in buckets.items():
            room_intervals = []
            for pos, c in bucket:
                start_var = model.new_int_var(self.day_floor, horizon, f'start_{pos}')
                end_var = model.new_int_var(self.day_floor, horizon, f'end_{pos}')
                # Room occupancy = P50 + turnover (cleaning)
                room_intervals.append(
                    model.new_interval_var(start_var, c.occupied_minutes, end_var, f'room_int_{pos}')
                )
                starts[pos] = start_var
                ends[pos] = end_var
            if room_intervals:
                model.add_no_overlap(room_intervals)

        makespan = model.new_int_var(0, horizon, 'makespan')
        model.add_max_equality(makespan, list(ends.values()))
        obj_terms = [makespan]
        for pos, c in placed:
            obj_terms.append(starts[pos] * PRIORITY_WEIGHTS.get(c.priority, 1))
        model.minimize(sum(obj_terms))

        status = self.solver.solve(model)
        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            raise OptimizationError(
                "Re-sequencer found no feasible schedule",
                details={'status': self.solver.status_name(status), 'cases': len(placed)},
            )

        results = []
        for pos, c in placed:
            start = self.solver.value(starts[pos])
            results.append((start, pos, c.with_changes(start_time=format_time(start))))
        results.sort(key=lambda item: (item[0], item[1]))
        logger.info(
            f"Re-sequenced {len(results)} case(s), makespan {format_time(self.solver.value(makespan))} "
            f"({self.solver.status_name(status)})"
        )
        return [c for _, _, c in results] + unplaced
