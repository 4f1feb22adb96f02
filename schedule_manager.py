# schedule_manager.py
import threading
from contextlib import contextmanager

from analytics import daily_kpis, priority_counts, risk_counts, room_minutes, schedule_frame, surgeon_stats
from case_store import CaseStore
from errors import ORSchedulerError, OperationInProgressError, OracleError
from hospital_config import CONSTANTS, DATA_DIR, DEFAULT_CASES, ROOMS, SURGEONS
from logging_config import LogContext, get_logger
from oracle import LocalOracle, build_case
from repository import JsonFileRepository, load_manifest
from room_resolver import resolve_room
from scheduler_engine import compact
from time_grid import TimeGrid, parse_time

logger = get_logger(__name__)

SUMMARY_ERROR = "An error occurred while analyzing the schedule. Please check the logs."


class ScheduleManager:
    """
    Owns the day's case set on behalf of the UI.

    Every write goes through the repository in one call (insert, update or
    replace_all), so a failed oracle or solver call leaves the stored set
    untouched. Re-timing operations are single-flight.
    """

    def __init__(self, repository=None, oracle=None, grid=None, day_floor=None):
        self.repository = repository or JsonFileRepository(DATA_DIR)
        self.oracle = oracle
        self.grid = grid or TimeGrid()
        self.day_floor = day_floor or CONSTANTS['DAY_FLOOR']
        self.rooms = []
        self.surgeons = []
        self._in_flight = set()
        self._lock = threading.Lock()

    def load(self):
        with LogContext(logger, "Loading schedule"):
            self.repository.initialize(DEFAULT_CASES, SURGEONS, ROOMS)
            self.rooms = self.repository.list_rooms()
            self.surgeons = self.repository.list_surgeons()
            if self.oracle is None:
                self.oracle = LocalOracle(self.rooms)
            return self.store()

    def store(self):
        return CaseStore(self.repository.list_cases(), self.rooms)

    @contextmanager
    def _single_flight(self, operation):
        with self._lock:
            if operation in self._in_flight:
                logger.warning(f"Rejected '{operation}': previous request still running")
                raise OperationInProgressError(operation)
            self._in_flight.add(operation)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(operation)

    def is_busy(self, operation):
        return operation in self._in_flight

    # --- writes ------------------------------------------------------------

    def add_case(self, draft):
        """Enrich a draft through the oracle and insert the resulting case."""
        parse_time(draft.get('startTime'))
        with self._single_flight('add_case'), LogContext(logger, f"Adding case for {draft.get('patientId', '?')}"):
            new_case = build_case(draft, self.oracle.enrich(draft))
            self._warn_if_unplaced(new_case)
            self.repository.insert_case(new_case)
            return new_case

    def import_manifest(self, source):
        """Enrich every row of a CSV manifest, then append them all in one write."""
        drafts = load_manifest(source)
        for d in drafts:
            parse_time(d['startTime'])
        with self._single_flight('import'), LogContext(logger, f"Importing {len(drafts)} case(s)"):
            new_cases = [build_case(d, self.oracle.enrich(d)) for d in drafts]
            self.repository.replace_all(self.repository.list_cases() + new_cases)
            return new_cases

    def import_text(self, text):
        with self._single_flight('import'), LogContext(logger, "Importing free-text schedule"):
            new_cases = self.oracle.parse_schedule_text(text)
            self.repository.replace_all(self.repository.list_cases() + new_cases)
            return new_cases

    def move_case(self, case_id, target_room_name, pixel_offset):
        """Drag-and-drop: new room and a start time derived from the drop offset."""
        moved = self.grid.apply_move(self.store().get(case_id), target_room_name, pixel_offset)
        self._warn_if_unplaced(moved)
        self.repository.update_case(moved)
        logger.info(f"Moved {case_id} to {target_room_name} at {moved.start_time}")
        return moved

    def handle_drop(self, payload):
        """Wire form of move_case: {caseId, targetRoomName, pixelOffsetWithinRoomColumn}."""
        return self.move_case(payload['caseId'], payload['targetRoomName'], payload['pixelOffsetWithinRoomColumn'])

    def compact(self):
        """Deterministic gap removal, written back as one replace_all."""
        with self._single_flight('reschedule'), LogContext(logger, "Compacting schedule"):
            compacted = compact(self.repository.list_cases(), self.rooms, self.day_floor)
            self.repository.replace_all(compacted)
            return compacted

    def optimize(self):
        """Oracle-driven re-sequencing; the result must be the same set of cases."""
        with self._single_flight('reschedule'), LogContext(logger, "Optimizing schedule"):
            cases = self.repository.list_cases()
            optimized = self.oracle.optimize(cases)
            if sorted(c.id for c in optimized) != sorted(c.id for c in cases):
                raise OracleError("Optimized schedule does not contain the same cases")
            self.repository.replace_all(optimized)
            return optimized

    def _warn_if_unplaced(self, case):
        if resolve_room(case.room, self.rooms) is None:
            logger.warning(f"Case {case.id} room '{case.room}' matches no canonical room; it will not show on the grid")

    # --- reads -------------------------------------------------------------

    def daily_summary(self):
        try:
            return self.oracle.summarize(self.store().all())
        except ORSchedulerError as e:
            logger.error(f"Daily summary failed: {e}")
            return SUMMARY_ERROR

    def start_chat(self):
        return self.oracle.start_chat()

    def analytics(self):
        cases = self.store().all()
        return {
            'kpis': daily_kpis(cases, self.rooms, self.grid),
            'surgeons': surgeon_stats(cases),
            'rooms': room_minutes(cases),
            'priority': priority_counts(cases),
            'risk': risk_counts(cases),
        }

    def schedule_frame(self):
        return schedule_frame(self.store().all(), self.rooms)
