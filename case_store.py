# case_store.py
from errors import CaseNotFoundError
from room_resolver import bucket_by_room, room_names, unresolved_cases
from time_grid import parse_time


def sort_by_start(cases):
    """Stable sort on start time; equal starts keep their input order."""
    return sorted(cases, key=lambda c: parse_time(c.start_time))


class CaseStore:
    """Read-side view over the current case set, bucketed by canonical room."""

    def __init__(self, cases, rooms):
        self.rooms = list(rooms)
        self._cases = list(cases)
        self._index = {c.id: c for c in self._cases}

    def __len__(self):
        return len(self._cases)

    def __iter__(self):
        return iter(self.all())

    def __contains__(self, case_id):
        return case_id in self._index

    def all(self):
        return sort_by_start(self._cases)

    def get(self, case_id):
        try:
            return self._index[case_id]
        except KeyError:
            raise CaseNotFoundError(case_id) from None

    def room_names(self):
        return room_names(self.rooms)

    def by_room(self):
        return {name: sort_by_start(bucket) for name, bucket in bucket_by_room(self._cases, self.rooms).items()}

    def unplaced(self):
        return unresolved_cases(self._cases, self.rooms)
