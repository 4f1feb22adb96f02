# =============================================================================
# repository.py
# Case persistence: in-memory and JSON-file stores, CSV manifest import
# =============================================================================

import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import pandas as pd

from errors import CaseNotFoundError, CaseValidationError, RepositoryError
from logging_config import get_logger
from models import Case, Room, Surgeon, cases_from_dicts, cases_to_dicts

logger = get_logger(__name__)

MANIFEST_COLUMNS = ['patientId', 'procedure', 'surgeon', 'room', 'startTime', 'surgeonEstimateMinutes']


class CaseRepository(ABC):
    """Persistence boundary. Every write replaces whole records; nothing is written partially."""

    @abstractmethod
    def initialize(self, default_cases, default_surgeons, default_rooms):
        """Seed each collection that does not exist yet."""

    @abstractmethod
    def list_cases(self):
        ...

    @abstractmethod
    def list_rooms(self):
        ...

    @abstractmethod
    def list_surgeons(self):
        ...

    @abstractmethod
    def insert_case(self, case):
        ...

    @abstractmethod
    def replace_all(self, cases):
        ...

    def update_case(self, case):
        cases = self.list_cases()
        for i, existing in enumerate(cases):
            if existing.id == case.id:
                cases[i] = case
                self.replace_all(cases)
                return case
        raise CaseNotFoundError(case.id)


class InMemoryRepository(CaseRepository):
    def __init__(self):
        self._cases = None
        self._rooms = None
        self._surgeons = None

    def initialize(self, default_cases, default_surgeons, default_rooms):
        if self._cases is None:
            self._cases = [c if isinstance(c, Case) else Case.from_dict(c) for c in default_cases]
        if self._surgeons is None:
            self._surgeons = [s if isinstance(s, Surgeon) else Surgeon.from_dict(s) for s in default_surgeons]
        if self._rooms is None:
            self._rooms = [r if isinstance(r, Room) else Room.from_dict(r) for r in default_rooms]

    def list_cases(self):
        return list(self._cases or [])

    def list_rooms(self):
        return list(self._rooms or [])

    def list_surgeons(self):
        return list(self._surgeons or [])

    def insert_case(self, case):
        self._cases = self.list_cases() + [case]

    def replace_all(self, cases):
        self._cases = list(cases)


class JsonFileRepository(CaseRepository):
    """One JSON file per collection under data_dir; writes go through a temp file + rename."""

    CASES_FILE = 'cases.json'
    ROOMS_FILE = 'rooms.json'
    SURGEONS_FILE = 'surgeons.json'

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)

    def _path(self, name):
        return self.data_dir / name

    def _read(self, name):
        path = self._path(name)
        if not path.exists():
            return []
        try:
            with open(path, encoding='utf-8') as fh:
                return json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise RepositoryError(f"Could not read {path}: {exc}", details={'path': str(path)}) from exc

    def _write(self, name, rows):
        path = self._path(name)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=f'.{name}.', suffix='.tmp')
        except OSError as exc:
            raise RepositoryError(f"Could not write {path}: {exc}", details={'path': str(path)}) from exc
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(rows, fh, indent=2)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as exc:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise RepositoryError(f"Could not write {path}: {exc}", details={'path': str(path)}) from exc

    def initialize(self, default_cases, default_surgeons, default_rooms):
        seeds = [
            (self.CASES_FILE, [c.to_dict() if isinstance(c, Case) else copy.deepcopy(c) for c in default_cases]),
            (self.SURGEONS_FILE, [s.to_dict() if isinstance(s, Surgeon) else dict(s) for s in default_surgeons]),
            (self.ROOMS_FILE, [r.to_dict() if isinstance(r, Room) else dict(r) for r in default_rooms]),
        ]
        for name, rows in seeds:
            if not self._path(name).exists():
                logger.info(f"Seeding {self._path(name)} with {len(rows)} record(s)")
                self._write(name, rows)

    def list_cases(self):
        try:
            return cases_from_dicts(self._read(self.CASES_FILE))
        except CaseValidationError as exc:
            raise RepositoryError(f"Stored case is invalid: {exc.message}", details=exc.details) from exc

    def list_rooms(self):
        return [Room.from_dict(r) for r in self._read(self.ROOMS_FILE)]

    def list_surgeons(self):
        return [Surgeon.from_dict(s) for s in self._read(self.SURGEONS_FILE)]

    def insert_case(self, case):
        rows = self._read(self.CASES_FILE)
        rows.append(case.to_dict())
        self._write(self.CASES_FILE, rows)

    def replace_all(self, cases):
        self._write(self.CASES_FILE, cases_to_dicts(cases))


def _manifest_minutes(value, row_number):
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        minutes = float('nan')
    if pd.isna(minutes) or not minutes.is_integer() or minutes < 0:
        raise CaseValidationError(
            f"Row {row_number}: surgeonEstimateMinutes must be a whole number of minutes, got {value!r}",
            field='surgeonEstimateMinutes',
        )
    return int(minutes)


def load_manifest(source):
    """
    Read a CSV manifest into case drafts ready for enrichment.

    Required columns: patientId, procedure, surgeon, room, startTime,
    surgeonEstimateMinutes. Optional 'conflicts' holds ';'-separated notes.
    """
    try:
        df = pd.read_csv(source, dtype={'startTime': str, 'patientId': str})
    except (OSError, ValueError) as exc:
        raise RepositoryError(f"Could not read manifest: {exc}") from exc

    missing = [col for col in MANIFEST_COLUMNS if col not in df.columns]
    if missing:
        raise CaseValidationError(f"Manifest is missing columns: {', '.join(missing)}", field=missing[0])

    drafts = []
    for number, (_, row) in enumerate(df.iterrows(), start=1):
        raw_conflicts = row.get('conflicts', '')
        conflicts = [] if pd.isna(raw_conflicts) else [n.strip() for n in str(raw_conflicts).split(';') if n.strip()]
        drafts.append({
            'patientId': str(row['patientId']),
            'procedure': str(row['procedure']),
            'surgeon': str(row['surgeon']),
            'room': str(row['room']),
            'startTime': str(row['startTime']).strip(),
            'surgeonEstimateMinutes': _manifest_minutes(row['surgeonEstimateMinutes'], number),
            'conflicts': conflicts,
        })
    logger.info(f"Loaded {len(drafts)} draft case(s) from manifest")
    return drafts
