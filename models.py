# =============================================================================
# models.py
# Case / Room / Surgeon records and their wire format
# =============================================================================

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from errors import CaseValidationError, InvalidTimeFormat
from time_grid import parse_time

PRIORITIES = ('Elective', 'Urgent', 'Emergent')
RISKS = ('Low', 'Medium', 'High')

# snake_case attribute -> camelCase key used in stored JSON and oracle payloads
WIRE_KEYS = {
    'id': 'id',
    'patient_id': 'patientId',
    'procedure': 'procedure',
    'surgeon': 'surgeon',
    'room': 'room',
    'start_time': 'startTime',
    'surgeon_estimate_minutes': 'surgeonEstimateMinutes',
    'ai_p50_minutes': 'aiP50Minutes',
    'ai_p90_minutes': 'aiP90Minutes',
    'turnover_minutes': 'turnoverMinutes',
    'priority': 'priority',
    'risk': 'risk',
    'conflicts': 'conflicts',
}

MINUTE_FIELDS = ('surgeon_estimate_minutes', 'ai_p50_minutes', 'ai_p90_minutes', 'turnover_minutes')


@dataclass(frozen=True)
class Case:
    """One scheduled procedure. Rooms and surgeons are referenced by name only."""

    id: str
    patient_id: str
    procedure: str
    surgeon: str
    room: str
    start_time: str
    surgeon_estimate_minutes: int
    ai_p50_minutes: int
    ai_p90_minutes: int
    turnover_minutes: int
    priority: str
    risk: str
    conflicts: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def occupied_minutes(self) -> int:
        """Length of the layout interval: procedure plus turnover."""
        return self.ai_p50_minutes + self.turnover_minutes

    def with_changes(self, **changes) -> Case:
        if 'id' in changes and changes['id'] != self.id:
            raise CaseValidationError("Case id is immutable", field='id', case_id=self.id)
        return dataclasses.replace(self, **changes)

    def validate(self) -> Case:
        for name in MINUTE_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise CaseValidationError(
                    f"{WIRE_KEYS[name]} must be a non-negative integer, got {value!r}",
                    field=WIRE_KEYS[name], case_id=self.id,
                )
        if self.ai_p50_minutes > self.ai_p90_minutes:
            raise CaseValidationError(
                f"aiP50Minutes ({self.ai_p50_minutes}) exceeds aiP90Minutes ({self.ai_p90_minutes})",
                field='aiP50Minutes', case_id=self.id,
            )
        if self.priority not in PRIORITIES:
            raise CaseValidationError(f"Unknown priority '{self.priority}'", field='priority', case_id=self.id)
        if self.risk not in RISKS:
            raise CaseValidationError(f"Unknown risk '{self.risk}'", field='risk', case_id=self.id)
        try:
            parse_time(self.start_time)
        except InvalidTimeFormat as exc:
            raise CaseValidationError(exc.message, field='startTime', case_id=self.id) from exc
        return self

    def to_dict(self) -> Dict[str, Any]:
        data = {wire: getattr(self, attr) for attr, wire in WIRE_KEYS.items()}
        data['conflicts'] = list(self.conflicts)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Case:
        missing = [wire for wire in WIRE_KEYS.values() if wire not in data and wire != 'conflicts']
        if missing:
            raise CaseValidationError(
                f"Missing case fields: {', '.join(missing)}",
                field=missing[0], case_id=data.get('id'),
            )
        kwargs = {attr: data[wire] for attr, wire in WIRE_KEYS.items() if wire != 'conflicts'}
        kwargs['conflicts'] = tuple(data.get('conflicts') or ())
        return cls(**kwargs).validate()


@dataclass(frozen=True)
class Room:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Room:
        return cls(id=str(data['id']), name=data['name'])

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name}


@dataclass(frozen=True)
class Surgeon:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Surgeon:
        return cls(id=str(data['id']), name=data['name'])

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name}


def cases_from_dicts(rows: Iterable[Dict[str, Any]]) -> List[Case]:
    return [Case.from_dict(row) for row in rows]


def cases_to_dicts(cases: Iterable[Case]) -> List[Dict[str, Any]]:
    return [c.to_dict() for c in cases]


def merge_conflicts(*groups: Iterable[str]) -> Tuple[str, ...]:
    """Concatenate conflict notes, dropping exact duplicates, first occurrence wins."""
    merged = []
    for group in groups:
        for note in group or ():
            if note not in merged:
                merged.append(note)
    return tuple(merged)
