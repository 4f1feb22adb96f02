# =============================================================================
# tests/test_models.py
# Unit Tests for case records
# =============================================================================

import pytest

from errors import CaseValidationError
from hospital_config import DEFAULT_CASES
from models import Case, Room, merge_conflicts


@pytest.fixture
def wire_case():
    return dict(DEFAULT_CASES[1])


class TestCaseWireFormat:

    def test_from_dict_maps_camel_case(self, wire_case):
        case = Case.from_dict(wire_case)
        assert case.patient_id == 'P002'
        assert case.start_time == '10:15'
        assert case.ai_p50_minutes == 65
        assert case.conflicts == ('PACU capacity tight after 11:00',)

    def test_to_dict_restores_wire_keys(self, wire_case):
        assert Case.from_dict(wire_case).to_dict() == wire_case

    def test_all_seed_cases_valid(self):
        assert len([Case.from_dict(c) for c in DEFAULT_CASES]) == len(DEFAULT_CASES)

    def test_conflicts_optional(self, wire_case):
        del wire_case['conflicts']
        assert Case.from_dict(wire_case).conflicts == ()

    def test_missing_field(self, wire_case):
        del wire_case['turnoverMinutes']
        with pytest.raises(CaseValidationError) as exc:
            Case.from_dict(wire_case)
        assert exc.value.details['field'] == 'turnoverMinutes'


class TestCaseValidation:

    @pytest.mark.parametrize("field,value", [
        ('aiP50Minutes', 200),          # above P90
        ('turnoverMinutes', -5),
        ('surgeonEstimateMinutes', 12.5),
        ('priority', 'Routine'),
        ('risk', 'Extreme'),
        ('startTime', '7.30'),
    ])
    def test_invalid_values(self, wire_case, field, value):
        wire_case[field] = value
        with pytest.raises(CaseValidationError) as exc:
            Case.from_dict(wire_case)
        assert exc.value.code == 'CASE_001'
        assert exc.value.details['field'] == field

    def test_p50_equal_p90_allowed(self, wire_case):
        wire_case['aiP50Minutes'] = wire_case['aiP90Minutes']
        Case.from_dict(wire_case)

    def test_id_is_immutable(self, make_case):
        case = make_case(id='fixed')
        with pytest.raises(CaseValidationError):
            case.with_changes(id='other')
        assert case.with_changes(start_time='09:00').id == 'fixed'

    def test_occupied_minutes(self, make_case):
        assert make_case(ai_p50_minutes=60, ai_p90_minutes=70, turnover_minutes=25).occupied_minutes == 85


class TestHelpers:

    def test_merge_conflicts_dedupes_in_order(self):
        assert merge_conflicts(['a', 'b'], ['b', 'c', 'a'], None) == ('a', 'b', 'c')

    def test_room_roundtrip(self):
        room = Room.from_dict({'id': 3, 'name': 'OR 3 (Cardio)'})
        assert room == Room('3', 'OR 3 (Cardio)')
        assert room.to_dict() == {'id': '3', 'name': 'OR 3 (Cardio)'}
