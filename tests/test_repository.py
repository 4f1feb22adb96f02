# =============================================================================
# tests/test_repository.py
# Unit Tests for case persistence
# =============================================================================

import io
import json

import pytest

from errors import CaseNotFoundError, CaseValidationError, RepositoryError
from hospital_config import DEFAULT_CASES, ROOMS, SURGEONS
from repository import InMemoryRepository, JsonFileRepository, load_manifest


@pytest.fixture
def json_repo(tmp_path):
    repository = JsonFileRepository(tmp_path / 'store')
    repository.initialize(DEFAULT_CASES, SURGEONS, ROOMS)
    return repository


class TestJsonFileRepository:

    def test_initialize_seeds_files(self, json_repo, tmp_path):
        assert len(json_repo.list_cases()) == len(DEFAULT_CASES)
        assert [r.name for r in json_repo.list_rooms()] == [r['name'] for r in ROOMS]
        assert len(json_repo.list_surgeons()) == len(SURGEONS)
        assert (tmp_path / 'store' / 'cases.json').exists()

    def test_initialize_does_not_overwrite(self, json_repo):
        json_repo.replace_all(json_repo.list_cases()[:2])
        json_repo.initialize(DEFAULT_CASES, SURGEONS, ROOMS)
        assert len(json_repo.list_cases()) == 2

    def test_insert_case(self, json_repo, make_case):
        json_repo.insert_case(make_case(id='new'))
        assert json_repo.list_cases()[-1].id == 'new'

    def test_update_case(self, json_repo):
        first = json_repo.list_cases()[0]
        json_repo.update_case(first.with_changes(room='OR 4 (Neuro)', start_time='12:00'))
        stored = json_repo.list_cases()[0]
        assert (stored.room, stored.start_time) == ('OR 4 (Neuro)', '12:00')

    def test_update_unknown_case(self, json_repo, make_case):
        with pytest.raises(CaseNotFoundError):
            json_repo.update_case(make_case(id='ghost'))

    def test_stored_json_uses_wire_keys(self, json_repo, tmp_path):
        rows = json.loads((tmp_path / 'store' / 'cases.json').read_text())
        assert rows[0]['startTime'] == DEFAULT_CASES[0]['startTime']
        assert 'start_time' not in rows[0]

    def test_corrupt_file(self, tmp_path):
        store = tmp_path / 'bad'
        store.mkdir()
        (store / 'cases.json').write_text('{not json')
        with pytest.raises(RepositoryError):
            JsonFileRepository(store).list_cases()

    def test_invalid_stored_case(self, tmp_path):
        store = tmp_path / 'invalid'
        store.mkdir()
        bad = dict(DEFAULT_CASES[0], aiP50Minutes=999)
        (store / 'cases.json').write_text(json.dumps([bad]))
        with pytest.raises(RepositoryError):
            JsonFileRepository(store).list_cases()

    def test_failed_write_removes_temp_file(self, json_repo, tmp_path, monkeypatch):
        def refuse(src, dst):
            raise OSError("read-only filesystem")

        monkeypatch.setattr('repository.os.replace', refuse)
        with pytest.raises(RepositoryError):
            json_repo.replace_all([])
        monkeypatch.undo()
        assert list((tmp_path / 'store').glob('*.tmp')) == []
        assert len(json_repo.list_cases()) == len(DEFAULT_CASES)

    def test_missing_store_is_empty(self, tmp_path):
        assert JsonFileRepository(tmp_path / 'nowhere').list_cases() == []


class TestInMemoryRepository:

    def test_roundtrip(self, make_case):
        repo = InMemoryRepository()
        repo.initialize(DEFAULT_CASES, SURGEONS, ROOMS)
        repo.insert_case(make_case(id='x'))
        assert repo.list_cases()[-1].id == 'x'
        repo.replace_all([])
        assert repo.list_cases() == []

    def test_list_returns_copy(self, repo):
        repo.list_cases().clear()
        assert len(repo.list_cases()) == 5


class TestLoadManifest:

    def test_reads_drafts(self):
        csv = io.StringIO(
            "patientId,procedure,surgeon,room,startTime,surgeonEstimateMinutes,conflicts\n"
            "P010,Appendectomy,Dr. Bailey,OR 1,08:00,60,PACU tight; MRI booked\n"
            "P011,Hip Replacement,Dr. Torres,OR 2,09:30,120,\n"
        )
        drafts = load_manifest(csv)
        assert drafts[0] == {
            'patientId': 'P010', 'procedure': 'Appendectomy', 'surgeon': 'Dr. Bailey', 'room': 'OR 1',
            'startTime': '08:00', 'surgeonEstimateMinutes': 60, 'conflicts': ['PACU tight', 'MRI booked'],
        }
        assert drafts[1]['conflicts'] == []

    def test_missing_columns(self):
        csv = io.StringIO("patientId,procedure\nP1,Appendectomy\n")
        with pytest.raises(CaseValidationError):
            load_manifest(csv)

    @pytest.mark.parametrize("minutes", ['', 'ninety', '90.9', '-15'])
    def test_bad_estimate_minutes(self, minutes):
        csv = io.StringIO(
            "patientId,procedure,surgeon,room,startTime,surgeonEstimateMinutes\n"
            "P010,Appendectomy,Dr. Bailey,OR 1,08:00,60\n"
            f"P011,Hip Replacement,Dr. Torres,OR 2,09:30,{minutes}\n"
        )
        with pytest.raises(CaseValidationError) as exc:
            load_manifest(csv)
        assert exc.value.details['field'] == 'surgeonEstimateMinutes'
        assert exc.value.message.startswith('Row 2:')

    def test_whole_float_estimate_accepted(self):
        csv = io.StringIO(
            "patientId,procedure,surgeon,room,startTime,surgeonEstimateMinutes\n"
            "P010,Appendectomy,Dr. Bailey,OR 1,08:00,90.0\n"
        )
        assert load_manifest(csv)[0]['surgeonEstimateMinutes'] == 90
