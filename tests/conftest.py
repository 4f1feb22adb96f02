# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import pytest

from hospital_config import ROOMS
from models import Case, Room
from oracle import LocalOracle
from repository import InMemoryRepository
from schedule_manager import ScheduleManager
from time_grid import TimeGrid


# =============================================================================
# REFERENCE DATA FIXTURES
# =============================================================================

@pytest.fixture
def rooms():
    """The four canonical rooms"""
    return [Room.from_dict(r) for r in ROOMS]


@pytest.fixture
def grid():
    """07:00-18:00 at 1.5 px/min"""
    return TimeGrid(start_hour=7, end_hour=18, pixels_per_minute=1.5)


@pytest.fixture
def make_case():
    """Factory for cases with sensible defaults"""
    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        n = counter['n']
        data = {
            'id': f'case-{n}',
            'patient_id': f'P{n:03d}',
            'procedure': 'Laparoscopic Cholecystectomy',
            'surgeon': 'Dr. Grey',
            'room': 'OR 1 (Gen)',
            'start_time': '07:30',
            'surgeon_estimate_minutes': 60,
            'ai_p50_minutes': 60,
            'ai_p90_minutes': 75,
            'turnover_minutes': 25,
            'priority': 'Elective',
            'risk': 'Low',
            'conflicts': (),
        }
        data.update(overrides)
        data['conflicts'] = tuple(data['conflicts'])
        return Case(**data).validate()

    return _make


@pytest.fixture
def sample_cases(make_case):
    """Two rooms with idle gaps, one case in an unknown room"""
    return [
        make_case(id='a', room='OR 1 (Gen)', start_time='07:30', ai_p50_minutes=60, ai_p90_minutes=80, turnover_minutes=25),
        make_case(id='b', room='OR 1', start_time='10:00', ai_p50_minutes=45, ai_p90_minutes=60, turnover_minutes=20,
                  surgeon='Dr. Bailey', priority='Urgent'),
        make_case(id='c', room='OR 2 (Ortho)', start_time='09:00', ai_p50_minutes=120, ai_p90_minutes=150,
                  turnover_minutes=30, surgeon='Dr. Torres', risk='Medium'),
        make_case(id='d', room='OR 2 (Ortho)', start_time='07:00', ai_p50_minutes=90, ai_p90_minutes=110,
                  turnover_minutes=30, surgeon='Dr. Torres', risk='High', conflicts=['Requires special tray']),
        make_case(id='e', room='Hybrid Suite', start_time='12:00', ai_p50_minutes=30, ai_p90_minutes=40,
                  turnover_minutes=15, priority='Emergent'),
    ]


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def oracle(rooms, tmp_path):
    """Local oracle without a duration model"""
    return LocalOracle(rooms, model_path=tmp_path / 'missing_model.pkl')


@pytest.fixture
def repo(rooms, sample_cases):
    repository = InMemoryRepository()
    repository.initialize(sample_cases, [], rooms)
    return repository


@pytest.fixture
def manager(repo, oracle):
    mgr = ScheduleManager(repository=repo, oracle=oracle)
    mgr.load()
    return mgr
