# hospital_config.py
import os

# 1. OPERATING THEATRES (canonical rooms the schedule grid is drawn for)
# Structure: ID, Name
ROOMS = [
    {'id': 'or-1', 'name': 'OR 1 (Gen)'},
    {'id': 'or-2', 'name': 'OR 2 (Ortho)'},
    {'id': 'or-3', 'name': 'OR 3 (Cardio)'},
    {'id': 'or-4', 'name': 'OR 4 (Neuro)'},
]

# 2. SURGEONS
SURGEONS = [
    {'id': 'sg-1', 'name': 'Dr. Grey'},
    {'id': 'sg-2', 'name': 'Dr. Torres'},
    {'id': 'sg-3', 'name': 'Dr. Yang'},
    {'id': 'sg-4', 'name': 'Dr. Shepherd'},
    {'id': 'sg-5', 'name': 'Dr. Bailey'},
]

# 3. DISPLAY GRID (day window + density of the room columns)
GRID = {
    'START_HOUR': 7,           # 07:00 top of the grid
    'END_HOUR': 18,            # 18:00 bottom of the grid (660 mins per room)
    'PIXELS_PER_MINUTE': 1.5
}

# 4. OPERATIONAL RULES
CONSTANTS = {
    'DAY_FLOOR': '07:30',        # Earliest first-case start after compaction
    'DEFAULT_TURNOVER': 25,      # Minutes to clean room after a simple case
    'COMPLEX_TURNOVER': 40,      # ... after a long / high-risk case
    'P90_FACTOR': 1.2,           # P90 = P50 * factor when no model is loaded
    'OPTIMIZER_TIME_LIMIT': 10.0 # Seconds for the CP-SAT re-sequencer
}

# 5. ENVIRONMENT OVERRIDES
DATA_DIR = os.environ.get('ORSCHED_DATA_DIR', 'data')
MODEL_PATH = os.environ.get('ORSCHED_MODEL_PATH', 'surgery_model_artifacts.pkl')
LOG_LEVEL = os.environ.get('ORSCHED_LOG_LEVEL', 'INFO')
OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
OPENAI_MODEL = os.environ.get('ORSCHED_OPENAI_MODEL', 'gpt-4o-mini')

# 6. SEED SCHEDULE (written by Repository.initialize on first run)
DEFAULT_CASES = [
    {'id': 'case-001', 'patientId': 'P001', 'procedure': 'Laparoscopic Cholecystectomy',
     'surgeon': 'Dr. Grey', 'room': 'OR 1 (Gen)', 'startTime': '07:30',
     'surgeonEstimateMinutes': 90, 'aiP50Minutes': 95, 'aiP90Minutes': 120, 'turnoverMinutes': 25,
     'priority': 'Elective', 'risk': 'Low', 'conflicts': []},
    {'id': 'case-002', 'patientId': 'P002', 'procedure': 'Appendectomy',
     'surgeon': 'Dr. Bailey', 'room': 'OR 1 (Gen)', 'startTime': '10:15',
     'surgeonEstimateMinutes': 60, 'aiP50Minutes': 65, 'aiP90Minutes': 85, 'turnoverMinutes': 25,
     'priority': 'Emergent', 'risk': 'Medium', 'conflicts': ['PACU capacity tight after 11:00']},
    {'id': 'case-003', 'patientId': 'P003', 'procedure': 'Total Knee Arthroplasty',
     'surgeon': 'Dr. Torres', 'room': 'OR 2 (Ortho)', 'startTime': '08:00',
     'surgeonEstimateMinutes': 120, 'aiP50Minutes': 130, 'aiP90Minutes': 160, 'turnoverMinutes': 30,
     'priority': 'Elective', 'risk': 'Medium', 'conflicts': ['Requires specialized equipment']},
    {'id': 'case-004', 'patientId': 'P004', 'procedure': 'Hip Replacement',
     'surgeon': 'Dr. Torres', 'room': 'OR 2 (Ortho)', 'startTime': '11:30',
     'surgeonEstimateMinutes': 110, 'aiP50Minutes': 120, 'aiP90Minutes': 150, 'turnoverMinutes': 30,
     'priority': 'Elective', 'risk': 'Medium', 'conflicts': []},
    {'id': 'case-005', 'patientId': 'P005', 'procedure': 'CABG',
     'surgeon': 'Dr. Yang', 'room': 'OR 3 (Cardio)', 'startTime': '07:45',
     'surgeonEstimateMinutes': 240, 'aiP50Minutes': 255, 'aiP90Minutes': 320, 'turnoverMinutes': 40,
     'priority': 'Urgent', 'risk': 'High', 'conflicts': ['Perfusionist availability', 'PACU bed needed']},
    {'id': 'case-006', 'patientId': 'P006', 'procedure': 'Craniotomy',
     'surgeon': 'Dr. Shepherd', 'room': 'OR 4 (Neuro)', 'startTime': '08:30',
     'surgeonEstimateMinutes': 210, 'aiP50Minutes': 225, 'aiP90Minutes': 290, 'turnoverMinutes': 40,
     'priority': 'Urgent', 'risk': 'High', 'conflicts': ['Intra-op MRI booked']},
]
