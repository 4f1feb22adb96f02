# oracle.py
import json
import re
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

import joblib
import pandas as pd

from analytics import daily_kpis, idle_minutes, room_minutes
from errors import CaseValidationError, OracleError
from hospital_config import CONSTANTS, MODEL_PATH
from logging_config import get_logger
from models import Case, cases_to_dicts, merge_conflicts
from scheduler_engine import RoomSequencer
from time_grid import parse_time, round_half_up

logger = get_logger(__name__)

EMPTY_SUMMARY = "The schedule is currently empty. Ready for new cases to be added."
CHAT_GREETING = "Hello! I'm your OR scheduling assistant. Ask me anything about today's schedule."
NOT_IN_SCHEDULE = "That information is not available in the schedule."

ENRICHMENT_FIELDS = ('aiP50Minutes', 'aiP90Minutes', 'turnoverMinutes', 'priority', 'risk', 'conflicts')


def new_case_id():
    return f"case-{uuid.uuid4().hex}"


def build_case(draft, enrichment, case_id=None):
    """
    Merge a caller draft with oracle predictions into a validated Case.

    Conflicts are the draft's notes followed by the oracle's, de-duplicated.
    """
    missing = [f for f in ENRICHMENT_FIELDS if f not in enrichment]
    if missing:
        raise OracleError(f"Oracle response is missing {', '.join(missing)}", details={'missing': missing})
    data = dict(draft)
    data.update({f: enrichment[f] for f in ENRICHMENT_FIELDS})
    data['conflicts'] = list(merge_conflicts(draft.get('conflicts'), enrichment.get('conflicts')))
    data['id'] = case_id or new_case_id()
    try:
        return Case.from_dict(data)
    except CaseValidationError as exc:
        raise OracleError(f"Oracle produced an invalid case: {exc.message}", details=exc.details) from exc


class ChatSession:
    """
    One conversation with an oracle, owned by whoever created it.

    The transcript lives here; the current schedule is sent along with
    every message.
    """

    def __init__(self, oracle):
        self.oracle = oracle
        self.messages = [{'sender': 'bot', 'text': CHAT_GREETING}]
        self.closed = False

    def send(self, message, cases):
        """Yield the reply chunk by chunk; the full reply is recorded once streaming ends."""
        if self.closed:
            raise OracleError("Chat session is closed")
        context = json.dumps(cases_to_dicts(cases), indent=2)
        self.messages.append({'sender': 'user', 'text': message})
        reply = []
        for chunk in self.oracle.chat(list(self.messages), context):
            reply.append(chunk)
            yield chunk
        self.messages.append({'sender': 'bot', 'text': ''.join(reply)})

    def close(self):
        self.closed = True


class ScheduleOracle(ABC):
    """Prediction / generation boundary used by the schedule manager."""

    @abstractmethod
    def enrich(self, draft):
        """Draft case -> {aiP50Minutes, aiP90Minutes, turnoverMinutes, priority, risk, conflicts}."""

    @abstractmethod
    def optimize(self, cases):
        """Full case list with new start times."""

    @abstractmethod
    def summarize(self, cases):
        ...

    @abstractmethod
    def chat(self, messages, schedule_context):
        """Yield reply text chunks."""

    @abstractmethod
    def parse_schedule_text(self, text):
        ...

    def start_chat(self):
        return ChatSession(self)


# --- LOCAL (deterministic) ORACLE --------------------------------------------

# Keyword rules used when no duration model is loaded
EMERGENT_KEYWORDS = ('appendectomy', 'trauma', 'ruptured', 'emergency', 'ectopic', 'perforat')
URGENT_KEYWORDS = ('fracture', 'urgent', 'obstruction', 'cabg', 'craniotomy', 'bypass')
HIGH_RISK_KEYWORDS = ('craniotomy', 'cabg', 'bypass', 'valve', 'transplant', 'whipple', 'aortic')
MEDIUM_RISK_KEYWORDS = ('arthroplasty', 'replacement', 'fusion', 'resection', 'hysterectomy')
SUGGESTED_CONFLICTS = [
    (('cabg', 'bypass', 'valve', 'aortic'), 'Perfusionist required'),
    (('craniotomy',), 'Intra-op MRI may be requested'),
    (('robot',), 'Requires specialized equipment (surgical robot)'),
    (('arthroplasty', 'replacement', 'fusion'), 'Requires specialized equipment (implant tray)'),
]

_TEXT_LINE_RE = re.compile(r'\s*\|\s*')


def _has_any(text, keywords):
    return any(k in text for k in keywords)


class LocalOracle(ScheduleOracle):
    """
    Offline oracle: duration model from a joblib artifact when present,
    keyword rules otherwise, CP-SAT for optimize and templated text for
    summaries and chat.
    """

    def __init__(self, rooms, model=None, model_path=None):
        self.rooms = rooms
        self.model = model
        if self.model is None:
            self.model = self._load_model(Path(model_path or MODEL_PATH))

    @staticmethod
    def _load_model(path):
        if not path.exists():
            logger.warning(f"Duration model {path} not found, using surgeon estimates")
            return None
        artifacts = joblib.load(path)
        logger.info(f"Duration model loaded from {path}")
        return artifacts['model'] if isinstance(artifacts, dict) else artifacts

    def predict_duration(self, draft):
        estimate = int(draft['surgeonEstimateMinutes'])
        if self.model is None:
            return estimate
        try:
            input_df = pd.DataFrame([{
                'procedure': draft['procedure'],
                'surgeon': draft['surgeon'],
                'surgeonEstimateMinutes': estimate,
            }])
            pred = self.model.predict(input_df)[0]
            return max(1, round_half_up(float(pred)))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Prediction error for {draft.get('patientId', '?')}: {e}; using surgeon estimate")
            return estimate

    def enrich(self, draft):
        procedure = draft['procedure'].lower()
        estimate = int(draft['surgeonEstimateMinutes'])
        p50 = self.predict_duration(draft)
        p90 = max(p50, round_half_up(p50 * CONSTANTS['P90_FACTOR']))

        if _has_any(procedure, HIGH_RISK_KEYWORDS) or estimate >= 240:
            risk = 'High'
        elif _has_any(procedure, MEDIUM_RISK_KEYWORDS) or estimate >= 90:
            risk = 'Medium'
        else:
            risk = 'Low'

        if _has_any(procedure, EMERGENT_KEYWORDS):
            priority = 'Emergent'
        elif _has_any(procedure, URGENT_KEYWORDS):
            priority = 'Urgent'
        else:
            priority = 'Elective'

        suggested = [note for keywords, note in SUGGESTED_CONFLICTS if _has_any(procedure, keywords)]
        if risk == 'High':
            suggested.append('PACU bed required post-op')

        return {
            'aiP50Minutes': p50,
            'aiP90Minutes': p90,
            'turnoverMinutes': CONSTANTS['COMPLEX_TURNOVER'] if risk == 'High' else CONSTANTS['DEFAULT_TURNOVER'],
            'priority': priority,
            'risk': risk,
            'conflicts': list(merge_conflicts(draft.get('conflicts'), suggested)),
        }

    def optimize(self, cases):
        return RoomSequencer(self.rooms).solve(cases)

    def summarize(self, cases):
        if not cases:
            return EMPTY_SUMMARY
        kpis = daily_kpis(cases, self.rooms)
        minutes = room_minutes(cases)
        idle = idle_minutes(cases, self.rooms)

        if kpis['utilization'] >= 85:
            status = "A heavily booked day"
        elif kpis['utilization'] >= 50:
            status = "A busy day"
        else:
            status = "A light day"
        lines = [
            f"**Overall Status:** {status} with {kpis['total_cases']} case(s) "
            f"at {kpis['utilization']}% predicted utilization.",
        ]

        risks = [f"{c.patient_id} ({c.procedure}) is high risk" for c in cases if c.risk == 'High']
        risks += [f"{c.patient_id}: {', '.join(c.conflicts)}" for c in cases if c.conflicts]
        if kpis['busiest_room']:
            risks.append(f"{kpis['busiest_room']} carries the most load ({minutes[kpis['busiest_room']]} min)")
        lines.append("**Potential Risks & Bottlenecks:** " + ('; '.join(risks) or "None identified") + ".")

        gappy = {room: gap for room, gap in idle.items() if gap > 0}
        if gappy:
            worst = max(gappy, key=gappy.get)
            lines.append(
                f"**Efficiency Opportunities:** {sum(gappy.values())} idle minute(s) across {len(gappy)} room(s), "
                f"most in {worst} ({gappy[worst]} min). Compacting the schedule would close these gaps."
            )
        else:
            lines.append("**Efficiency Opportunities:** Rooms already run back to back.")
        return "\n".join(lines)

    def chat(self, messages, schedule_context):
        question = messages[-1]['text'] if messages else ''
        cases = json.loads(schedule_context) if schedule_context else []
        answer = self._answer(question, cases)
        for word in re.findall(r'\S+\s*', answer):
            yield word

    def _answer(self, question, cases):
        q = question.lower()
        ids = {p.upper() for p in re.findall(r'\bp\d{3,}\b', q)}
        hits = [c for c in cases if c['patientId'].upper() in ids]
        if hits:
            return ' '.join(
                f"{c['patientId']}: {c['procedure']} with {c['surgeon']} in {c['room']} at {c['startTime']} "
                f"for {c['aiP50Minutes']} min (P90 {c['aiP90Minutes']}), {c['priority']}, {c['risk']} risk."
                for c in hits
            )
        if 'how many' in q or 'count' in q:
            return f"There are {len(cases)} case(s) on today's schedule."
        if 'high risk' in q or 'high-risk' in q:
            high = [c['patientId'] for c in cases if c['risk'] == 'High']
            return f"High-risk cases: {', '.join(high)}." if high else "There are no high-risk cases today."
        if 'first' in q or 'earliest' in q:
            if not cases:
                return "The schedule is empty."
            first = min(cases, key=lambda c: parse_time(c['startTime']))
            return f"The first case is {first['patientId']} ({first['procedure']}) at {first['startTime']} in {first['room']}."
        return NOT_IN_SCHEDULE

    def parse_schedule_text(self, text):
        """
        Parse 'HH:mm | procedure | surgeon | room | minutes [| note; note]' lines.

        Blank lines and lines starting with '#' are skipped.
        """
        cases = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip() or line.lstrip().startswith('#'):
                continue
            parts = _TEXT_LINE_RE.split(line.strip())
            if len(parts) < 5:
                raise OracleError(f"Line {lineno}: expected at least 5 '|'-separated fields", details={'line': line})
            start, procedure, surgeon, room, minutes = parts[:5]
            parse_time(start)
            try:
                estimate = int(minutes)
            except ValueError:
                raise OracleError(f"Line {lineno}: '{minutes}' is not a number of minutes", details={'line': line}) from None
            draft = {
                'patientId': f"P{len(cases) + 1:03d}",
                'procedure': procedure,
                'surgeon': surgeon,
                'room': room,
                'startTime': start,
                'surgeonEstimateMinutes': estimate,
                'conflicts': [n.strip() for n in parts[5].split(';') if n.strip()] if len(parts) > 5 else [],
            }
            cases.append(build_case(draft, self.enrich(draft)))
        return cases
