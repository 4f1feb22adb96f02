"""
LLM-backed oracle using the OpenAI chat completions API.

Structured calls ask for a JSON object and are validated before anything
reaches the schedule; free-text calls (summary, chat) pass through.
"""

import json

import openai

from errors import CaseValidationError, ConfigurationError, OracleError
from hospital_config import OPENAI_API_KEY, OPENAI_MODEL
from logging_config import get_logger
from models import Case, cases_to_dicts, merge_conflicts
from oracle import EMPTY_SUMMARY, ENRICHMENT_FIELDS, ScheduleOracle, build_case

logger = get_logger(__name__)

CHAT_SYSTEM_PROMPT = """You are a helpful assistant for an Operating Room scheduler.
You will be given the current day's OR schedule as JSON context with each prompt.
Answer questions based *only* on this provided schedule data.
- Be concise and professional.
- When asked about a case, refer to it by the patientId (e.g., P001).
- Do not invent, assume, or mention confidential patient information such as names, diagnoses or medical history.
- If a question cannot be answered from the schedule, say that the information is not available in the schedule."""

SUMMARY_SYSTEM_PROMPT = "You are an expert assistant for Operating Room scheduling analysis."

ENRICH_SYSTEM_PROMPT = (
    "You are an expert OR scheduling AI. Predict operational details for a surgical case. "
    "Reply with a JSON object with keys aiP50Minutes, aiP90Minutes, turnoverMinutes (integers), "
    "priority (Elective|Urgent|Emergent), risk (Low|Medium|High) and conflicts (list of strings)."
)

OPTIMIZE_SYSTEM_PROMPT = (
    "You are an expert data transformation AI. Re-sequence and re-calculate start times for a "
    "surgical schedule and reply with a JSON object {\"cases\": [...]} containing every case."
)

PARSE_SYSTEM_PROMPT = (
    "You are an expert data extraction AI. Convert unstructured schedule text into a JSON object "
    "{\"cases\": [...]} where each case has procedure, surgeon, room, startTime (HH:mm), "
    "surgeonEstimateMinutes, aiP50Minutes, aiP90Minutes, turnoverMinutes, priority, risk and conflicts."
)


class OpenAIOracle(ScheduleOracle):
    def __init__(self, client=None, model=None, api_key=None):
        if client is None:
            api_key = api_key or OPENAI_API_KEY
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set")
            client = openai.OpenAI(api_key=api_key)
        self.client = client
        self.model = model or OPENAI_MODEL

    # --- transport -------------------------------------------------------

    def _complete(self, system, prompt, json_mode=False, temperature=0.2):
        kwargs = {}
        if json_mode:
            kwargs['response_format'] = {'type': 'json_object'}
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {'role': 'system', 'content': system},
                    {'role': 'user', 'content': prompt},
                ],
                temperature=temperature,
                **kwargs,
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI request failed: {e}")
            raise OracleError(f"The AI request failed: {e}") from e
        return response.choices[0].message.content or ''

    def _complete_json(self, system, prompt):
        text = self._complete(system, prompt, json_mode=True, temperature=0)
        try:
            data = json.loads(text.strip())
        except json.JSONDecodeError as e:
            raise OracleError("The AI returned malformed JSON", details={'response': text[:500]}) from e
        if not isinstance(data, dict):
            raise OracleError("The AI returned JSON that is not an object", details={'response': text[:500]})
        return data

    @staticmethod
    def _case_rows(data):
        rows = data.get('cases', [])
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise OracleError("The AI returned cases that are not JSON objects", details={'cases': str(rows)[:500]})
        return rows

    # --- contract --------------------------------------------------------

    def enrich(self, draft):
        prompt = (
            f"Procedure: {draft['procedure']}\n"
            f"Surgeon: {draft['surgeon']}\n"
            f"Surgeon's Estimated Time: {draft['surgeonEstimateMinutes']} minutes\n"
            f"User-provided requirements/conflicts: {', '.join(draft.get('conflicts') or []) or 'None'}\n\n"
            "P90 should be roughly 1.2-1.4x P50. Turnover is about 25 minutes for simple cases and 40 for "
            "complex ones. Add any other typical resource requirements to conflicts."
        )
        data = self._complete_json(ENRICH_SYSTEM_PROMPT, prompt)
        missing = [f for f in ENRICHMENT_FIELDS if f not in data]
        if missing:
            raise OracleError(f"The AI response is missing {', '.join(missing)}", details={'missing': missing})
        try:
            enrichment = {
                'aiP50Minutes': int(data['aiP50Minutes']),
                'aiP90Minutes': int(data['aiP90Minutes']),
                'turnoverMinutes': int(data['turnoverMinutes']),
                'priority': data['priority'],
                'risk': data['risk'],
            }
        except (TypeError, ValueError) as e:
            raise OracleError(f"The AI returned non-numeric durations: {e}") from e
        enrichment['conflicts'] = list(merge_conflicts(draft.get('conflicts'), data.get('conflicts') or []))
        return enrichment

    def optimize(self, cases):
        prompt = (
            "Optimize this single-day surgical schedule to minimize idle time between cases.\n"
            "1. Re-sequence cases within their assigned rooms to make the schedule as compact as possible.\n"
            "2. Do NOT change any field except startTime.\n"
            "3. The first case in each room starts at or after 07:30.\n"
            "4. Each next case in a room starts at the previous startTime + aiP50Minutes + turnoverMinutes.\n"
            "5. Return ALL cases sorted by their new start times.\n\n"
            f"Current schedule:\n{json.dumps(cases_to_dicts(cases), indent=2)}"
        )
        data = self._complete_json(OPTIMIZE_SYSTEM_PROMPT, prompt)
        try:
            optimized = [Case.from_dict(row) for row in self._case_rows(data)]
        except CaseValidationError as e:
            raise OracleError(f"The AI returned an invalid case: {e.message}", details=e.details) from e
        self._check_only_start_times_changed(cases, optimized)
        return optimized

    @staticmethod
    def _check_only_start_times_changed(before, after):
        originals = {c.id: c for c in before}
        if sorted(originals) != sorted(c.id for c in after):
            raise OracleError("The AI dropped, duplicated or invented cases while optimizing")
        for c in after:
            if c.with_changes(start_time=originals[c.id].start_time) != originals[c.id]:
                raise OracleError(f"The AI changed fields other than startTime on {c.id}", details={'case_id': c.id})

    def summarize(self, cases):
        if not cases:
            return EMPTY_SUMMARY
        lines = "\n".join(
            f"- Room {c.room}: {c.procedure} ({c.surgeon}) at {c.start_time} for {c.ai_p50_minutes}min. "
            f"Priority: {c.priority}, Risk: {c.risk}. Conflicts: {', '.join(c.conflicts) or 'None'}"
            for c in cases
        )
        prompt = (
            "As an expert OR scheduler analyst, review today's surgical schedule and give a concise summary.\n\n"
            f"Today's Schedule:\n{lines}\n\n"
            "Highlight:\n1. **Overall Status**\n2. **Potential Risks & Bottlenecks**\n"
            "3. **Efficiency Opportunities**\nKeep it professional, concise and actionable."
        )
        return self._complete(SUMMARY_SYSTEM_PROMPT, prompt, temperature=0.3)

    def chat(self, messages, schedule_context):
        history = [{'role': 'system', 'content': CHAT_SYSTEM_PROMPT}]
        for m in messages[:-1]:
            history.append({'role': 'user' if m['sender'] == 'user' else 'assistant', 'content': m['text']})
        question = messages[-1]['text'] if messages else ''
        history.append({
            'role': 'user',
            'content': (
                f"Current OR Schedule:\n```json\n{schedule_context}\n```\n\n"
                f"Based on the schedule above, please answer the user's question: \"{question}\""
            ),
        })
        try:
            stream = self.client.chat.completions.create(model=self.model, messages=history, stream=True)
            for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except openai.OpenAIError as e:
            logger.error(f"OpenAI chat stream failed: {e}")
            raise OracleError(f"The AI chat request failed: {e}") from e

    def parse_schedule_text(self, text):
        prompt = (
            "Parse the following raw text schedule into surgical cases. Infer reasonable values for "
            "turnover, risk and priority when they are not mentioned.\n\n"
            f"Raw Text:\n---\n{text}\n---"
        )
        data = self._complete_json(PARSE_SYSTEM_PROMPT, prompt)
        cases = []
        for index, row in enumerate(self._case_rows(data)):
            draft = {k: v for k, v in row.items() if k not in ENRICHMENT_FIELDS and k != 'id'}
            draft['patientId'] = f"P{index + 1:03d}"
            enrichment = {f: row.get(f) for f in ENRICHMENT_FIELDS}
            enrichment['conflicts'] = row.get('conflicts') or []
            cases.append(build_case(draft, enrichment))
        return cases
