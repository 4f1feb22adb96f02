"""
Read-side statistics over a case set.

Everything here is pure: per-surgeon, per-room, per-priority and per-risk
aggregates, utilization, idle gaps and the flat frame the timeline chart is
drawn from.
"""

import pandas as pd

from conflicts import flag_summary
from models import PRIORITIES, RISKS
from room_resolver import bucket_by_room, resolve_room
from time_grid import TimeGrid, format_time, parse_time, round_half_up

SCHEDULE_COLUMNS = [
    'Case ID', 'Patient ID', 'Procedure', 'Surgeon', 'Room', 'Room Label',
    'Start Time', 'End Time', 'start_mins', 'end_mins', 'turnover_end_mins',
    'P50', 'P90', 'Turnover', 'Priority', 'Risk', 'Conflicts',
    'PACU', 'Special Resource', 'High Risk',
]


def cases_frame(cases):
    """One row per case, camelCase columns as stored."""
    return pd.DataFrame([c.to_dict() for c in cases], columns=[
        'id', 'patientId', 'procedure', 'surgeon', 'room', 'startTime',
        'surgeonEstimateMinutes', 'aiP50Minutes', 'aiP90Minutes', 'turnoverMinutes',
        'priority', 'risk', 'conflicts',
    ])


def room_key(label):
    """'OR 1 (Gen)' -> 'OR 1'"""
    return label.split('(')[0].strip()


def surgeon_stats(cases):
    """{surgeon: {'case_count', 'avg_duration'}} over P50 minutes, first-seen order."""
    df = cases_frame(cases)
    if df.empty:
        return {}
    grouped = df.groupby('surgeon', sort=False)['aiP50Minutes'].agg(['count', 'mean'])
    return {
        surgeon: {'case_count': int(row['count']), 'avg_duration': float(row['mean'])}
        for surgeon, row in grouped.iterrows()
    }


def room_minutes(cases):
    """Scheduled minutes (P50 + turnover) per room, parenthetical suffix stripped."""
    df = cases_frame(cases)
    if df.empty:
        return {}
    df['room_key'] = df['room'].map(room_key)
    df['scheduled'] = df['aiP50Minutes'] + df['turnoverMinutes']
    totals = df.groupby('room_key', sort=False)['scheduled'].sum()
    return {room: int(total) for room, total in totals.items()}


def _category_counts(values, categories):
    counts = pd.Series(values, dtype=object).value_counts()
    return {name: int(counts[name]) for name in categories if counts.get(name, 0) > 0}


def priority_counts(cases):
    return _category_counts([c.priority for c in cases], PRIORITIES)


def risk_counts(cases):
    return _category_counts([c.risk for c in cases], RISKS)


def total_scheduled_minutes(cases):
    return sum(c.ai_p50_minutes + c.turnover_minutes for c in cases)


def utilization(cases, room_count, grid=None):
    """Percent of available room-minutes in the day window that is scheduled."""
    grid = grid or TimeGrid()
    available = room_count * grid.window_minutes
    if available <= 0:
        return 0
    return round_half_up(100 * total_scheduled_minutes(cases) / available)


def idle_minutes(cases, rooms):
    """
    Idle minutes per canonical room beyond the mandated turnover.

    Gaps are measured between consecutive cases ordered by start time;
    overlapping cases contribute nothing.
    """
    idle = {}
    for name, bucket in bucket_by_room(cases, rooms).items():
        ordered = sorted(bucket, key=lambda c: parse_time(c.start_time))
        gap_total = 0
        for prev, nxt in zip(ordered, ordered[1:]):
            ready = parse_time(prev.start_time) + prev.occupied_minutes
            gap_total += max(0, parse_time(nxt.start_time) - ready)
        idle[name] = gap_total
    return idle


def schedule_frame(cases, rooms):
    """Flat table for the timeline chart and the detailed schedule view."""
    rows = []
    for c in cases:
        start = parse_time(c.start_time)
        end = start + c.ai_p50_minutes
        flags = flag_summary(c)
        rows.append({
            'Case ID': c.id,
            'Patient ID': c.patient_id,
            'Procedure': c.procedure,
            'Surgeon': c.surgeon,
            'Room': resolve_room(c.room, rooms) or 'Unplaced',
            'Room Label': c.room,
            'Start Time': c.start_time,
            'End Time': format_time(end),
            'start_mins': start,
            'end_mins': end,
            'turnover_end_mins': end + c.turnover_minutes,
            'P50': c.ai_p50_minutes,
            'P90': c.ai_p90_minutes,
            'Turnover': c.turnover_minutes,
            'Priority': c.priority,
            'Risk': c.risk,
            'Conflicts': ', '.join(c.conflicts) or 'None',
            'PACU': flags['pacu'],
            'Special Resource': flags['special_resource'],
            'High Risk': flags['high_risk'],
        })
    df = pd.DataFrame(rows, columns=SCHEDULE_COLUMNS)
    return df.sort_values('start_mins', kind='stable').reset_index(drop=True)


def daily_kpis(cases, rooms, grid=None):
    """Headline numbers for the dashboard and the daily summary."""
    grid = grid or TimeGrid()
    idle = idle_minutes(cases, rooms)
    minutes = room_minutes(cases)
    return {
        'total_cases': len(cases),
        'utilization': utilization(cases, len(rooms), grid),
        'scheduled_minutes': total_scheduled_minutes(cases),
        'idle_minutes': sum(idle.values()),
        'busiest_room': max(minutes, key=minutes.get) if minutes else None,
        'high_risk_cases': sum(1 for c in cases if c.risk == 'High'),
        'cases_with_conflicts': sum(1 for c in cases if c.conflicts),
    }
