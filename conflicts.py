# conflicts.py
PACU = 'PACU'
SPECIAL_RESOURCE = 'SpecialResource'
HIGH_RISK = 'HighRisk'

# Category -> keywords, scanned in this order (lower-case substring match)
CONFLICT_KEYWORDS = [
    (PACU, ('pacu',)),
    (SPECIAL_RESOURCE, ('special', 'mri', 'perfusionist', 'tech', 'equipment')),
]

ICON_TITLES = {
    PACU: 'PACU Capacity Concern',
    SPECIAL_RESOURCE: 'Special Resource Required',
    HIGH_RISK: 'High Risk Case',
}


def conflict_icons(conflicts):
    """
    One icon per category at most, sourced from the first note that mentions it.

    Returns [{'category', 'source_text'}] in category order (PACU first).
    """
    icons = []
    for category, keywords in CONFLICT_KEYWORDS:
        for note in conflicts or ():
            lowered = note.lower()
            if any(k in lowered for k in keywords):
                icons.append({'category': category, 'source_text': note})
                break
    return icons


def classify_case(case):
    """Conflict icons for a case plus the standalone high-risk flag."""
    icons = conflict_icons(case.conflicts)
    has_pacu = any(i['category'] == PACU for i in icons)
    if case.risk == 'High' and not has_pacu:
        icons.append({'category': HIGH_RISK, 'source_text': None})
    return icons


def flag_summary(case):
    """{'pacu': bool, 'special_resource': bool, 'high_risk': bool} for tables and charts."""
    categories = {i['category'] for i in classify_case(case)}
    return {
        'pacu': PACU in categories,
        'special_resource': SPECIAL_RESOURCE in categories,
        'high_risk': HIGH_RISK in categories,
    }
