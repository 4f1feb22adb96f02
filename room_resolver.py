# room_resolver.py
from logging_config import get_logger

logger = get_logger(__name__)


def _two_token_prefix(label):
    tokens = label.split()
    if len(tokens) < 2:
        return None
    return f"{tokens[0]} {tokens[1]}"


def labels_match(room_name, case_room):
    """
    Token-prefix match between a canonical room name and a case's room label.

    'OR 1 (Gen)' and 'OR 1' match either way round. So do 'OR 1' and 'OR 10',
    the heuristic only looks at the first two tokens.
    """
    room_prefix = _two_token_prefix(room_name)
    if room_prefix is not None and case_room.startswith(room_prefix):
        return True
    case_prefix = _two_token_prefix(case_room)
    if case_prefix is not None and room_name.startswith(case_prefix):
        return True
    return False


def room_names(rooms):
    return [r['name'] if isinstance(r, dict) else r.name for r in rooms]


def resolve_room(case_room, rooms):
    """Canonical room name for a free-text label, or None. First canonical room wins."""
    names = room_names(rooms)
    for name in names:
        if labels_match(name, case_room):
            return name
    if case_room in names:
        return case_room
    return None


def bucket_by_room(cases, rooms):
    """
    Group cases under their canonical room, keeping input order inside each bucket.

    Every canonical room gets a bucket, possibly empty. Cases whose label
    resolves to no room are left out (and logged).
    """
    buckets = {name: [] for name in room_names(rooms)}
    for c in cases:
        key = resolve_room(c.room, rooms)
        if key is None:
            logger.warning(f"Case {c.id} has unknown room '{c.room}', not placed on the grid")
            continue
        buckets[key].append(c)
    return buckets


def unresolved_cases(cases, rooms):
    return [c for c in cases if resolve_room(c.room, rooms) is None]
