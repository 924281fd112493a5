import re

# exact names only, ignoring case, spaces and dashes
ALIASES = {
    "completed_story_points": ["completed_story_points", "completed_points", "story_points_completed",
                               "completed", "velocity", "done_points", "done"],
}

def _norm(name):
    return re.sub(r"[\s\-]+", "_", str(name).strip().lower())

def guess_column(target, columns):
    t = _norm(target)
    for col in columns:
        if _norm(col) == t:
            return col
    for alias in ALIASES.get(target, []):
        for col in columns:
            if _norm(col) == alias:
                return col
    return None
