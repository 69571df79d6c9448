# Estimated 1RM and personal-record detection.
# Epley: 1RM = w * (1 + r / 30). Reps below 1 are treated as a single.
# Only working sets count towards records; warmups and cooldowns never do.

import math
from typing import Any, Iterable, Mapping, Sequence

PR_TYPE_HEAVIEST_SET = 'heaviest_set'
PR_TYPE_E1RM = 'e1rm'

WORKING_SET = 'working'


def estimated_1rm(weight: float, reps: int) -> float:
    """
    Estimated one-rep max using the Epley formula.
    Used to compare strength across rep ranges (e.g. 135x10 vs 185x3).
    """
    r = max(1, reps)
    return weight * (1 + r / 30.0)


def _round_one_decimal(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def _is_working(set_record: Mapping[str, Any]) -> bool:
    set_type = set_record.get('set_type')
    return set_type is None or set_type == WORKING_SET


def _best(sets: Iterable[Mapping[str, Any]]) -> tuple[float, float]:
    max_weight = 0.0
    max_e1rm = 0.0
    for s in sets:
        w = float(s.get('weight') or 0)
        r = s.get('reps') or 0
        if w > 0 and r > 0:
            max_weight = max(max_weight, w)
            max_e1rm = max(max_e1rm, estimated_1rm(w, r))
    return max_weight, max_e1rm


def check_set_pr(
    weight: float,
    reps: int,
    previous_sets: Iterable[Mapping[str, Any]],
    current_sets: Iterable[Mapping[str, Any]] = (),
) -> dict:
    """
    Whether a set beats every earlier set of the same exercise.

    Args:
        weight, reps: The set being checked.
        previous_sets: Sets from earlier sessions of the same exercise. Non-working
            set types are ignored.
        current_sets: The other sets already logged in the current workout.

    Returns:
        {'is_heaviest_set_pr': bool, 'is_e1rm_pr': bool}
    """
    if weight <= 0 or reps <= 0:
        return {'is_heaviest_set_pr': False, 'is_e1rm_pr': False}

    previous_working = [s for s in previous_sets if _is_working(s)]
    prev_weight, prev_e1rm = _best(previous_working)
    cur_weight, cur_e1rm = _best(current_sets)
    max_weight = max(prev_weight, cur_weight)
    max_e1rm = max(prev_e1rm, cur_e1rm)

    return {
        'is_heaviest_set_pr': weight > max_weight,
        'is_e1rm_pr': estimated_1rm(weight, reps) > max_e1rm,
    }


def get_prs_for_session(
    exercises: Sequence[Mapping[str, Any]],
    previous_sets_by_exercise: Mapping[str, Sequence[Mapping[str, Any]]],
) -> list[dict]:
    """
    PRs hit in a workout before it is saved, at most one of each type per exercise.

    exercises: [{'exercise_name': str, 'sets': [{'set_type', 'weight', 'reps'}]}]
    previous_sets_by_exercise: earlier sets keyed by exercise name.
    """
    prs = []
    for exercise in exercises:
        name = exercise['exercise_name']
        working_sets = [s for s in exercise.get('sets', []) if s.get('set_type') == WORKING_SET]
        if not working_sets:
            continue

        seen = set()
        previous_sets = previous_sets_by_exercise.get(name, [])
        for index, s in enumerate(working_sets):
            if s['weight'] <= 0 or s['reps'] <= 0:
                continue
            other_sets = [o for i, o in enumerate(working_sets) if i != index]
            status = check_set_pr(s['weight'], s['reps'], previous_sets, other_sets)

            if status['is_heaviest_set_pr'] and PR_TYPE_HEAVIEST_SET not in seen:
                seen.add(PR_TYPE_HEAVIEST_SET)
                prs.append({
                    'exercise_name': name,
                    'pr_type': PR_TYPE_HEAVIEST_SET,
                    'value': s['weight'],
                    'weight': s['weight'],
                    'reps': s['reps'],
                })
            if status['is_e1rm_pr'] and PR_TYPE_E1RM not in seen:
                seen.add(PR_TYPE_E1RM)
                prs.append({
                    'exercise_name': name,
                    'pr_type': PR_TYPE_E1RM,
                    'value': _round_one_decimal(estimated_1rm(s['weight'], s['reps'])),
                    'weight': s['weight'],
                    'reps': s['reps'],
                })
    return prs


def get_recent_prs(sessions: Sequence[Mapping[str, Any]], limit: int = 5) -> list[dict]:
    """
    Replay sessions oldest first and collect every time a template day's
    exercise set a new heaviest set or e1RM. Returns the latest ``limit``,
    newest first.

    sessions: [{'template_day_id', 'workout_date' (ISO date), 'logs': [...]}]
    """
    ordered = sorted(sessions, key=lambda s: s['workout_date'])
    best_by_key = {}
    prs = []

    for session in ordered:
        for log in session.get('logs', []):
            if not _is_working(log):
                continue
            w = float(log.get('weight') or 0)
            r = log.get('reps') or 0
            if w <= 0 or r <= 0:
                continue

            key = (session['template_day_id'], log['exercise_name'])
            best = best_by_key.setdefault(key, {'heaviest_set': 0.0, 'e1rm': 0.0})
            e1rm = estimated_1rm(w, r)

            if w > best['heaviest_set']:
                best['heaviest_set'] = w
                prs.append({
                    'exercise_name': log['exercise_name'],
                    'template_day_id': session['template_day_id'],
                    'pr_type': PR_TYPE_HEAVIEST_SET,
                    'value': w,
                    'workout_date': session['workout_date'],
                })
            if e1rm > best['e1rm']:
                best['e1rm'] = e1rm
                prs.append({
                    'exercise_name': log['exercise_name'],
                    'template_day_id': session['template_day_id'],
                    'pr_type': PR_TYPE_E1RM,
                    'value': _round_one_decimal(e1rm),
                    'workout_date': session['workout_date'],
                })

    if limit <= 0:
        return []
    return list(reversed(prs[-limit:]))


def session_best_e1rms(sessions: Sequence[Mapping[str, Any]], exercise_name: str) -> list[float]:
    """Best working-set e1RM per session (oldest first) for one exercise; sessions without it are skipped."""
    values = []
    for session in sorted(sessions, key=lambda s: s['workout_date']):
        logs = [
            log for log in session.get('logs', [])
            if log.get('exercise_name') == exercise_name and _is_working(log)
        ]
        _, best_e1rm = _best(logs)
        if best_e1rm > 0:
            values.append(best_e1rm)
    return values
