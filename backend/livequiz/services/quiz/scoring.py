import math

MAX_SCORE = 1000
MIN_CORRECT_SCORE = 500


def calculate_score(is_correct: bool, response_time_sec: float, time_limit_sec: float) -> int:
    """Score one answer.

    A correct answer earns 1000 points when instantaneous, decaying linearly
    to 500 at the time limit. Wrong answers earn nothing.
    """
    if not is_correct:
        return 0
    if time_limit_sec <= 0:
        raise ValueError('time_limit_sec must be positive')
    elapsed = min(max(response_time_sec, 0.0), time_limit_sec)
    multiplier = max(0.5, 1 - (elapsed / time_limit_sec) * 0.5)
    # Half-up rounding, so x.5 never rounds to the even neighbour
    return int(math.floor(MAX_SCORE * multiplier + 0.5))
