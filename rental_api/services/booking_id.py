import random
import time

BOOKING_ID_PREFIX = "CR"
BASE_RANDOM_SPACE = 1000


def generate_booking_id(attempt: int = 0, now_ms: int = None, rng: random.Random = None) -> str:
    """
    Human readable booking reference: CR + epoch milliseconds + random suffix.

    The random suffix is drawn from [0, 1000) on the first attempt and the
    range grows tenfold with every retry (0-9999 on the first retry).
    Collisions are unlikely, not impossible.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random
    suffix = rng.randrange(BASE_RANDOM_SPACE * 10 ** max(attempt, 0))
    return f"{BOOKING_ID_PREFIX}{now_ms}{suffix}"
