import random
import re

from rental_api.services.booking_id import generate_booking_id


class FixedRandom:
    def __init__(self):
        self.bounds = []

    def randrange(self, bound):
        self.bounds.append(bound)
        return bound - 1


def test_booking_id_format():
    booking_id = generate_booking_id()
    assert re.fullmatch(r"CR\d+", booking_id)


def test_booking_id_uses_timestamp_and_suffix():
    assert generate_booking_id(now_ms=1700000000000, rng=FixedRandom()) == "CR1700000000000999"


def test_random_space_grows_with_attempts():
    rng = FixedRandom()
    generate_booking_id(0, now_ms=1, rng=rng)
    generate_booking_id(1, now_ms=1, rng=rng)
    generate_booking_id(2, now_ms=1, rng=rng)
    assert rng.bounds == [1000, 10000, 100000]


def test_first_attempt_suffix_stays_below_1000():
    rng = random.Random(42)
    for _ in range(200):
        booking_id = generate_booking_id(0, now_ms=5, rng=rng)
        assert int(booking_id[len("CR5"):]) < 1000
