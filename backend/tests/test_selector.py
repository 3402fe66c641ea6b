import random
from collections import Counter

import pytest

from promptwars.services.games.banks import DEFAULT_CHALLENGES, DEFAULT_TWISTS
from promptwars.services.games.errors import EmptyPoolError
from promptwars.services.games.selector import draw_challenge, draw_twist, filter_pool

BANK = [dict(entry, id=i) for i, entry in enumerate(DEFAULT_CHALLENGES, start=1)]


def test_filter_pool():
    assert len(filter_pool(BANK, 'Any')) == 10
    assert {c['id'] for c in filter_pool(BANK, 'Story')} == {1, 2}
    assert filter_pool(BANK, 'Haiku')[0]['mode'] == 'Haiku'


def test_story_mode_only_draws_story_entries():
    rng = random.Random(1234)
    picks = Counter(draw_challenge(BANK, 'Story', rng=rng)['id'] for _ in range(5000))
    assert set(picks) == {1, 2}
    # Uniform over the two matches
    assert abs(picks[1] - picks[2]) < 500


def test_any_mode_draws_from_whole_bank():
    rng = random.Random(99)
    picks = {draw_challenge(BANK, 'Any', rng=rng)['id'] for _ in range(2000)}
    assert picks == set(range(1, 11))


def test_unmatched_mode_falls_back_to_full_bank(flask_app):
    bank = [c for c in BANK if c['mode'] != 'Meme']
    pick = draw_challenge(bank, 'Meme', rng=random.Random(3))
    assert pick in bank


def test_unmatched_mode_in_strict_mode_raises():
    bank = [c for c in BANK if c['mode'] != 'Meme']
    with pytest.raises(EmptyPoolError):
        draw_challenge(bank, 'Meme', strict=True)


def test_empty_banks_raise():
    with pytest.raises(EmptyPoolError):
        draw_challenge([], 'Any')
    with pytest.raises(EmptyPoolError):
        draw_twist([])


def test_draw_twist_is_uniform_over_bank():
    rng = random.Random(7)
    picks = Counter(draw_twist(DEFAULT_TWISTS, rng=rng) for _ in range(5000))
    assert set(picks) == set(DEFAULT_TWISTS)
