import random
from typing import List, Optional, Sequence

from flask import current_app

from promptwars.models import ANY_MODE
from .errors import EmptyPoolError


def filter_pool(bank: Sequence[dict], mode: str) -> List[dict]:
    if mode == ANY_MODE:
        return list(bank)
    return [entry for entry in bank if entry.get('mode') == mode]


def draw_challenge(bank: Sequence[dict], mode: str, rng=random, strict: bool = False) -> dict:
    """Pick a challenge uniformly from the entries matching ``mode``.

    When no entry matches, the whole bank is used instead unless ``strict``
    is set. An empty bank (or an empty match under ``strict``) raises
    EmptyPoolError so the caller can abort the transition untouched.
    """
    pool = filter_pool(bank, mode)
    if not pool:
        if strict or not bank:
            raise EmptyPoolError(f'No challenges available for mode {mode}')
        current_app.logger.warning(f"[selector] no '{mode}' challenges, drawing from the full bank")
        pool = list(bank)
    return rng.choice(pool)


def draw_twist(bank: Sequence[str], rng=random) -> str:
    if not bank:
        raise EmptyPoolError('The twist bank is empty')
    return rng.choice(list(bank))


def draw_round(game, challenges: Sequence[dict], twists: Sequence[str], rng=random,
               strict: bool = False) -> dict:
    """Challenge and twist fields for a new round of ``game``."""
    challenge = draw_challenge(challenges, game.mode, rng=rng, strict=strict)
    twist: Optional[str] = draw_twist(twists, rng=rng) if game.twist_enabled else None
    return {'challenge': challenge, 'twist': twist}
