from typing import Dict, Iterable, List, Optional

from flask import current_app

from promptwars.models import Game, Phase, Score, Team, SCORE_FIELDS
from .errors import AlreadyFinalized, InvalidTransition, ValidationError

MIN_SCORE = 0
MAX_SCORE = 5


def clamp_score(value) -> int:
    try:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            value = str(value).strip()
        value = int(value)
    except (TypeError, ValueError, OverflowError):
        # NaN and Infinity parse as JSON floats but have no integer value
        raise ValidationError(f'Score must be an integer, got {value!r}')
    return max(MIN_SCORE, min(MAX_SCORE, value))


def round_total(score: Optional[Score]) -> int:
    """creativity + clarity + power, unset fields counting as 0."""
    if score is None:
        return 0
    return sum(int(getattr(score, f, 0) or 0) for f in SCORE_FIELDS)


def round_totals(teams: Iterable[Team], scores: Dict[int, Score]) -> Dict[int, int]:
    return {t.id: round_total(scores.get(t.id)) for t in teams}


def leaderboard(teams: Iterable[Team]) -> List[Team]:
    return sorted(teams, key=lambda t: (-(t.score or 0), t.id))


def apply_round_totals(store, game: Game) -> Dict[int, int]:
    """Add this round's totals to cumulative team scores and move to results.

    The round is claimed with a conditional update on ``finalized_round`` so
    that two facilitators finalizing at once add the totals only once; the
    losing call raises AlreadyFinalized.
    """
    if game.phase != Phase.SCORING:
        if game.is_finalized:
            raise AlreadyFinalized(f'Round {game.current_round} is already finalized')
        raise InvalidTransition(f'Cannot finalize scoring during {game.phase}')

    round_no = game.current_round
    code = game.game_code
    totals = round_totals(store.list_teams(game), store.list_scores(game, round_no))

    claimed = store.compare_and_set(
        game,
        {Game.finalized_round: round_no, Game.phase: Phase.RESULTS},
        Game.phase == Phase.SCORING,
        Game.finalized_round < round_no,
        commit=False,
    )
    if not claimed:
        current_app.logger.info(f"[finalize-skip] game={code} round={round_no} already claimed")
        raise AlreadyFinalized(f'Round {round_no} is already finalized')

    store.add_team_points(game, totals)
    store.save(game, 'games', 'teams')
    current_app.logger.info(f"[finalize] game={code} round={round_no} totals={totals}")
    return totals
