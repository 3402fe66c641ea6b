"""Round/phase state machine.

setup -> prompt -> [twist] -> scoring -> results -> (prompt of next round | end),
and end -> setup on play again. Every transition is written with a
conditional update on (phase, current_round), so a second facilitator acting
on a stale view gets InvalidTransition instead of skipping a phase.
"""
import json
from typing import Dict

from flask import current_app

from promptwars.models import Game, Phase, MODES
from promptwars.store import GameStore
from .errors import InvalidTransition, TimerRunning, ValidationError
from .scoring import apply_round_totals
from .selector import draw_round
from .timer import twist_length

MIN_ROUNDS, MAX_ROUNDS = 1, 10
MIN_ROUND_LENGTH, MAX_ROUND_LENGTH = 30, 900


def _bounded_int(data: dict, key: str, low: int, high: int) -> int:
    value = data[key]
    if isinstance(value, bool):
        raise ValidationError(f'{key} must be an integer')
    try:
        value = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f'{key} must be an integer')
    if not low <= value <= high:
        raise ValidationError(f'{key} must be between {low} and {high}')
    return value


def validate_settings(data: dict) -> Dict[str, object]:
    unknown = set(data) - {'rounds', 'round_length', 'mode', 'twist_enabled'}
    if unknown:
        raise ValidationError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
    fields = {}
    if 'rounds' in data:
        fields['rounds'] = _bounded_int(data, 'rounds', MIN_ROUNDS, MAX_ROUNDS)
    if 'round_length' in data:
        fields['round_length'] = _bounded_int(data, 'round_length', MIN_ROUND_LENGTH, MAX_ROUND_LENGTH)
    if 'mode' in data:
        if data['mode'] not in MODES:
            raise ValidationError(f"mode must be one of {', '.join(MODES)}")
        fields['mode'] = data['mode']
    if 'twist_enabled' in data:
        if not isinstance(data['twist_enabled'], bool):
            raise ValidationError('twist_enabled must be true or false')
        fields['twist_enabled'] = data['twist_enabled']
    return fields


def configure(store: GameStore, game: Game, changes: dict) -> Game:
    if game.phase != Phase.SETUP:
        raise InvalidTransition('Settings can only change during setup')
    fields = validate_settings(changes)
    if 'round_length' in fields:
        fields['time_left'] = fields['round_length']
    if fields:
        store.update(game, fields)
    return game


def _transition(store: GameStore, game: Game, fields: dict, *tables: str, clear_round=None) -> Game:
    from_phase, from_round = game.phase, game.current_round
    claimed = store.compare_and_set(
        game, fields,
        Game.phase == from_phase,
        Game.current_round == from_round,
        commit=False,
    )
    if not claimed:
        store.session.rollback()
        raise InvalidTransition('The game has already moved on; refresh and try again')
    if clear_round is not None:
        store.clear_round(game, clear_round)
    store.save(game, 'games', *tables)
    current_app.logger.info(
        f"[phase] game={game.game_code} {from_phase}@{from_round} -> {game.phase}@{game.current_round}"
    )
    return game


def _new_round_fields(store: GameStore, game: Game) -> dict:
    challenges = [c.to_dict() for c in store.list_challenges(game)]
    twists = [t.text for t in store.list_twists(game)]
    drawn = draw_round(game, challenges, twists,
                       strict=bool(current_app.config.get('STRICT_MODE_POOL')))
    return {
        'current_challenge': json.dumps(drawn['challenge']),
        'current_twist': drawn['twist'],
        'phase': Phase.PROMPT,
        'time_left': game.round_length,
        'is_running': True,
    }


def start_game(store: GameStore, game: Game) -> Game:
    if game.phase != Phase.SETUP:
        raise InvalidTransition('Game has already started')
    min_teams = int(current_app.config.get('MIN_TEAMS', 2))
    if len(store.list_teams(game)) < min_teams:
        raise ValidationError(f'Add at least {min_teams} teams to start.')
    fields = _new_round_fields(store, game)
    return _transition(store, game, fields, 'submissions', 'scores', clear_round=game.current_round)


def advance(store: GameStore, game: Game) -> Game:
    phase = game.phase
    if phase in (Phase.PROMPT, Phase.TWIST) and game.is_running:
        raise TimerRunning('Timer must be paused or finished before moving on')

    if phase == Phase.PROMPT and game.twist_enabled:
        floor = int(current_app.config.get('TWIST_MIN_SEC', 45))
        fields = {'phase': Phase.TWIST, 'time_left': twist_length(game.round_length, floor), 'is_running': True}
        return _transition(store, game, fields)

    if phase in (Phase.PROMPT, Phase.TWIST):
        return _transition(store, game, {'phase': Phase.SCORING, 'is_running': False})

    if phase == Phase.RESULTS:
        if game.current_round < game.rounds:
            next_round = game.current_round + 1
            fields = _new_round_fields(store, game)
            fields['current_round'] = next_round
            return _transition(store, game, fields, 'submissions', 'scores', clear_round=next_round)
        return _transition(store, game, {'phase': Phase.END, 'is_running': False})

    if phase == Phase.SCORING:
        raise InvalidTransition('Finalize scoring before moving on')
    raise InvalidTransition(f'Cannot advance from {phase}')


def finalize_round(store: GameStore, game: Game) -> Dict[int, int]:
    return apply_round_totals(store, game)


def play_again(store: GameStore, game: Game) -> Game:
    if game.phase != Phase.END:
        raise InvalidTransition('Play again is only available once the game has ended')
    fields = {
        'phase': Phase.SETUP,
        'current_round': 1,
        'finalized_round': 0,
        'is_running': False,
        'time_left': game.round_length,
    }
    # Round 1 of the new game starts empty; cumulative team scores stay
    return _transition(store, game, fields, 'submissions', 'scores', clear_round=1)
