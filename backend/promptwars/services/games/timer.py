import itertools
from contextlib import nullcontext
from typing import Dict

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from promptwars import socketio
from promptwars.models import Game, Phase
from promptwars.store import GameStore
from .errors import InvalidTransition


# game_code -> token of the countdown task currently allowed to tick
_countdowns: Dict[str, int] = {}
_tokens = itertools.count(1)


def twist_length(round_length: int, floor: int = 45) -> int:
    return max(floor, int(round_length) // 3)


def tick(store: GameStore, game: Game) -> bool:
    """Advance the countdown by one second. Returns whether it is still running.

    Both writes are conditional so a tick racing a stop/reset never resurrects
    a stopped timer or drives time_left below zero.
    """
    if store.compare_and_set(game, {Game.time_left: Game.time_left - 1},
                             Game.is_running.is_(True), Game.time_left > 0):
        store.compare_and_set(game, {Game.is_running: False},
                              Game.is_running.is_(True), Game.time_left <= 0)
    else:
        store.compare_and_set(game, {Game.is_running: False}, Game.is_running.is_(True))
    return bool(game.is_running)


def start_timer(store: GameStore, game: Game) -> Game:
    if game.phase == Phase.SETUP:
        raise InvalidTransition('The timer starts with the game')
    fields = {'is_running': True}
    if (game.time_left or 0) <= 0:
        fields['time_left'] = int(current_app.config.get('TIMER_RESTART_FLOOR_SEC', 30))
    return store.update(game, fields)


def stop_timer(store: GameStore, game: Game) -> Game:
    return store.update(game, {'is_running': False})


def reset_timer(store: GameStore, game: Game) -> Game:
    return store.update(game, {'is_running': False, 'time_left': game.round_length})


def _app_scope(app):
    if has_app_context() and current_app._get_current_object() is app:
        return nullcontext()
    return app.app_context()


def is_counting_down(game_code: str) -> bool:
    return game_code.upper() in _countdowns


def ensure_countdown(app, game_code: str) -> None:
    """Run the once-per-second countdown for a game unless one is already live.

    - No-ops in TESTING mode unless ENABLE_TIMER_IN_TESTS, then runs inline
    - Ends by itself when the timer stops, runs out or the game disappears
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_TIMER_IN_TESTS'):
        return
    code = game_code.upper()
    if code in _countdowns:
        app.logger.info(f"[timer-skip] game={code} countdown already live")
        return
    token = next(_tokens)
    _countdowns[code] = token
    app.logger.info(f"[timer-start] game={code} token={token}")

    if app.config.get('TESTING'):
        _run_countdown(app, code, token)
    else:
        socketio.start_background_task(_run_countdown, app, code, token)


def cancel_countdown(game_code: str) -> None:
    token = _countdowns.pop(game_code.upper(), None)
    if token is not None and has_app_context():
        current_app.logger.info(f"[timer-cancel] game={game_code.upper()} token={token}")


def _run_countdown(app, code: str, token: int) -> None:
    interval = float(app.config.get('TIMER_TICK_SEC', 1))
    try:
        while _countdowns.get(code) == token:
            if interval > 0:
                socketio.sleep(interval)
            if _countdowns.get(code) != token:
                break
            with _app_scope(app):
                store = GameStore()
                game = store.get(code)
                if not game:
                    break
                try:
                    running = tick(store, game)
                except SQLAlchemyError:
                    store.session.rollback()
                    app.logger.exception(f"[timer-error] game={code} tick failed, countdown stopped")
                    break
                if not running:
                    break
    finally:
        if _countdowns.get(code) == token:
            _countdowns.pop(code, None)
        app.logger.info(f"[timer-stop] game={code} token={token}")
