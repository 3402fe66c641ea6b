from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from typing import Dict, Any

from promptwars.store import GameStore, room_for
from promptwars.services.games.timer import cancel_countdown, ensure_countdown


_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_facilitator_count: Dict[str, int] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if ctx and ctx.get('is_facilitator'):
        _release_facilitator(ctx['game_code'])


def handle_join_game(data):
    data = data or {}
    game_code = data.get('game_code') or data.get('game')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    code = game_code.upper()
    is_facilitator = data.get('role') == 'facilitator'
    room = room_for(code)
    join_room(room)

    previous = _sid_to_ctx.get(_get_sid())
    if previous and previous.get('is_facilitator'):
        _release_facilitator(previous['game_code'])
    _sid_to_ctx[_get_sid()] = {'game_code': code, 'is_facilitator': is_facilitator}
    emit('joined', {'room': room, 'role': 'facilitator' if is_facilitator else 'participant'})

    if is_facilitator:
        _facilitator_count[code] = _facilitator_count.get(code, 0) + 1
        # Resume the countdown for a running game the facilitator returns to
        game = GameStore().get(code)
        if game and game.is_running:
            ensure_countdown(current_app._get_current_object(), code)


def handle_leave_game(data):
    game_code = (data or {}).get('game_code') or (data or {}).get('game')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    code = game_code.upper()
    room = room_for(code)
    leave_room(room)
    emit('left', {'room': room})
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and ctx.get('game_code') == code:
        _sid_to_ctx.pop(_get_sid(), None)
        if ctx.get('is_facilitator'):
            _release_facilitator(code)


def handle_ping(data):
    emit('pong', data or {})


def facilitator_count(game_code: str) -> int:
    return _facilitator_count.get(game_code.upper(), 0)


def _release_facilitator(game_code: str) -> None:
    """Drop one facilitator; the countdown only runs while one is attached."""
    remaining = max(0, _facilitator_count.get(game_code, 0) - 1)
    if remaining:
        _facilitator_count[game_code] = remaining
        return
    _facilitator_count.pop(game_code, None)
    cancel_countdown(game_code)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from promptwars import socketio

    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
