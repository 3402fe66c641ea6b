from flask import Blueprint, Response, abort, jsonify, request, current_app
from functools import wraps
from sqlalchemy.exc import SQLAlchemyError
import time

from promptwars.models import MODES, ANY_MODE, Phase, SUBMISSION_FIELDS, SCORE_FIELDS, TEAM_NAME_MAX
from promptwars.store import GameStore
from promptwars.services.games import phases, timer
from promptwars.services.games.errors import GameError, InvalidTransition, ValidationError
from promptwars.services.games.export import export_game_round, export_filename
from promptwars.services.games.scoring import clamp_score, leaderboard, round_total, round_totals


games = Blueprint('games', __name__)
store = GameStore()

_last_controller_action: dict[str, float] = {}


@games.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify({'error': exc.message}), exc.status_code


@games.errorhandler(SQLAlchemyError)
def handle_store_error(exc):
    store.session.rollback()
    current_app.logger.warning(f"[store-error] {request.method} {request.path}: {exc}")
    return jsonify({'error': 'Could not save changes'}), 503


@games.errorhandler(404)
def handle_not_found(exc):
    return jsonify({'error': exc.description}), 404


def _request_data() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _is_facilitator() -> bool:
    return 'facilitator' in (request.args.get('role'), _request_data().get('role'))


def facilitator_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not _is_facilitator():
            return jsonify({'error': 'Only the facilitator may do that'}), 403
        return view(*args, **kwargs)
    return wrapped


def _get_game(game_code):
    game = store.get(game_code)
    if not game:
        abort(404, description='Game not found')
    return game


def _get_team(game, team_id):
    team = store.get_team(game, team_id)
    if not team:
        abort(404, description='Team not found')
    return team


def _debounced(action: str, game_code: str) -> bool:
    try:
        debounce_ms = int(current_app.config.get('CONTROLLER_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        debounce_ms = 0
    if debounce_ms <= 0:
        return False
    key = f"{action}:{game_code.upper()}"
    now = time.time() * 1000.0
    if now - _last_controller_action.get(key, 0) < debounce_ms:
        return True
    _last_controller_action[key] = now
    return False


def _sync_countdown(game) -> None:
    if game.is_running:
        timer.ensure_countdown(current_app._get_current_object(), game.game_code)
    else:
        timer.cancel_countdown(game.game_code)


def _links(game_code: str) -> dict:
    base = current_app.config.get('PUBLIC_BASE_URL', '/')
    return {
        'facilitator_link': f"{base}?game={game_code}&role=facilitator",
        'participant_link': f"{base}?game={game_code}",
    }


def _state(game) -> dict:
    round_no = game.current_round
    teams = store.list_teams(game)
    submissions = store.list_submissions(game, round_no)
    scores = store.list_scores(game, round_no)
    payload = game.to_dict()
    payload['teams'] = [t.to_dict() for t in teams]
    payload['leaderboard'] = [t.to_dict() for t in leaderboard(teams)]
    payload['submissions'] = {str(tid): s.to_dict() for tid, s in submissions.items()}
    payload['scores'] = {str(tid): s.to_dict() for tid, s in scores.items()}
    payload['round_totals'] = {str(tid): total for tid, total in round_totals(teams, scores).items()}
    floor = int(current_app.config.get('TWIST_MIN_SEC', 45))
    payload['twist_length'] = timer.twist_length(game.round_length, floor)
    return payload


@games.route('/create', methods=['POST'])
def create_game():
    data = _request_data()
    settings = phases.validate_settings(
        {k: data[k] for k in ('rounds', 'round_length', 'mode', 'twist_enabled') if k in data}
    )
    game = store.create(**settings)
    payload = {'message': 'New game created!', 'game_code': game.game_code}
    payload.update(_links(game.game_code))
    return jsonify(payload), 201


@games.route('/join', methods=['POST'])
def join_game():
    data = _request_data()
    game_code = data.get('game') or data.get('game_code') or request.args.get('game')
    if not game_code:
        return jsonify({'error': 'Game code is required'}), 400
    if not isinstance(game_code, str):
        raise ValidationError('Game code must be text')
    game = _get_game(game_code)
    role = 'facilitator' if _is_facilitator() else 'participant'
    return jsonify({'role': role, 'state': _state(game)})


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    return jsonify(_state(_get_game(game_code)))


@games.route('/<string:game_code>', methods=['DELETE'])
@facilitator_required
def delete_game(game_code):
    game = _get_game(game_code)
    timer.cancel_countdown(game.game_code)
    store.delete(game)
    return jsonify({'message': 'Game deleted'})


@games.route('/<string:game_code>/settings', methods=['PATCH'])
@facilitator_required
def update_settings(game_code):
    game = _get_game(game_code)
    changes = {k: v for k, v in _request_data().items() if k != 'role'}
    phases.configure(store, game, changes)
    return jsonify(_state(game))


# ---- Teams and submissions ----

@games.route('/<string:game_code>/teams', methods=['POST'])
def add_team(game_code):
    game = _get_game(game_code)
    name = _request_data().get('name')
    if name is not None and not isinstance(name, str):
        raise ValidationError('Team name must be text')
    if name and len(name.strip()) > TEAM_NAME_MAX:
        raise ValidationError(f'Team name must be at most {TEAM_NAME_MAX} characters')
    team = store.add_team(game, name)
    if team is None:
        return '', 204
    return jsonify(team.to_dict()), 201


@games.route('/<string:game_code>/teams/<int:team_id>', methods=['DELETE'])
def remove_team(game_code, team_id):
    game = _get_game(game_code)
    store.remove_team(game, _get_team(game, team_id))
    return jsonify({'message': 'Team removed'})


@games.route('/<string:game_code>/submissions/<int:team_id>', methods=['PUT'])
def edit_submission(game_code, team_id):
    game = _get_game(game_code)
    team = _get_team(game, team_id)
    data = _request_data()
    fields = {}
    for field in SUBMISSION_FIELDS:
        if field in data:
            if not isinstance(data[field], str):
                raise ValidationError(f'{field} must be text')
            fields[field] = data[field]
    if not fields:
        raise ValidationError(f"Provide at least one of {', '.join(SUBMISSION_FIELDS)}")
    sub = store.save_submission(game, team, game.current_round, fields)
    return jsonify(sub.to_dict())


@games.route('/<string:game_code>/scores/<int:team_id>', methods=['PUT'])
@facilitator_required
def edit_score(game_code, team_id):
    game = _get_game(game_code)
    team = _get_team(game, team_id)
    if game.phase != Phase.SCORING:
        raise InvalidTransition('Scores can only be entered during scoring')
    data = _request_data()
    fields = {f: clamp_score(data[f]) for f in SCORE_FIELDS if f in data}
    if not fields:
        raise ValidationError(f"Provide at least one of {', '.join(SCORE_FIELDS)}")
    score = store.save_score(game, team, game.current_round, fields)
    payload = score.to_dict()
    payload['round_total'] = round_total(score)
    return jsonify(payload)


# ---- Phase machine ----

@games.route('/<string:game_code>/start', methods=['POST'])
@facilitator_required
def start_game(game_code):
    if _debounced('start', game_code):
        return jsonify({'message': 'debounced'}), 202
    game = _get_game(game_code)
    phases.start_game(store, game)
    _sync_countdown(game)
    return jsonify(_state(game))


@games.route('/<string:game_code>/advance', methods=['POST'])
@facilitator_required
def advance(game_code):
    if _debounced('advance', game_code):
        return jsonify({'message': 'debounced'}), 202
    game = _get_game(game_code)
    phases.advance(store, game)
    _sync_countdown(game)
    return jsonify(_state(game))


@games.route('/<string:game_code>/finalize', methods=['POST'])
@facilitator_required
def finalize(game_code):
    if _debounced('finalize', game_code):
        return jsonify({'message': 'debounced'}), 202
    game = _get_game(game_code)
    phases.finalize_round(store, game)
    return jsonify(_state(game))


@games.route('/<string:game_code>/play-again', methods=['POST'])
@facilitator_required
def play_again(game_code):
    if _debounced('play-again', game_code):
        return jsonify({'message': 'debounced'}), 202
    game = _get_game(game_code)
    phases.play_again(store, game)
    _sync_countdown(game)
    return jsonify(_state(game))


# ---- Timer ----

@games.route('/<string:game_code>/timer/start', methods=['POST'])
@facilitator_required
def start_timer(game_code):
    game = _get_game(game_code)
    timer.start_timer(store, game)
    _sync_countdown(game)
    return jsonify(_state(game))


@games.route('/<string:game_code>/timer/stop', methods=['POST'])
@facilitator_required
def stop_timer(game_code):
    game = _get_game(game_code)
    timer.stop_timer(store, game)
    _sync_countdown(game)
    return jsonify(_state(game))


@games.route('/<string:game_code>/timer/reset', methods=['POST'])
@facilitator_required
def reset_timer(game_code):
    game = _get_game(game_code)
    timer.reset_timer(store, game)
    _sync_countdown(game)
    return jsonify(_state(game))


# ---- Export ----

@games.route('/<string:game_code>/export', methods=['GET'])
@facilitator_required
def export_round(game_code):
    game = _get_game(game_code)
    body = export_game_round(store, game)
    return Response(
        body,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={export_filename(game)}'},
    )


# ---- Challenge and twist banks ----

@games.route('/<string:game_code>/challenges', methods=['GET'])
def list_challenges(game_code):
    game = _get_game(game_code)
    return jsonify([c.to_dict() for c in store.list_challenges(game)])


@games.route('/<string:game_code>/challenges', methods=['POST'])
@facilitator_required
def add_challenge(game_code):
    game = _get_game(game_code)
    data = _request_data()
    mode = data.get('mode')
    text = (data.get('text') or '').strip() if isinstance(data.get('text'), str) else ''
    if mode not in MODES or mode == ANY_MODE:
        raise ValidationError(f"mode must be one of {', '.join(m for m in MODES if m != ANY_MODE)}")
    if not text:
        raise ValidationError('Challenge text is required')
    return jsonify(store.add_challenge(game, mode, text).to_dict()), 201


@games.route('/<string:game_code>/challenges/<int:challenge_id>', methods=['DELETE'])
@facilitator_required
def remove_challenge(game_code, challenge_id):
    game = _get_game(game_code)
    if not store.remove_challenge(game, challenge_id):
        abort(404, description='Challenge not found')
    return jsonify({'message': 'Challenge removed'})


@games.route('/<string:game_code>/twists', methods=['GET'])
def list_twists(game_code):
    game = _get_game(game_code)
    return jsonify([t.to_dict() for t in store.list_twists(game)])


@games.route('/<string:game_code>/twists', methods=['POST'])
@facilitator_required
def add_twist(game_code):
    game = _get_game(game_code)
    text = _request_data().get('text')
    text = text.strip() if isinstance(text, str) else ''
    if not text:
        raise ValidationError('Twist text is required')
    return jsonify(store.add_twist(game, text).to_dict()), 201


@games.route('/<string:game_code>/twists/<int:twist_id>', methods=['DELETE'])
@facilitator_required
def remove_twist(game_code, twist_id):
    game = _get_game(game_code)
    if not store.remove_twist(game, twist_id):
        abort(404, description='Twist not found')
    return jsonify({'message': 'Twist removed'})
