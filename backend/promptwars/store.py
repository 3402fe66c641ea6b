"""Persistence boundary for game sessions.

The store is the only place that commits. Every committed write notifies the
game's subscribers with the name of the affected collection: in-process
callbacks registered through ``subscribe`` and Socket.IO clients in the
``game:<CODE>`` room. Notifications carry no payload beyond the collection
name; receivers refetch the state they care about.
"""
from typing import Callable, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from promptwars import db, socketio
from promptwars.models import ANY_MODE, Game, Team, Submission, Score, Challenge, Twist


_subscribers: Dict[str, List[Callable[[str], None]]] = {}


def room_for(game_code: str) -> str:
    return f"game:{game_code.upper()}"


def notify(game_code: str, *tables: str) -> None:
    for table in tables:
        socketio.emit('state_update', {'game_code': game_code, 'table': table},
                      to=room_for(game_code), namespace='/ws')
        for callback in list(_subscribers.get(game_code, [])):
            try:
                callback(table)
            except Exception:
                current_app.logger.exception(f"[notify-error] game={game_code} table={table}")


class GameStore:
    """SQL-backed store for a game session and its child records."""

    @property
    def session(self):
        return db.session

    def _commit(self, game_code: str, *tables: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            current_app.logger.warning(f"[store-error] game={game_code} tables={','.join(tables)} write failed")
            raise
        notify(game_code, *tables)

    # ---- Game session ----

    def create(self, **settings) -> Game:
        from promptwars.services.games.banks import DEFAULT_CHALLENGES, DEFAULT_TWISTS

        cfg = current_app.config
        settings.setdefault('rounds', int(cfg.get('DEFAULT_ROUNDS', 3)))
        settings.setdefault('round_length', int(cfg.get('DEFAULT_ROUND_LENGTH_SEC', 180)))
        settings.setdefault('mode', ANY_MODE)
        settings.setdefault('twist_enabled', True)
        game = Game(time_left=settings['round_length'], **settings)
        self.session.add(game)
        self.session.flush()
        for entry in DEFAULT_CHALLENGES:
            self.session.add(Challenge(game_id=game.id, mode=entry['mode'], text=entry['text']))
        for text in DEFAULT_TWISTS:
            self.session.add(Twist(game_id=game.id, text=text))
        self._commit(game.game_code, 'games')
        current_app.logger.info(f"[create] game={game.game_code} rounds={game.rounds} mode={game.mode}")
        return game

    def get(self, game_code: Optional[str]) -> Optional[Game]:
        if not game_code:
            return None
        return Game.query.filter_by(game_code=game_code.upper()).first()

    def update(self, game: Game, fields: dict, *tables: str) -> Game:
        for key, value in fields.items():
            setattr(game, key, value)
        self.session.add(game)
        self._commit(game.game_code, *(tables or ('games',)))
        return game

    def compare_and_set(self, game: Game, fields: dict, *criteria, commit: bool = True) -> bool:
        """Apply ``fields`` to the game row only if ``criteria`` still hold in the database.

        Returns whether the row was updated. With ``commit=False`` the update
        joins the current transaction and the caller commits through ``save``.
        """
        code = game.game_code
        count = Game.query.filter(Game.id == game.id, *criteria).update(fields, synchronize_session=False)
        if not count:
            return False
        if commit:
            self._commit(code, 'games')
        return True

    def save(self, game: Game, *tables: str) -> None:
        self.session.add(game)
        self._commit(game.game_code, *(tables or ('games',)))

    def delete(self, game: Game) -> None:
        code, gid = game.game_code, game.id
        Submission.query.filter_by(game_id=gid).delete()
        Score.query.filter_by(game_id=gid).delete()
        Team.query.filter_by(game_id=gid).delete()
        Challenge.query.filter_by(game_id=gid).delete()
        Twist.query.filter_by(game_id=gid).delete()
        Game.query.filter_by(id=gid).delete()
        self._commit(code, 'games')
        socketio.emit('session_ended', {'game_code': code}, to=room_for(code), namespace='/ws')
        _subscribers.pop(code, None)
        current_app.logger.info(f"[delete] game={code}")

    def subscribe(self, game_code: str, callback: Callable[[str], None]) -> Callable[[], None]:
        code = game_code.upper()
        _subscribers.setdefault(code, []).append(callback)

        def unsubscribe():
            listeners = _subscribers.get(code, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    # ---- Teams ----

    def list_teams(self, game: Game) -> List[Team]:
        return Team.query.filter_by(game_id=game.id).order_by(Team.id).all()

    def get_team(self, game: Game, team_id) -> Optional[Team]:
        return Team.query.filter_by(id=team_id, game_id=game.id).first()

    def add_team(self, game: Game, name: Optional[str]) -> Optional[Team]:
        name = (name or '').strip()
        if not name:
            return None
        team = Team(game_id=game.id, name=name, score=0)
        self.session.add(team)
        self._commit(game.game_code, 'teams')
        return team

    def remove_team(self, game: Game, team: Team) -> None:
        Submission.query.filter_by(team_id=team.id).delete()
        Score.query.filter_by(team_id=team.id).delete()
        self.session.delete(team)
        self._commit(game.game_code, 'teams', 'submissions', 'scores')

    def add_team_points(self, game: Game, totals: Dict[int, int]) -> None:
        """Add ``totals`` to cumulative team scores inside the current transaction."""
        for team_id, total in totals.items():
            if total:
                Team.query.filter_by(id=team_id, game_id=game.id).update(
                    {Team.score: Team.score + total}, synchronize_session=False
                )

    # ---- Round records ----

    def list_submissions(self, game: Game, round_no: int) -> Dict[int, Submission]:
        rows = Submission.query.filter_by(game_id=game.id, round=round_no).all()
        return {row.team_id: row for row in rows}

    def save_submission(self, game: Game, team: Team, round_no: int, fields: dict) -> Submission:
        sub = Submission.query.filter_by(team_id=team.id, round=round_no).first()
        if sub is None:
            sub = Submission(game_id=game.id, team_id=team.id, round=round_no, prompt='', output='', notes='')
        for key, value in fields.items():
            setattr(sub, key, value)
        self.session.add(sub)
        self._commit(game.game_code, 'submissions')
        return sub

    def list_scores(self, game: Game, round_no: int) -> Dict[int, Score]:
        rows = Score.query.filter_by(game_id=game.id, round=round_no).all()
        return {row.team_id: row for row in rows}

    def save_score(self, game: Game, team: Team, round_no: int, fields: dict) -> Score:
        score = Score.query.filter_by(team_id=team.id, round=round_no).first()
        if score is None:
            score = Score(game_id=game.id, team_id=team.id, round=round_no, creativity=0, clarity=0, power=0)
        for key, value in fields.items():
            setattr(score, key, value)
        self.session.add(score)
        self._commit(game.game_code, 'scores')
        return score

    def clear_round(self, game: Game, round_no: int) -> None:
        """Delete a round's submissions and scores inside the current transaction."""
        Submission.query.filter_by(game_id=game.id, round=round_no).delete()
        Score.query.filter_by(game_id=game.id, round=round_no).delete()

    # ---- Challenge and twist banks ----

    def list_challenges(self, game: Game) -> List[Challenge]:
        return Challenge.query.filter_by(game_id=game.id).order_by(Challenge.id).all()

    def add_challenge(self, game: Game, mode: str, text: str) -> Challenge:
        entry = Challenge(game_id=game.id, mode=mode, text=text)
        self.session.add(entry)
        self._commit(game.game_code, 'challenges')
        return entry

    def remove_challenge(self, game: Game, challenge_id) -> bool:
        count = Challenge.query.filter_by(id=challenge_id, game_id=game.id).delete()
        if not count:
            return False
        self._commit(game.game_code, 'challenges')
        return True

    def list_twists(self, game: Game) -> List[Twist]:
        return Twist.query.filter_by(game_id=game.id).order_by(Twist.id).all()

    def add_twist(self, game: Game, text: str) -> Twist:
        entry = Twist(game_id=game.id, text=text)
        self.session.add(entry)
        self._commit(game.game_code, 'twists')
        return entry

    def remove_twist(self, game: Game, twist_id) -> bool:
        count = Twist.query.filter_by(id=twist_id, game_id=game.id).delete()
        if not count:
            return False
        self._commit(game.game_code, 'twists')
        return True
