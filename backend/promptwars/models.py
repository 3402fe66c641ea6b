from promptwars import db
from datetime import datetime
import json
import string
import random


class Phase:
    SETUP = 'setup'
    PROMPT = 'prompt'
    TWIST = 'twist'
    SCORING = 'scoring'
    RESULTS = 'results'
    END = 'end'

    ALL = (SETUP, PROMPT, TWIST, SCORING, RESULTS, END)


MODES = ('Any', 'Story', 'Image', 'Business', 'Meme', 'Speed', 'Haiku', 'Corporate')
ANY_MODE = 'Any'
SUBMISSION_FIELDS = ('prompt', 'output', 'notes')
SCORE_FIELDS = ('creativity', 'clarity', 'power')
TEAM_NAME_MAX = 128


def generate_game_code(length=6):
    """Generate a unique, short game code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Game.query.filter_by(game_code=code).first():
            return code


class Team(db.Model):
    __tablename__ = 'team'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    name = db.Column(db.String(TEAM_NAME_MAX), nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'name': self.name,
            'score': self.score or 0,
        }


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(8), unique=True, index=True)
    rounds = db.Column(db.Integer, nullable=False, default=3)
    current_round = db.Column(db.Integer, nullable=False, default=1)
    mode = db.Column(db.String(32), nullable=False, default=ANY_MODE)
    round_length = db.Column(db.Integer, nullable=False, default=180)
    twist_enabled = db.Column(db.Boolean, nullable=False, default=True)
    phase = db.Column(db.String(16), nullable=False, default=Phase.SETUP)
    time_left = db.Column(db.Integer, nullable=False, default=180)
    is_running = db.Column(db.Boolean, nullable=False, default=False)
    current_challenge = db.Column(db.Text, nullable=True)  # JSON-encoded {id, mode, text}
    current_twist = db.Column(db.Text, nullable=True)
    # Highest round whose totals have been added to team scores
    finalized_round = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.game_code:
            self.game_code = generate_game_code()

    @property
    def challenge(self):
        return json.loads(self.current_challenge) if self.current_challenge else None

    @property
    def is_finalized(self):
        return (self.finalized_round or 0) >= (self.current_round or 1)

    def to_dict(self):
        return {
            'id': self.id,
            'game_code': self.game_code,
            'rounds': self.rounds,
            'current_round': self.current_round,
            'mode': self.mode,
            'round_length': self.round_length,
            'twist_enabled': self.twist_enabled,
            'phase': self.phase,
            'time_left': self.time_left,
            'is_running': self.is_running,
            'current_challenge': self.challenge,
            'current_twist': self.current_twist,
            'is_finalized': self.is_finalized,
        }


class Submission(db.Model):
    __tablename__ = 'submission'
    __table_args__ = (db.UniqueConstraint('team_id', 'round', name='uq_submission_team_round'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    round = db.Column(db.Integer, nullable=False)
    prompt = db.Column(db.Text, nullable=False, default='')
    output = db.Column(db.Text, nullable=False, default='')
    notes = db.Column(db.Text, nullable=False, default='')

    def to_dict(self):
        return {
            'team_id': self.team_id,
            'round': self.round,
            'prompt': self.prompt or '',
            'output': self.output or '',
            'notes': self.notes or '',
        }


class Score(db.Model):
    __tablename__ = 'score'
    __table_args__ = (db.UniqueConstraint('team_id', 'round', name='uq_score_team_round'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    round = db.Column(db.Integer, nullable=False)
    creativity = db.Column(db.Integer, nullable=False, default=0)
    clarity = db.Column(db.Integer, nullable=False, default=0)
    power = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            'team_id': self.team_id,
            'round': self.round,
            'creativity': self.creativity or 0,
            'clarity': self.clarity or 0,
            'power': self.power or 0,
        }


class Challenge(db.Model):
    __tablename__ = 'challenge'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    mode = db.Column(db.String(32), nullable=False)
    text = db.Column(db.Text, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'mode': self.mode, 'text': self.text}


class Twist(db.Model):
    __tablename__ = 'twist'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    text = db.Column(db.Text, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'text': self.text}
