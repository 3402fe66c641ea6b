import csv
import io
from typing import Dict, Iterable

from promptwars.models import Game, Score, Submission, Team, SUBMISSION_FIELDS, SCORE_FIELDS
from .scoring import round_total

HEADERS = [
    'Round', 'Team', 'Prompt', 'Output', 'Notes',
    'Creativity', 'Clarity', 'PromptPower', 'RoundTotal', 'CumulativeScore',
]


def _flatten(text) -> str:
    return (text or '').replace('\r\n', ' ').replace('\n', ' ').replace('\r', ' ')


def round_csv(game: Game, teams: Iterable[Team], submissions: Dict[int, Submission],
              scores: Dict[int, Score]) -> str:
    """One CSV row per team for the game's current round.

    CumulativeScore includes the round total until the round is finalized;
    afterwards the team score already contains it.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator='\n')
    writer.writerow(HEADERS)
    for team in teams:
        sub = submissions.get(team.id)
        score = scores.get(team.id)
        total = round_total(score)
        cumulative = (team.score or 0) + (0 if game.is_finalized else total)
        texts = [_flatten(getattr(sub, f, '')) for f in SUBMISSION_FIELDS]
        points = [int(getattr(score, f, 0) or 0) for f in SCORE_FIELDS]
        writer.writerow([game.current_round, team.name] + texts + points + [total, cumulative])
    return buf.getvalue()


def export_game_round(store, game: Game) -> str:
    round_no = game.current_round
    return round_csv(game, store.list_teams(game), store.list_submissions(game, round_no),
                     store.list_scores(game, round_no))


def export_filename(game: Game) -> str:
    return f'prompt-wars_round-{game.current_round}.csv'
