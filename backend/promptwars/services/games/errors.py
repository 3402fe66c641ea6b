class GameError(Exception):
    """Base class for rejected game actions. Carries the HTTP status to answer with."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GameError):
    status_code = 400


class InvalidTransition(GameError):
    status_code = 409


class TimerRunning(InvalidTransition):
    pass


class AlreadyFinalized(GameError):
    status_code = 409


class EmptyPoolError(GameError):
    status_code = 422
