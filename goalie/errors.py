class GoalieError(Exception):
    """Base class for every error raised by the engine."""


# Rejected before any write.
class InvalidInput(GoalieError, ValueError):
    pass


class InvalidCoordinate(InvalidInput):
    pass


class InvalidGridIndex(InvalidInput):
    pass


class InvalidAmount(InvalidInput):
    pass


class NotFound(GoalieError, LookupError):
    pass


class ChallengeNotFound(NotFound):
    pass


# The challenge is in a state that does not allow the operation.
class StateConflict(GoalieError):
    pass


class ChallengeFull(StateConflict):
    pass


class ChallengeCompleted(StateConflict):
    pass


class NotFull(StateConflict):
    pass


class AlreadySettled(StateConflict):
    pass


class SettlementInProgress(StateConflict):
    pass


# A collaborator (database, payout) failed.
class DependencyFailure(GoalieError, RuntimeError):
    pass


class StoreError(DependencyFailure):
    pass


class PayoutFailed(DependencyFailure):
    pass
