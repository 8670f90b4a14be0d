"""Exceptions raised by the judging core and translated to HTTP errors by the routers."""


class JudgeboardError(Exception):
    """Base class for every error raised by this package."""


class NotFoundError(JudgeboardError):
    """A referenced submission, score or rubric id does not resolve."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class ValidationFailed(JudgeboardError):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class ScoreValidationError(ValidationFailed):
    """A judge's criterion values do not satisfy the rubric."""


class RubricValidationError(ValidationFailed):
    """A rubric definition is malformed (duplicate keys, bad weights, ...)."""


class DataAccessError(JudgeboardError):
    """A store call failed (database or Redis fault).

    Propagated unchanged through aggregation, leaderboard and trend
    computations; nothing is retried and no partial result is returned.
    """
