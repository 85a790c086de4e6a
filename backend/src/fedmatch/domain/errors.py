"""Error taxonomy for the scoring engine.

Callers branch on ``retryable``: upstream failures are worth retrying,
bad input and missing records are not.  Scoring itself never raises for
valid input; an unsatisfiable requirement shows up as disqualifiers.
"""


class ScoringError(Exception):
    """Base class for all engine errors."""

    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ScoringError):
    """Malformed coordinates, radius, or missing identifiers."""


class NotFound(ScoringError):
    """A referenced property or opportunity does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class UpstreamUnavailable(ScoringError):
    """The federal property data source timed out or errored."""

    retryable = True


class CacheUnavailable(ScoringError):
    """The score cache could not be read or written.

    Lookups and writes carry it inside a ``CacheResult``; only the explicit
    purge raises it.
    """

    retryable = True
