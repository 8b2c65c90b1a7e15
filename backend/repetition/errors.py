"""Exceptions raised by the repetition scheduler."""


class RepetitionError(Exception):
    """Base class for errors while processing a repetition rule."""


class ConfigurationError(RepetitionError):
    """Rule has an unusable schedule or note count."""


class PersistenceError(RepetitionError):
    """A read or write against the database failed."""


class RepetitionBatchError(RepetitionError):
    """One or more rules failed during a scheduler run.

    Args:
        errors: Mapping of rule UUID to error message
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        details = "; ".join(f"{uuid}: {message}" for uuid, message in self.errors.items())
        super().__init__(f"{len(self.errors)} repetition rule(s) failed: {details}")
