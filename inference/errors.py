"""
inference/errors.py
Error kinds raised by the detection engine and its collaborators.

Classifier and capture errors are recovered where they happen and reported as
engine events; InvalidConfiguration is the only one meant to stop startup.
"""


class ProctorError(Exception):
    """Base class for engine errors."""


class ClassifierUnavailable(ProctorError):
    """A detector failed to initialize; its conditions are disabled."""

    def __init__(self, channel: str, cause: str = ""):
        self.channel = channel
        self.cause = cause
        msg = f"{channel} detector unavailable"
        if cause:
            msg = f"{msg}: {cause}"
        super().__init__(msg)


class ClassifierTimeout(ProctorError):
    """Inference for a tick did not finish inside the tick budget."""

    def __init__(self, channel: str, budget: float):
        self.channel = channel
        self.budget = budget
        super().__init__(f"{channel} detector exceeded {budget:.3f}s budget")


class CaptureStartFailed(ProctorError):
    pass


class CaptureStopFailed(ProctorError):
    pass


class InvalidConfiguration(ProctorError, ValueError):
    pass
