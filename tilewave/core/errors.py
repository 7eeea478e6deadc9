"""Exceptions raised by tilewave.

A contradiction during generation is NOT an exception: it is reported as
SolverState.CONTRADICTION and recovered by resetting the field.
"""


class TileWaveError(Exception):
    """Base exception for tilewave errors."""

    pass


class InvalidInputError(TileWaveError, ValueError):
    """A precondition on sizes, dimensions or source data was violated."""

    pass


class GenerationFailedError(TileWaveError, RuntimeError):
    """Generation kept contradicting until the restart budget ran out."""

    def __init__(self, message: str, restarts: int = 0):
        super().__init__(message)
        self.restarts = restarts
