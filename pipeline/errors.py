"""Error taxonomy for the density map pipeline.

Every failure the pipeline can report derives from DensityMapError so the
entry script can tell pipeline failures apart from programming errors.
Row-level parse failures (MalformedRecordError) are absorbed by the
incident loader; everything else aborts the run.
"""

from typing import Optional


class DensityMapError(Exception):
    """Base class for pipeline errors.

    Attributes:
        stage: Pipeline stage the error was raised in (set by the runner).
    """

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class NotFoundError(DensityMapError, LookupError):
    """Named boundary is absent from the boundary dataset."""


class MalformedRecordError(DensityMapError, ValueError):
    """Incident row has non-numeric or missing coordinates."""

    def __init__(self, message: str, row_index=None):
        super().__init__(message)
        self.row_index = row_index


class CRSMismatchError(DensityMapError, ValueError):
    """Boundary and incident coordinate reference systems disagree."""


class InsufficientDataError(DensityMapError, ValueError):
    """Point set is too small or degenerate for density estimation."""


class InvalidParameterError(DensityMapError, ValueError):
    """Estimator or configuration parameter is out of range."""


class ResourceUnavailableError(DensityMapError, RuntimeError):
    """External collaborator (basemap tile service, inset asset) failed."""


class StageError(DensityMapError):
    """Wraps the failure of one pipeline stage.

    Args:
        stage: Name of the failed stage ("load", "filter", "estimate",
            "compose", "write").
        cause: Original exception.
    """

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"stage '{stage}' failed: {cause}", stage=stage)
        self.cause = cause
