"""Custom exceptions for Regenlock services.

Only conditions that must abort the calling action are exceptions. Missing
items, rejected edits, drift and per-item export failures are reported as
values instead.
"""


class RegenlockError(Exception):
    """Base class for Regenlock errors."""


class GeneratorError(RegenlockError):
    """Raised when the external generator call fails.

    A generate/regenerate action that hits this error creates no version.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code, if the generator answered at all
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message if status_code is None else f"{message} (status {status_code})")


class ArtifactFetchError(RegenlockError):
    """Raised when a remote export artifact cannot be fetched.

    The export aggregator turns this into a per-item failure record.

    Attributes:
        url: Artifact URL
        reason: Short reason string for the export manifest
    """

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")



class ExportManifestError(RegenlockError):
    """Raised when an export ran but its manifest could not be written.

    Attributes:
        summary: ExportSummary of the items processed before the failure
        reason: Underlying error message
    """

    def __init__(self, summary, reason: str):
        self.summary = summary
        self.reason = reason
        super().__init__(f"Failed to write export manifest {summary.manifest_name}: {reason}")
