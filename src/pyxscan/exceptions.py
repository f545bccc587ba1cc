"""pyxscan exception hierarchy.

All public exceptions inherit from PyxScanError, giving callers a single
base class to catch when they want to handle any pipeline failure
without swallowing unrelated errors.

Best-effort collaborators (dependency scan, repository metadata, registry
security data) never raise these; they degrade to empty results and log
the reason instead.
"""

from __future__ import annotations


class PyxScanError(Exception):
    """Base exception for all pyxscan errors."""


class ConfigError(PyxScanError):
    """Raised when required configuration is missing or invalid.

    Covers live submission without an admin API key, unknown model
    identifiers, and malformed repository or package references.
    """


class TransientError(PyxScanError):
    """Raised for infrastructure failures that are worth retrying.

    Covers connection resets, timeouts, HTTP 429 and 5xx responses.
    ``with_retry`` retries these with backoff; callers only see them
    once every attempt is exhausted.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SourceFetchError(PyxScanError):
    """Raised when a source provider cannot supply required data.

    Covers missing commits, empty trees, and repositories or packages
    for which no file could be downloaded.
    """


class UpstreamError(SourceFetchError):
    """Raised for a non-transient HTTP error status from an upstream API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AnalysisError(PyxScanError):
    """Raised when AI-assisted analysis of a skill fails.

    Analysis errors are fatal for the skill being scanned and are never
    retried: repeating an expensive model call on a deterministic
    output problem wastes cost without fixing it.
    """


class EngineOutputError(AnalysisError):
    """Raised when the engine output cannot be transported or parsed.

    Covers non-JSON output, a missing structured-output envelope field,
    schema-violating values, timeouts and a missing engine binary.
    """


class EngineReportedError(AnalysisError):
    """Raised when the engine explicitly signals an error in its envelope."""


class ScanFailedError(PyxScanError):
    """Raised when one or more skills of a scan job failed.

    Sibling skills are always attempted first; this error only marks the
    enclosing job as failed once the batch has finished.
    """


class JobStoreError(PyxScanError):
    """Raised for invalid job store operations.

    Covers unknown skill identifiers and malformed enqueue requests.
    """
