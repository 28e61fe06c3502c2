"""Exception hierarchy for the scan→Markdown pipeline.

Every failure that the orchestrator knows how to report derives from
:class:`ScanMdError`.  Components translate low level errors (``OSError``,
``httpx.HTTPError``, PyMuPDF parsing errors) into one of the classes below
at their own boundary so that the pipeline only ever has to deal with this
small taxonomy.
"""

from __future__ import annotations


class ScanMdError(Exception):
    """Base class for all pipeline failures."""


class ConfigurationError(ScanMdError):
    """Bad configuration or unknown provider selection."""


class DocumentFormatError(ScanMdError):
    """The source document cannot be read as a PDF or raster image."""


class EmptyDocumentError(DocumentFormatError):
    """The source document parsed correctly but has no pages."""


class RemoteServiceError(ScanMdError):
    """A recognition backend answered with an error or could not be reached."""


class FilesystemError(ScanMdError):
    """Creating, reading or writing local files failed."""


class IncompleteResultError(FilesystemError):
    """Persisted partial results are missing or do not form a contiguous page run."""
