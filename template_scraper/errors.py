class TemplateScraperError(Exception):
    """Base class for errors raised by this package."""


class MissingInputError(TemplateScraperError, ValueError):
    """The user has not supplied what an extraction needs (file, headers, URL)."""


class ExtractionCancelled(TemplateScraperError):
    """The user cancelled the extraction while a remote call was in flight."""


class ExtractionInProgress(TemplateScraperError):
    """An extraction is running; the requested change has to wait for it."""
