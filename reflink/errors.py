"""Error taxonomy for the annotation pipeline."""

from __future__ import annotations


class AnnotationError(Exception):
    """Base class for annotation failures. `status_code` is the HTTP mapping."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InvalidInput(AnnotationError):
    status_code = 400


class MissingCredential(AnnotationError):
    status_code = 500


class UpstreamUnavailable(AnnotationError):
    status_code = 503

    def __init__(self, message: str = "", upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class ParseFailure(AnnotationError):
    """Classifier response matched neither known shape."""

    status_code = 502
