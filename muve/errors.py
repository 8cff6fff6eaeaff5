"""Exception types shared across the evaluation pipeline."""

from __future__ import annotations


class EvaluationSetupError(Exception):
    """A setup stage could not produce what later stages need (fatal for the job)."""


class GeocodingError(Exception):
    """The geocoder returned no match for an address."""


class ImageFetchError(Exception):
    """An image could not be downloaded or was not a usable image."""


class PageRenderError(Exception):
    """A listing page could not be rendered within its timeout."""


class VisionResponseError(Exception):
    """The vision model response could not be mapped onto the submitted images."""


class GeoSourceError(Exception):
    """An external geo data source failed or returned unusable data."""


class RecordNotFoundError(Exception):
    """No evaluation record exists for the given id."""


class RecordSealedError(Exception):
    """A write was attempted on an evaluation that already reached a terminal status."""


class InvalidTransitionError(Exception):
    """A status change other than processing -> completed | error was requested."""


class JobAlreadyRunningError(Exception):
    """A background run is already in flight for this job id."""
