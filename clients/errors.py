"""Exception hierarchy shared by the collaborator clients and the pipelines."""

from __future__ import annotations


class GeoToolkitError(Exception):
    """Base class for every error raised by this project."""


class InputValidationError(GeoToolkitError, ValueError):
    """Required user input is missing; raised before any network call."""


class ConfigurationError(GeoToolkitError):
    """A required credential or setting is absent."""


class SearchError(GeoToolkitError):
    """The search service rejected the request or could not be reached."""


class StructuredOutputError(GeoToolkitError, ValueError):
    """LLM output did not parse as JSON."""
