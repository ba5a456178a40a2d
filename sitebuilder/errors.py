from __future__ import annotations


class SiteBuilderError(Exception):
    """Base class for failures raised while building a site."""


class ClientInputError(SiteBuilderError):
    """Bad build request (missing prompt, unknown provider). Maps to HTTP 400."""


class ProviderCallError(SiteBuilderError):
    """Upstream provider could not be reached or answered with an unusable envelope."""


class ProviderNotImplementedError(ProviderCallError):
    """A configured provider id has no request/response implementation."""


class NormalizationError(SiteBuilderError, ValueError):
    """Provider text did not contain a usable html/css/js object."""
