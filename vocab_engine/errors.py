"""Error taxonomy.

Per-file errors (transport, empty result) mark a single queued file as
failed; crop errors drop a single card; a config error aborts the batch
before any file is touched.
"""
from __future__ import annotations


class VocabEngineError(Exception):
    """Base class for all engine errors."""


class ConfigError(VocabEngineError):
    """Missing or unusable configuration (e.g. no API credential)."""


class TransportError(VocabEngineError):
    """The recognition call failed (network, auth, quota, SDK error)."""


class ResponseParseError(TransportError):
    """The recognition call returned a body that does not match the item schema."""


class EmptyResultError(VocabEngineError):
    """The recognition call succeeded but detected no cards."""


class CropError(VocabEngineError):
    """A single card could not be cropped."""


class LoadError(CropError):
    """The source image could not be decoded."""


class EncodeError(CropError):
    """The cropped raster could not be encoded."""


class InvalidBoxError(ValueError):
    """Normalized box with max < min on either axis."""
