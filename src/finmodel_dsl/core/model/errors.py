"""Errors raised while reading model documents from disk.

A model document is the authored YAML/JSON form of a DSL model. Loading
failures are distinct from validation diagnostics: they mean there is no
model to validate at all.
"""


class ModelDocumentError(Exception):
    """Base error for model documents."""


class ModelFileNotFoundError(ModelDocumentError):
    """Model file does not exist at the given path."""


class UnsupportedModelFormatError(ModelDocumentError):
    """Model format not supported (v1: YAML/JSON)."""


class ModelParseError(ModelDocumentError):
    """YAML/JSON parsing failed or the root is not a mapping."""
