"""
Output layer.

Components:
    - definition → validate_output_definition, extract_data_sources
    - formatter  → format_outputs, resolve_source, infer_columns
"""

from .definition import extract_data_sources, output_sources, validate_output_definition
from .formatter import format_outputs, infer_columns, resolve_source, title_label

__all__ = [
    "extract_data_sources",
    "output_sources",
    "validate_output_definition",
    "format_outputs",
    "infer_columns",
    "resolve_source",
    "title_label",
]
