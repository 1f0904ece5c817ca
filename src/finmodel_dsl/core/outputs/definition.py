"""
Output definition checks.

Works on the raw mapping form so a malformed definition can be reported
in full, entry by entry, before any run.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Union

from ..model.types import SERIES_TYPES, OutputDefinition

DefinitionLike = Union[OutputDefinition, Mapping[str, Any]]

_KINDS = (("series", "series"), ("tables", "table"), ("scalars", "scalar"))


def _raw(defn: DefinitionLike) -> Dict[str, Any]:
    if isinstance(defn, OutputDefinition):
        return defn.to_dict()
    return dict(defn)


def _valid_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def validate_output_definition(defn: DefinitionLike) -> List[str]:
    """Error messages for `defn` (empty when valid)."""
    raw = _raw(defn)
    errors: List[str] = []

    if not any(isinstance(raw.get(key), list) and raw.get(key) for key, _ in _KINDS):
        errors.append("At least one output (series, table, or scalar) must be defined")

    for key, noun in _KINDS:
        entries = raw.get(key)
        if entries is None:
            continue
        if not isinstance(entries, list):
            errors.append(f"outputs.{key} must be an array")
            continue

        ids = set()
        for entry in entries:
            if not isinstance(entry, Mapping):
                errors.append(f"Each {noun} must be an object")
                continue

            oid = entry.get("id")
            if not _valid_str(oid):
                errors.append(f"Each {noun} must have a valid id")
            elif oid in ids:
                errors.append(f'Duplicate {noun} id: "{oid}"')
            else:
                ids.add(oid)

            title = noun.capitalize()
            if not _valid_str(entry.get("source")):
                errors.append(f'{title} "{oid}" must have a valid source')
            if not _valid_str(entry.get("label")):
                errors.append(f'{title} "{oid}" must have a valid label')

            if noun == "series" and entry.get("type") and entry.get("type") not in SERIES_TYPES:
                errors.append(f'Series "{oid}" type must be one of: {", ".join(SERIES_TYPES)}')

            if noun == "table" and entry.get("columns") is not None:
                columns = entry["columns"]
                if not isinstance(columns, list):
                    errors.append(f'Table "{oid}" columns must be an array')
                elif any(not isinstance(c, str) for c in columns):
                    errors.append(f'Table "{oid}" has invalid column (must be string)')

    return errors


def output_sources(defn: DefinitionLike) -> List[str]:
    """Every string `source` of `defn`, in declaration order."""
    raw = _raw(defn)
    sources: List[str] = []
    for key, _ in _KINDS:
        entries = raw.get(key)
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if isinstance(entry, Mapping) and _valid_str(entry.get("source")):
                sources.append(entry["source"])
    return sources


def extract_data_sources(defn: DefinitionLike) -> List[str]:
    """Unique leading step ids of all output sources, in first-seen order."""
    found: Dict[str, None] = {}
    for source in output_sources(defn):
        found.setdefault(source.split(".")[0], None)
    return list(found)
