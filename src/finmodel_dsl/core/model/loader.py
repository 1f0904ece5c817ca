"""Model document loader (YAML/JSON) and fingerprinting.

Notes:
- YAML is preferred, JSON is accepted.
- The format is inferred from the file extension.
- The loader returns the raw mapping: validation runs on that mapping so
  every structural problem can be reported in one pass.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml

from ..config.hashing import canonical_hash
from .errors import (
    ModelFileNotFoundError,
    ModelParseError,
    UnsupportedModelFormatError,
)
from .types import DslModel


def load_model_document(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a model document from YAML/JSON.

    Args:
        path: path to the model file.

    Raises:
        ModelFileNotFoundError: if the file does not exist.
        UnsupportedModelFormatError: if the extension is not supported.
        ModelParseError: if parsing fails or the root is not a mapping.
    """
    p = Path(path)
    if not p.exists():
        raise ModelFileNotFoundError(f"model file not found: {p}")

    suffix = p.suffix.lower()
    raw = p.read_text(encoding="utf-8")

    try:
        if suffix in {".yml", ".yaml"}:
            data = yaml.safe_load(raw)
        elif suffix == ".json":
            data = json.loads(raw)
        else:
            raise UnsupportedModelFormatError(f"unsupported model format: {suffix}")
    except UnsupportedModelFormatError:
        raise
    except Exception as e:
        raise ModelParseError(str(e) or "failed to parse model") from e

    if data is None:
        raise ModelParseError("model file is empty")

    if not isinstance(data, dict):
        raise ModelParseError("model root must be a mapping/dict")

    return data


def as_document(model: Union[DslModel, Mapping[str, Any]]) -> Dict[str, Any]:
    """Raw mapping form of `model`."""
    if isinstance(model, DslModel):
        return model.to_dict()
    return dict(model)


def model_fingerprint(model: Union[DslModel, Mapping[str, Any]]) -> str:
    """SHA-256 of the canonical JSON of the model document."""
    return canonical_hash(as_document(model))
