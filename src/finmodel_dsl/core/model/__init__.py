"""
DSL model layer.

Frozen model types, the parameter tagged union and the document loader.

Components:
    - types  → DslModel, DslStep, OutputDefinition, InputSchema
    - params → Literal | VariableRef | Nested | ParamList, DEFERRED
    - loader → load_model_document, model_fingerprint
"""

from .errors import (
    ModelDocumentError,
    ModelFileNotFoundError,
    ModelParseError,
    UnsupportedModelFormatError,
)
from .loader import as_document, load_model_document, model_fingerprint
from .params import (
    DEFERRED,
    Literal,
    Nested,
    ParamList,
    VariableRef,
    is_deferred,
    parse_param,
    parse_params,
)
from .types import (
    INPUT_FIELD_TYPES,
    SERIES_TYPES,
    SUPPORTED_VERSION,
    DslModel,
    DslStep,
    InputField,
    InputSchema,
    OutputDefinition,
    ScalarOutput,
    SeriesOutput,
    TableOutput,
)

__all__ = [
    "ModelDocumentError",
    "ModelFileNotFoundError",
    "ModelParseError",
    "UnsupportedModelFormatError",
    "as_document",
    "load_model_document",
    "model_fingerprint",
    "DEFERRED",
    "Literal",
    "Nested",
    "ParamList",
    "VariableRef",
    "is_deferred",
    "parse_param",
    "parse_params",
    "INPUT_FIELD_TYPES",
    "SERIES_TYPES",
    "SUPPORTED_VERSION",
    "DslModel",
    "DslStep",
    "InputField",
    "InputSchema",
    "OutputDefinition",
    "ScalarOutput",
    "SeriesOutput",
    "TableOutput",
]
