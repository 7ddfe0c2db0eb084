"""数据模型。"""

from vegagram.models.context import (
    STATISTIC_KINDS,
    Aesthetics,
    AnalysisContext,
    ContinuousColor,
    Grouping,
    LayerKind,
)
from vegagram.models.fragment import CompileResult, Fragment, Layer
from vegagram.models.params import OutputParameters, parse_output_options, validate_option_names

__all__ = [
    "STATISTIC_KINDS",
    "Aesthetics",
    "AnalysisContext",
    "CompileResult",
    "ContinuousColor",
    "Fragment",
    "Grouping",
    "Layer",
    "LayerKind",
    "OutputParameters",
    "parse_output_options",
    "validate_option_names",
]
