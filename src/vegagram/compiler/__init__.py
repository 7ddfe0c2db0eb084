"""图层合并、图例与编译流水线。"""

from vegagram.compiler.legend import (
    SelectionEvent,
    SelectionState,
    compose_legend,
    highlight_marks,
    interactive_legend,
    needs_legend,
    static_legend,
)
from vegagram.compiler.merge import merge_fragments
from vegagram.compiler.pipeline import compile_vega_spec
from vegagram.compiler.validation import find_unresolved_references, validate_references

__all__ = [
    "SelectionEvent",
    "SelectionState",
    "compile_vega_spec",
    "compose_legend",
    "find_unresolved_references",
    "highlight_marks",
    "interactive_legend",
    "merge_fragments",
    "needs_legend",
    "static_legend",
    "validate_references",
]
