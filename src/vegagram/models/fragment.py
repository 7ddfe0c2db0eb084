"""图层片段与编译结果。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from vegagram.errors import Notice
from vegagram.models.context import LayerKind


@dataclass(frozen=True)
class Fragment:
    """单个图层产出的局部场景图（构造后不再修改）。"""

    data: tuple[dict[str, Any], ...] = ()
    scales: tuple[dict[str, Any], ...] = ()
    axes: tuple[dict[str, Any], ...] = ()
    marks: tuple[dict[str, Any], ...] = ()
    notices: tuple[Notice, ...] = ()

    @classmethod
    def of(
        cls,
        *,
        data: list[dict[str, Any]] | None = None,
        scales: list[dict[str, Any]] | None = None,
        axes: list[dict[str, Any]] | None = None,
        marks: list[dict[str, Any]] | None = None,
        notices: list[Notice] | None = None,
    ) -> Fragment:
        return cls(
            data=tuple(data or ()),
            scales=tuple(scales or ()),
            axes=tuple(axes or ()),
            marks=tuple(marks or ()),
            notices=tuple(notices or ()),
        )


@dataclass(frozen=True)
class Layer:
    kind: LayerKind
    fragment: Fragment


@dataclass(frozen=True)
class CompileResult:
    """一次编译的产物。"""

    spec: dict[str, Any]
    notices: tuple[Notice, ...] = ()
    removed_points: int = 0
    layer_kinds: tuple[LayerKind, ...] = ()

    @property
    def has_legend(self) -> bool:
        return bool(self.spec.get("legends"))
