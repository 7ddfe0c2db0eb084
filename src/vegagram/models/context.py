"""分析上下文：一次编译调用的只读输入。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Mapping

from vegagram.errors import Notice
from vegagram.models.datum import distinct_labels, is_numeric_values


class LayerKind(str, Enum):
    """图层类别（几何图层 + 统计图层）。"""

    POINT = "point"
    LINE = "line"
    BAR = "bar"
    JITTER = "jitter"
    SWARM = "swarm"
    RASTER = "raster"
    INTERVAL = "interval"
    ABLINE = "abline"
    VLINE = "vline"
    HLINE = "hline"
    POLYGON = "polygon"
    GLM = "glm"
    SMOOTH = "smooth"
    BIN = "bin"
    SUMMARY = "summary"
    BOXPLOT = "boxplot"
    DENSITY = "density"
    VIOLIN = "violin"
    QQ = "qq"
    BIN2D = "bin2d"

    @property
    def is_statistic(self) -> bool:
        return self in STATISTIC_KINDS

    @classmethod
    def parse(cls, name: Any) -> LayerKind | None:
        """接受 ``point`` / ``geom_point`` / ``geom_point_handle`` 等写法。"""
        if isinstance(name, LayerKind):
            return name
        if not isinstance(name, str):
            return None
        key = name.strip().lower()
        if key.endswith("_handle"):
            key = key[: -len("_handle")]
        for prefix in ("geom_", "stat_"):
            if key.startswith(prefix):
                key = key[len(prefix):]
                break
        try:
            return cls(key)
        except ValueError:
            return None


STATISTIC_KINDS = frozenset(
    {
        LayerKind.GLM,
        LayerKind.SMOOTH,
        LayerKind.BIN,
        LayerKind.SUMMARY,
        LayerKind.BOXPLOT,
        LayerKind.DENSITY,
        LayerKind.VIOLIN,
        LayerKind.QQ,
        LayerKind.BIN2D,
    }
)


@dataclass(frozen=True)
class Aesthetics:
    """美学映射，每个字段是逐观测的取值序列。"""

    x: tuple[Any, ...] = ()
    y: tuple[Any, ...] = ()
    color: tuple[Any, ...] | None = None
    size: tuple[Any, ...] | None = None
    shape: tuple[Any, ...] | None = None
    ymin: tuple[Any, ...] | None = None
    ymax: tuple[Any, ...] | None = None


@dataclass(frozen=True)
class Grouping:
    """颜色分组信息；``labels`` 为规范化后按首次出现排序的颜色标签。"""

    has_color_group: bool = False
    color_data: tuple[Any, ...] | None = None
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContinuousColor:
    """连续色彩模式；色图与取值范围原样携带。"""

    active: bool = False
    colormap: tuple[tuple[float, ...], ...] | None = None
    limits: tuple[float, float] | None = None


@dataclass(frozen=True)
class AnalysisContext:
    aes: Aesthetics
    grouping: Grouping = field(default_factory=Grouping)
    continuous_color: ContinuousColor = field(default_factory=ContinuousColor)
    stats: Mapping[LayerKind, tuple[Any, ...]] = field(default_factory=dict)
    declared_geoms: tuple[LayerKind, ...] = ()
    figure_width: float | None = None
    figure_height: float | None = None
    x_label: str | None = None
    y_label: str | None = None
    notices: tuple[Notice, ...] = ()

    @cached_property
    def x_is_numeric(self) -> bool:
        return is_numeric_values(self.aes.x)

    @cached_property
    def y_is_numeric(self) -> bool:
        return is_numeric_values(self.aes.y)

    @cached_property
    def x_labels(self) -> tuple[str, ...]:
        """x 取值按首次出现排序的标签，用于类别序号到标签的映射。"""
        return tuple(distinct_labels(self.aes.x))

    @property
    def color_grouped(self) -> bool:
        return self.grouping.has_color_group

    def stat(self, kind: LayerKind) -> tuple[Any, ...]:
        return tuple(self.stats.get(kind, ()))

    def group_color(self, group: int) -> str | None:
        """颜色分组激活时，第 ``group`` 组（1 起始）对应的颜色标签。"""
        if not self.grouping.has_color_group:
            return None
        labels = self.grouping.labels
        if 1 <= group <= len(labels):
            return labels[group - 1]
        return None
