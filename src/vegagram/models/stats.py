"""统计结果的规范记录。

每种统计类别在归一化之后都有固定形状，构建器只读取这些字段，
不再探测原始记录里是否存在某个键。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from vegagram.errors import Notice


@dataclass(frozen=True)
class RegressionCurve:
    """回归/平滑曲线，CI 缺失时 ``ci_lower``/``ci_upper`` 为 None。"""

    group: int
    x: tuple[float, ...]
    y: tuple[float, ...]
    ci_lower: tuple[float, ...] | None = None
    ci_upper: tuple[float, ...] | None = None

    @property
    def has_ci(self) -> bool:
        return self.ci_lower is not None and self.ci_upper is not None


@dataclass(frozen=True)
class BinGroup:
    group: int
    edges: tuple[float, ...]
    centers: tuple[float, ...]
    counts: tuple[float, ...]


@dataclass(frozen=True)
class SummaryCurve:
    """汇总曲线；没有可用 CI 时上下界等于 y（零宽度带）。"""

    group: int
    x: tuple[float, ...]
    y: tuple[float, ...]
    ci_lower: tuple[float, ...]
    ci_upper: tuple[float, ...]


@dataclass(frozen=True)
class BoxplotCategory:
    """单个类别的五数概括。"""

    category: int
    whisker_low: float
    q1: float
    median: float
    q3: float
    whisker_high: float
    group: int = 1


@dataclass(frozen=True)
class DensityCurve:
    group: int
    x: tuple[float, ...]
    y: tuple[float, ...]


@dataclass(frozen=True)
class ViolinPoint:
    """小提琴轮廓上的一点，``half_width`` 已按类别最大密度归一到 0..0.4。"""

    group: int
    category: int
    y: float
    density: float
    half_width: float

    @property
    def left(self) -> float:
        return -self.half_width

    @property
    def right(self) -> float:
        return self.half_width


@dataclass(frozen=True)
class QQPoint:
    group: int
    theoretical: float
    sample: float


@dataclass(frozen=True)
class Bin2dCell:
    """二维直方图中计数非零的单元格（坐标为单元中心）。"""

    x: float
    y: float
    count: float
    x_width: float
    y_width: float
    group: int = 1


@dataclass(frozen=True)
class StatNormalization:
    records: tuple[Any, ...] = ()
    notices: tuple[Notice, ...] = ()
