"""统计结果归一化。

上游统计计算给出的记录形状并不统一：单条记录或按组排列的记录列表，
置信区间可能是 N×2、2×N 或展平后的数组。这里一次性把它们转换为
``vegagram.models.stats`` 中的规范记录，构建器不再关心原始形状。

规则：
- 记录按位置分配 1 起始的组号；
- 缺失必需字段的记录单独跳过，其余组照常输出；
- CI 形状无法识别时该组丢弃 CI（曲线仍保留）；
- CI 比曲线短时按回归 x 坐标线性插值（两端外推）；
- 任意位置 ``lower > upper`` 时交换上下界。
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Sequence

import numpy as np
from scipy.interpolate import interp1d

from vegagram.errors import Notice, NoticeCode
from vegagram.models.context import LayerKind
from vegagram.models.stats import (
    Bin2dCell,
    BinGroup,
    BoxplotCategory,
    DensityCurve,
    QQPoint,
    RegressionCurve,
    StatNormalization,
    SummaryCurve,
    ViolinPoint,
)

logger = logging.getLogger(__name__)

VIOLIN_MAX_HALF_WIDTH = 0.4


class MalformedRecord(ValueError):
    """单条统计记录缺失必需字段或数值不可用。"""


def as_records(raw: Any) -> list[Any]:
    """单条记录与记录列表统一为列表。"""
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        return [raw]
    if isinstance(raw, np.ndarray) and raw.dtype != object:
        return [raw]
    if isinstance(raw, (list, tuple, np.ndarray)):
        return list(raw)
    return [raw]


def _require(record: Any, *names: str) -> None:
    if not isinstance(record, Mapping):
        raise MalformedRecord(f"记录类型 {type(record).__name__} 不是映射")
    missing = [name for name in names if record.get(name) is None]
    if missing:
        raise MalformedRecord(f"缺少字段: {', '.join(missing)}")


def _vector(value: Any, name: str) -> np.ndarray:
    try:
        array = np.asarray(value, dtype=float).ravel()
    except (TypeError, ValueError) as exc:
        raise MalformedRecord(f"字段 {name} 不是数值数组") from exc
    if array.size == 0:
        raise MalformedRecord(f"字段 {name} 为空")
    return array


def _paired(
    record: Mapping[str, Any], x_name: str = "x", y_name: str = "y"
) -> tuple[np.ndarray, np.ndarray]:
    x = _vector(record[x_name], x_name)
    y = _vector(record[y_name], y_name)
    if x.size != y.size:
        raise MalformedRecord(f"{x_name} 与 {y_name} 长度不一致（{x.size} != {y.size}）")
    return x, y


def _floats(array: np.ndarray) -> tuple[float, ...]:
    return tuple(float(v) for v in array)


def resolve_ci_shape(ci: Any) -> tuple[np.ndarray, np.ndarray] | None:
    """识别 CI 数组方向，返回 ``(lower, upper)``；无法识别时返回 None。

    N×2 按列拆分，2×N 按行拆分；其他偶数长度按列优先重排为 N×2。
    """
    try:
        array = np.asarray(ci, dtype=float)
    except (TypeError, ValueError):
        return None
    if array.size == 0:
        return None
    if array.ndim == 2 and array.shape[1] == 2:
        return array[:, 0].copy(), array[:, 1].copy()
    if array.ndim == 2 and array.shape[0] == 2:
        return array[0, :].copy(), array[1, :].copy()
    if array.size % 2 == 0:
        flat = array.ravel(order="F")
        half = flat.size // 2
        return flat[:half].copy(), flat[half:].copy()
    return None


def _interpolation_base(m: int, *candidates: Any) -> np.ndarray | None:
    for candidate in candidates:
        if candidate is None:
            continue
        try:
            base = np.asarray(candidate, dtype=float).ravel()
        except (TypeError, ValueError):
            continue
        if base.size == m and np.all(np.isfinite(base)) and np.unique(base).size == m:
            return base
    return None


def align_ci(
    x: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    ci_x: Any = None,
    observation_x: Any = None,
) -> tuple[np.ndarray, np.ndarray]:
    """将 CI 对齐到回归曲线长度，并保证 ``lower <= upper``。

    CI 较短时的插值基准依次取：记录自带的 ``ci_x``、观测 x（长度与 CI 相同时）、
    回归 x 范围上的等距点。基准必须全为有限值且互不相同。
    """
    n = x.size
    m = lower.size
    if m == n:
        aligned_lower, aligned_upper = lower, upper
    elif m > n:
        aligned_lower, aligned_upper = lower[:n], upper[:n]
    elif m == 1 or np.ptp(x) == 0:
        aligned_lower = np.full(n, lower[0])
        aligned_upper = np.full(n, upper[0])
    else:
        source_x = _interpolation_base(m, ci_x, observation_x)
        if source_x is None:
            source_x = np.linspace(np.nanmin(x), np.nanmax(x), m)
        aligned_lower = interp1d(source_x, lower, kind="linear", fill_value="extrapolate")(x)
        aligned_upper = interp1d(source_x, upper, kind="linear", fill_value="extrapolate")(x)
    return np.minimum(aligned_lower, aligned_upper), np.maximum(aligned_lower, aligned_upper)


def _ci_for(
    record: Mapping[str, Any],
    x: np.ndarray,
    kind: LayerKind,
    group: int,
    notices: list[Notice],
    observation_x: Any = None,
) -> tuple[np.ndarray, np.ndarray] | None:
    raw_ci = record.get("yci")
    if raw_ci is None:
        lower, upper = record.get("ci_lower"), record.get("ci_upper")
        if lower is None or upper is None:
            return None
        try:
            raw_ci = np.column_stack(
                (np.asarray(lower, dtype=float).ravel(), np.asarray(upper, dtype=float).ravel())
            )
        except (TypeError, ValueError):
            raw_ci = [lower, upper]
    resolved = resolve_ci_shape(raw_ci)
    if resolved is None:
        try:
            shape: Any = np.shape(raw_ci)
        except ValueError:
            shape = "ragged"
        message = f"{kind.value} 第 {group} 组的置信区间形状 {shape} 无法识别，已忽略"
        logger.warning("%s", message)
        notices.append(Notice(NoticeCode.UNRESOLVED_CI_SHAPE, message, kind.value, group))
        return None
    return align_ci(x, resolved[0], resolved[1], record.get("ci_x"), observation_x)


def _skip(kind: LayerKind, group: int, exc: Exception, notices: list[Notice]) -> None:
    message = f"{kind.value} 第 {group} 组记录无效，已跳过: {exc}"
    logger.warning("%s", message)
    notices.append(Notice(NoticeCode.MALFORMED_STATISTIC_RECORD, message, kind.value, group))


def normalize_regression(
    raw: Any, kind: LayerKind = LayerKind.GLM, observation_x: Any = None
) -> StatNormalization:
    records: list[RegressionCurve] = []
    notices: list[Notice] = []
    for group, record in enumerate(as_records(raw), start=1):
        try:
            _require(record, "x", "y")
            x, y = _paired(record)
        except MalformedRecord as exc:
            _skip(kind, group, exc, notices)
            continue
        ci = _ci_for(record, x, kind, group, notices, observation_x)
        records.append(
            RegressionCurve(
                group=group,
                x=_floats(x),
                y=_floats(y),
                ci_lower=_floats(ci[0]) if ci is not None else None,
                ci_upper=_floats(ci[1]) if ci is not None else None,
            )
        )
    return StatNormalization(tuple(records), tuple(notices))


def normalize_bins(raw: Any) -> StatNormalization:
    records: list[BinGroup] = []
    notices: list[Notice] = []
    for group, record in enumerate(as_records(raw), start=1):
        try:
            _require(record, "edges", "counts")
            edges = _vector(record["edges"], "edges")
            counts = _vector(record["counts"], "counts")
            if edges.size != counts.size + 1:
                raise MalformedRecord(
                    f"边界数 {edges.size} 与计数 {counts.size} 不匹配（应为计数 + 1）"
                )
            if record.get("centers") is not None:
                centers = _vector(record["centers"], "centers")
                if centers.size != counts.size:
                    raise MalformedRecord("centers 与 counts 长度不一致")
            else:
                centers = (edges[:-1] + edges[1:]) / 2
        except MalformedRecord as exc:
            _skip(LayerKind.BIN, group, exc, notices)
            continue
        records.append(BinGroup(group, _floats(edges), _floats(centers), _floats(counts)))
    return StatNormalization(tuple(records), tuple(notices))


def normalize_summary(raw: Any, observation_x: Any = None) -> StatNormalization:
    records: list[SummaryCurve] = []
    notices: list[Notice] = []
    for group, record in enumerate(as_records(raw), start=1):
        try:
            _require(record, "x", "y")
            x, y = _paired(record)
        except MalformedRecord as exc:
            _skip(LayerKind.SUMMARY, group, exc, notices)
            continue
        ci = _ci_for(record, x, LayerKind.SUMMARY, group, notices, observation_x)
        lower, upper = ci if ci is not None else (y, y)
        records.append(SummaryCurve(group, _floats(x), _floats(y), _floats(lower), _floats(upper)))
    return StatNormalization(tuple(records), tuple(notices))


def normalize_boxplot(raw: Any) -> StatNormalization:
    records: list[BoxplotCategory] = []
    notices: list[Notice] = []
    for group, record in enumerate(as_records(raw), start=1):
        try:
            _require(record, "boxplot_data")
            matrix = np.asarray(record["boxplot_data"], dtype=float)
        except (MalformedRecord, TypeError, ValueError) as exc:
            _skip(LayerKind.BOXPLOT, group, exc, notices)
            continue
        if matrix.ndim == 1:
            matrix = matrix.reshape(1, -1)
        for category, row in enumerate(matrix, start=1):
            if row.size < 5:
                _skip(
                    LayerKind.BOXPLOT,
                    group,
                    MalformedRecord(f"第 {category} 类五数概括只有 {row.size} 个值"),
                    notices,
                )
                continue
            low, q1, median, q3, high = (float(v) for v in row[:5])
            records.append(BoxplotCategory(category, low, q1, median, q3, high, group=group))
    return StatNormalization(tuple(records), tuple(notices))


def normalize_density(raw: Any) -> StatNormalization:
    records: list[DensityCurve] = []
    notices: list[Notice] = []
    for group, record in enumerate(as_records(raw), start=1):
        try:
            _require(record, "x", "y")
            x, y = _paired(record)
        except MalformedRecord as exc:
            _skip(LayerKind.DENSITY, group, exc, notices)
            continue
        records.append(DensityCurve(group, _floats(x), _floats(y)))
    return StatNormalization(tuple(records), tuple(notices))


def normalize_violin(raw: Any) -> StatNormalization:
    """展平每个类别的密度曲线，并按类别最大密度换算对称半宽。"""
    records: list[ViolinPoint] = []
    notices: list[Notice] = []
    for group, record in enumerate(as_records(raw), start=1):
        try:
            _require(record, "densities", "densities_y", "unique_x")
            categories = _vector(record["unique_x"], "unique_x")
            densities = list(record["densities"])
            positions = list(record["densities_y"])
            if len(densities) != categories.size or len(positions) != categories.size:
                raise MalformedRecord("densities/densities_y 与 unique_x 数量不一致")
            curves = [
                _paired({"d": d, "y": p}, "d", "y") for d, p in zip(densities, positions)
            ]
        except (MalformedRecord, TypeError) as exc:
            _skip(LayerKind.VIOLIN, group, exc, notices)
            continue
        for category, (density, y) in zip(categories, curves):
            if not np.isfinite(category):
                _skip(
                    LayerKind.VIOLIN,
                    group,
                    MalformedRecord(f"类别序号 {category} 不是有限值"),
                    notices,
                )
                continue
            finite = density[np.isfinite(density)]
            peak = float(finite.max()) if finite.size else 0.0
            scale = VIOLIN_MAX_HALF_WIDTH / peak if peak > 0 else 0.0
            for d, yv in zip(density, y):
                records.append(
                    ViolinPoint(
                        group=group,
                        category=int(round(category)),
                        y=float(yv),
                        density=float(d),
                        half_width=float(d * scale),
                    )
                )
    return StatNormalization(tuple(records), tuple(notices))


def normalize_qq(raw: Any) -> StatNormalization:
    records: list[QQPoint] = []
    notices: list[Notice] = []
    for group, record in enumerate(as_records(raw), start=1):
        try:
            _require(record, "x", "y")
            x, y = _paired(record)
        except MalformedRecord as exc:
            _skip(LayerKind.QQ, group, exc, notices)
            continue
        records.extend(QQPoint(group, float(t), float(s)) for t, s in zip(x, y))
    return StatNormalization(tuple(records), tuple(notices))


def _bin2d_edges(edges: Any) -> tuple[np.ndarray, np.ndarray]:
    if isinstance(edges, Mapping):
        x_edges, y_edges = edges.get("x"), edges.get("y")
    elif isinstance(edges, (Sequence, np.ndarray)) and len(edges) == 2:
        x_edges, y_edges = edges[0], edges[1]
    else:
        raise MalformedRecord("edges 需要包含 x 与 y 两组边界")
    if x_edges is None or y_edges is None:
        raise MalformedRecord("edges 需要包含 x 与 y 两组边界")
    return _vector(x_edges, "edges.x"), _vector(y_edges, "edges.y")


def normalize_bin2d(raw: Any) -> StatNormalization:
    """计数矩阵的行对应 y 分箱、列对应 x 分箱；只保留计数非零的单元。"""
    records: list[Bin2dCell] = []
    notices: list[Notice] = []
    for group, record in enumerate(as_records(raw), start=1):
        try:
            _require(record, "counts", "edges")
            x_edges, y_edges = _bin2d_edges(record["edges"])
            counts = np.atleast_2d(np.asarray(record["counts"], dtype=float))
            expected = (y_edges.size - 1, x_edges.size - 1)
            if counts.shape != expected:
                if counts.T.shape == expected:
                    counts = counts.T
                else:
                    raise MalformedRecord(f"计数矩阵形状 {counts.shape} 与边界不匹配（应为 {expected}）")
        except (MalformedRecord, TypeError, ValueError) as exc:
            _skip(LayerKind.BIN2D, group, exc, notices)
            continue
        x_centers = (x_edges[:-1] + x_edges[1:]) / 2
        y_centers = (y_edges[:-1] + y_edges[1:]) / 2
        x_widths = np.diff(x_edges)
        y_widths = np.diff(y_edges)
        for row, col in zip(*np.nonzero(np.nan_to_num(counts))):
            records.append(
                Bin2dCell(
                    x=float(x_centers[col]),
                    y=float(y_centers[row]),
                    count=float(counts[row, col]),
                    x_width=float(x_widths[col]),
                    y_width=float(y_widths[row]),
                    group=group,
                )
            )
    return StatNormalization(tuple(records), tuple(notices))


_NORMALIZERS: dict[LayerKind, Callable[[Any, Any], StatNormalization]] = {
    LayerKind.GLM: lambda raw, obs_x: normalize_regression(raw, LayerKind.GLM, obs_x),
    LayerKind.SMOOTH: lambda raw, obs_x: normalize_regression(raw, LayerKind.SMOOTH, obs_x),
    LayerKind.BIN: lambda raw, _: normalize_bins(raw),
    LayerKind.SUMMARY: normalize_summary,
    LayerKind.BOXPLOT: lambda raw, _: normalize_boxplot(raw),
    LayerKind.DENSITY: lambda raw, _: normalize_density(raw),
    LayerKind.VIOLIN: lambda raw, _: normalize_violin(raw),
    LayerKind.QQ: lambda raw, _: normalize_qq(raw),
    LayerKind.BIN2D: lambda raw, _: normalize_bin2d(raw),
}


def normalize_stat(kind: LayerKind, raw: Any, observation_x: Any = None) -> StatNormalization:
    """按统计类别分派归一化函数；``observation_x`` 供回归与汇总类的 CI 插值使用。"""
    normalizer = _NORMALIZERS.get(kind)
    if normalizer is None:
        raise ValueError(f"{kind.value} 不是统计图层类别")
    return normalizer(raw, observation_x)
