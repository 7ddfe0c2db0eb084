"""美学映射与分组分析，以及主数据表 ``table`` 的构建。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
import pandas as pd

from vegagram.analysis.normalizer import normalize_stat
from vegagram.errors import ConfigurationError, Notice, NoticeCode
from vegagram.models.context import (
    Aesthetics,
    AnalysisContext,
    ContinuousColor,
    Grouping,
    LayerKind,
)
from vegagram.models.datum import (
    distinct_labels,
    is_missing,
    is_numeric_values,
    label_of,
    to_plain,
)

logger = logging.getLogger(__name__)

_AES_FIELDS = ("x", "y", "color", "size", "shape", "ymin", "ymax")


@dataclass(frozen=True)
class PrimaryTable:
    """主数据表的行以及因 NaN/Inf 被剔除的观测数。"""

    rows: tuple[dict[str, Any], ...]
    removed: int = 0

    @property
    def distinct_colors(self) -> list[str]:
        return distinct_labels(row["color"] for row in self.rows if "color" in row)


def _as_tuple(values: Any) -> tuple[Any, ...] | None:
    if values is None:
        return None
    if isinstance(values, np.ndarray):
        return tuple(values.ravel().tolist())
    if isinstance(values, pd.Series):
        return tuple(values.tolist())
    if isinstance(values, (str, bytes)) or not hasattr(values, "__iter__"):
        return (values,)
    return tuple(values)


def analyze_grouping(aes: Aesthetics) -> Grouping:
    """颜色取值规范化为字符串后多于一个时才启用颜色分组。"""
    if not aes.color:
        return Grouping(has_color_group=False, color_data=aes.color)
    labels = tuple(distinct_labels(aes.color))
    return Grouping(has_color_group=len(labels) > 1, color_data=aes.color, labels=labels)


def analyze_continuous_color(options: Mapping[str, Any] | None) -> ContinuousColor:
    """仅在外部显式标记 ``active`` 时启用连续色彩，色图与范围原样携带。"""
    if not options or not options.get("active"):
        return ContinuousColor()
    colormap = options.get("colormap")
    limits = options.get("CLim", options.get("limits"))
    parsed_map = None
    if colormap is not None and len(colormap) > 0:
        parsed_map = tuple(tuple(float(c) for c in row) for row in colormap)
    parsed_limits = None
    if limits is not None and len(limits) == 2:
        low, high = float(limits[0]), float(limits[1])
        if np.isfinite(low) and np.isfinite(high):
            parsed_limits = (low, high)
        else:
            logger.warning("连续色彩范围 %s 含非有限值，改由数据决定", limits)
    return ContinuousColor(active=True, colormap=parsed_map, limits=parsed_limits)


def analyze_aesthetics(
    aes: Aesthetics, continuous_color: Mapping[str, Any] | None = None
) -> tuple[Grouping, ContinuousColor]:
    return analyze_grouping(aes), analyze_continuous_color(continuous_color)


def _finite_mask(values: pd.Series, numeric: bool) -> pd.Series:
    if numeric:
        converted = pd.to_numeric(values, errors="coerce").astype(float)
        return pd.Series(np.isfinite(converted.to_numpy()), index=values.index)
    return ~values.map(is_missing).astype(bool)


def build_table_rows(context: AnalysisContext) -> PrimaryTable:
    """构建 ``table`` 的逐观测行 ``{x, y, color?, ymin?, ymax?}``。

    数值轴剔除 NaN/Inf，非数值轴剔除缺失值并转为字符串；
    颜色只在分组启用时写入，取规范化后的字符串标签，颜色缺失的观测一并剔除，
    使表中的颜色集合与 ``grouping.labels`` 一致。
    """
    aes = context.aes
    n = len(aes.x)
    if n == 0:
        return PrimaryTable(rows=())
    frame = pd.DataFrame({"x": pd.Series(aes.x, dtype=object)})
    has_y = len(aes.y) == n
    if has_y:
        frame["y"] = pd.Series(aes.y, dtype=object)
    if context.grouping.has_color_group and aes.color is not None and len(aes.color) == n:
        frame["color"] = pd.Series(
            [None if is_missing(v) else label_of(v) for v in aes.color], dtype=object
        )
    for name in ("ymin", "ymax"):
        values = getattr(aes, name)
        if values is not None and len(values) == n:
            frame[name] = pd.Series(values, dtype=object)

    keep = _finite_mask(frame["x"], context.x_is_numeric)
    if has_y:
        keep &= _finite_mask(frame["y"], context.y_is_numeric)
    if "color" in frame:
        keep &= frame["color"].notna()
    removed = int((~keep).sum())
    if removed:
        logger.warning("主数据表中剔除了 %s 个无效观测（NaN/Inf/缺失）", removed)

    rows: list[dict[str, Any]] = []
    for record in frame[keep].to_dict(orient="records"):
        row: dict[str, Any] = {}
        for key, value in record.items():
            if key == "color":
                row[key] = value
            elif key in ("x", "y") and not getattr(context, f"{key}_is_numeric"):
                row[key] = label_of(value)
            else:
                row[key] = to_plain(value)
        rows.append(row)
    return PrimaryTable(rows=tuple(rows), removed=removed)


def removed_points_notice(table: PrimaryTable) -> Notice | None:
    if not table.removed:
        return None
    return Notice(
        NoticeCode.INVALID_NUMERIC_OBSERVATION,
        f"已从主数据表中剔除 {table.removed} 个无效观测",
    )


def _parse_aesthetics(raw: Mapping[str, Any]) -> Aesthetics:
    values = {name: _as_tuple(raw.get(name)) for name in _AES_FIELDS}
    x = values["x"] or ()
    y = values["y"] or ()
    if y and len(x) != len(y):
        raise ConfigurationError(f"x 与 y 长度不一致（{len(x)} != {len(y)}）")
    for name in ("color", "size", "shape", "ymin", "ymax"):
        sequence = values[name]
        if sequence and len(sequence) != len(x):
            raise ConfigurationError(f"{name} 长度 {len(sequence)} 与 x 长度 {len(x)} 不一致")
    return Aesthetics(
        x=x,
        y=y,
        color=values["color"] or None,
        size=values["size"] or None,
        shape=values["shape"] or None,
        ymin=values["ymin"] or None,
        ymax=values["ymax"] or None,
    )


def _has_content(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (Mapping, list, tuple, np.ndarray)):
        return len(value) > 0
    return bool(value)


def build_analysis_context(description: Mapping[str, Any]) -> AnalysisContext:
    """由绘图描述映射构建只读分析上下文。

    描述结构::

        {"aes": {"x": [...], "y": [...], "color": [...]},
         "geoms": ["geom_point", ...],
         "results": {"stat_glm": {...}, ...},
         "continuous_color_options": {...},
         "figure": {"width": ..., "height": ...},
         "labels": {"x": ..., "y": ...}}
    """
    aes = _parse_aesthetics(description.get("aes") or {})
    grouping, continuous = analyze_aesthetics(aes, description.get("continuous_color_options"))

    declared: list[LayerKind] = []
    for name in description.get("geoms") or ():
        kind = LayerKind.parse(name)
        if kind is None:
            logger.warning("未知图层类型 %s，已忽略", name)
            continue
        if kind.is_statistic:
            logger.warning("统计图层 %s 需要通过 results 提供结果，已忽略声明", name)
            continue
        if kind not in declared:
            declared.append(kind)

    observation_x = aes.x if aes.x and is_numeric_values(aes.x) else None
    stats: dict[LayerKind, tuple[Any, ...]] = {}
    notices: list[Notice] = []
    for name, raw in (description.get("results") or {}).items():
        kind = LayerKind.parse(name)
        if kind is None or not _has_content(raw):
            continue
        if not kind.is_statistic:
            if kind not in declared:
                declared.append(kind)
            continue
        normalized = normalize_stat(kind, raw, observation_x)
        notices.extend(normalized.notices)
        if normalized.records:
            stats[kind] = normalized.records

    figure = description.get("figure") or {}
    labels = description.get("labels") or {}
    return AnalysisContext(
        aes=aes,
        grouping=grouping,
        continuous_color=continuous,
        stats=stats,
        declared_geoms=tuple(declared),
        figure_width=figure.get("width") or None,
        figure_height=figure.get("height") or None,
        x_label=labels.get("x") or None,
        y_label=labels.get("y") or None,
        notices=tuple(notices),
    )
