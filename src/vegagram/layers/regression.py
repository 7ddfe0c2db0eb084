"""回归（glm）与平滑（smooth）图层。

绘制顺序：置信带（若有）→ 回归曲线 → 原始观测点。
置信带读取单独的过滤数据源，CI 为空的行不参与面积图，避免渲染未定义的几何。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from vegagram.charts.marks import scaled, value, with_tooltip, xy_tooltip
from vegagram.charts.scales import build_axes, color_scale, union_domain, x_scale, y_scale
from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.layers.common import (
    SORT_BY_X,
    GroupColoring,
    facet_group,
    group_coloring,
    grouped_row,
)
from vegagram.models.context import AnalysisContext, LayerKind
from vegagram.models.fragment import Fragment
from vegagram.models.params import OutputParameters
from vegagram.models.stats import RegressionCurve

CI_FILTER = "isValid(datum.ci_lower) && isValid(datum.ci_upper)"


@dataclass(frozen=True)
class RegressionNames:
    """一个回归类图层使用的数据源与图元名称。"""

    stats: str
    filtered: str
    ci_marks: str
    ci_facet: str
    lines: str
    line: str
    line_facet: str
    points: str


GLM_NAMES = RegressionNames(
    stats="stats",
    filtered="confidence_filtered",
    ci_marks="confidence_areas",
    ci_facet="ci_group_data",
    lines="regression_lines",
    line="regression_line",
    line_facet="group_data",
    points="data_points",
)

SMOOTH_NAMES = RegressionNames(
    stats="smooth_stats",
    filtered="smooth_confidence_filtered",
    ci_marks="smooth_confidence_areas",
    ci_facet="smooth_ci_group_data",
    lines="smooth_lines",
    line="smooth_line",
    line_facet="smooth_group_data",
    points="smooth_points",
)


def _rows(
    context: AnalysisContext, curves: tuple[RegressionCurve, ...], coloring: GroupColoring
) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for curve in curves:
        for i, (x, y) in enumerate(zip(curve.x, curve.y)):
            rows.append(
                grouped_row(
                    context,
                    curve.group,
                    coloring,
                    x=x,
                    regression_y=y,
                    ci_lower=curve.ci_lower[i] if curve.has_ci else None,
                    ci_upper=curve.ci_upper[i] if curve.has_ci else None,
                )
            )
    return rows


def build_regression_fragment(
    kind: LayerKind,
    names: RegressionNames,
    context: AnalysisContext,
    params: OutputParameters,
    style: VegaStyleSpec,
) -> Fragment:
    curves: tuple[RegressionCurve, ...] = context.stat(kind)
    coloring = group_coloring(context, style, (c.group for c in curves), names.stats)
    has_ci = any(curve.has_ci for curve in curves)

    data: list[dict[str, Any]] = [
        {"name": names.stats, "values": _rows(context, curves, coloring)}
    ]
    y_fields = [("table", "y"), (names.stats, "regression_y")]
    marks: list[dict[str, Any]] = []

    if has_ci:
        data.append(
            {
                "name": names.filtered,
                "source": names.stats,
                "transform": [{"type": "filter", "expr": CI_FILTER}],
            }
        )
        y_fields += [(names.filtered, "ci_lower"), (names.filtered, "ci_upper")]
        area = {
            "type": "area",
            "from": {"data": names.filtered},
            "sort": dict(SORT_BY_X),
            "encode": {
                "enter": {
                    "x": scaled("xscale", "x"),
                    "y": scaled("yscale", "ci_lower"),
                    "y2": scaled("yscale", "ci_upper"),
                    "fillOpacity": value(0.2),
                    "strokeWidth": value(0),
                    "fill": dict(coloring.encoding),
                }
            },
        }
        if coloring.faceted:
            marks.append(facet_group(names.ci_marks, names.ci_facet, names.filtered, area))
        else:
            marks.append({"name": names.ci_marks, **area})

    line = {
        "type": "line",
        "from": {"data": names.stats},
        "sort": dict(SORT_BY_X),
        "encode": {
            "enter": {
                "x": scaled("xscale", "x"),
                "y": scaled("yscale", "regression_y"),
                "strokeWidth": value(2),
                "stroke": dict(coloring.encoding),
            }
        },
    }
    if coloring.faceted:
        marks.append(facet_group(names.lines, names.line_facet, names.stats, line))
    else:
        marks.append({"name": names.line, **line})

    fill = scaled("color", "color") if context.color_grouped else value(style.mark_color)
    points = {
        "name": names.points,
        "type": "symbol",
        "from": {"data": "table"},
        "encode": {
            "enter": {
                "x": scaled("xscale", "x"),
                "y": scaled("yscale", "y"),
                "size": value(50),
                "stroke": value("white"),
                "strokeWidth": value(1),
                "fill": fill,
            }
        },
    }
    marks.append(with_tooltip(points, params, xy_tooltip(params, context.color_grouped)))

    scales = [
        x_scale(context),
        y_scale(context, domain=union_domain(*y_fields)),
        *coloring.scales,
    ]
    if context.color_grouped and not coloring.uses_color_field:
        scales.append(color_scale(style))
    return Fragment.of(data=data, scales=scales, axes=build_axes(params), marks=marks)


def build_glm_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    return build_regression_fragment(LayerKind.GLM, GLM_NAMES, context, params, style)


def build_smooth_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    return build_regression_fragment(LayerKind.SMOOTH, SMOOTH_NAMES, context, params, style)
