"""汇总（summary）图层：按类别的均值折线加置信带。"""

from __future__ import annotations

import math
from typing import Any

from vegagram.charts.marks import scaled, value, with_tooltip
from vegagram.charts.scales import build_axes, union_domain, x_scale, y_scale
from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.layers.common import SORT_BY_X, facet_group, group_coloring, grouped_row
from vegagram.models.context import AnalysisContext, LayerKind
from vegagram.models.datum import category_label
from vegagram.models.fragment import Fragment
from vegagram.models.params import OutputParameters
from vegagram.models.stats import SummaryCurve

SUMMARY_TOOLTIP = "'Categories: ' + datum.x + ', Values: ' + format(datum.y, '.3f')"


def _x_value(context: AnalysisContext, x: float) -> Any:
    # 类别轴上的 x 是 1 起始的类别序号
    if context.x_is_numeric or not math.isfinite(x) or float(x) != round(x):
        return x
    return category_label(int(round(x)), context.x_labels)


def _x_position(context: AnalysisContext) -> dict[str, Any]:
    if context.x_is_numeric:
        return scaled("xscale", "x")
    return scaled("xscale", "x", band=0.5)


def build_summary_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    curves: tuple[SummaryCurve, ...] = context.stat(LayerKind.SUMMARY)
    coloring = group_coloring(context, style, (c.group for c in curves), "summary_lines")

    lines: list[dict[str, Any]] = []
    bounds: list[dict[str, Any]] = []
    for curve in curves:
        for x, y, lower, upper in zip(curve.x, curve.y, curve.ci_lower, curve.ci_upper):
            label = _x_value(context, x)
            lines.append(grouped_row(context, curve.group, coloring, x=label, y=y))
            bounds.append(
                grouped_row(context, curve.group, coloring, x=label, y=lower, ci_type="lower")
            )
            bounds.append(
                grouped_row(context, curve.group, coloring, x=label, y=upper, ci_type="upper")
            )

    groupby = ["x", "group", "color"] if coloring.uses_color_field else ["x", "group"]
    data = [
        {"name": "summary_lines", "values": lines},
        {
            "name": "summary_ci",
            "values": bounds,
            "transform": [
                {"type": "pivot", "field": "ci_type", "value": "y", "groupby": groupby},
                {"type": "collect", "sort": {"field": "x", "order": "ascending"}},
            ],
        },
    ]

    x = _x_position(context)
    area = {
        "type": "area",
        "from": {"data": "summary_ci"},
        "encode": {
            "enter": {
                "x": dict(x),
                "y": scaled("yscale", "lower"),
                "y2": scaled("yscale", "upper"),
                "fill": dict(coloring.encoding),
                "fillOpacity": value(0.2),
            }
        },
    }
    line = {
        "type": "line",
        "from": {"data": "summary_lines"},
        "sort": dict(SORT_BY_X),
        "encode": {
            "enter": {
                "x": dict(x),
                "y": scaled("yscale", "y"),
                "stroke": dict(coloring.encoding),
                "strokeWidth": value(2),
            }
        },
    }
    line = with_tooltip(line, params, SUMMARY_TOOLTIP)
    if coloring.faceted:
        marks = [
            facet_group("summary_bands", "summary_ci_group", "summary_ci", area),
            facet_group("summary_series", "summary_line_group", "summary_lines", line),
        ]
    else:
        marks = [{"name": "summary_band", **area}, {"name": "summary_line", **line}]

    scales = [
        x_scale(context),
        y_scale(
            context,
            domain=union_domain(
                ("table", "y"),
                ("summary_lines", "y"),
                ("summary_ci", "lower"),
                ("summary_ci", "upper"),
            ),
        ),
        *coloring.scales,
    ]
    return Fragment.of(data=data, scales=scales, axes=build_axes(params), marks=marks)
