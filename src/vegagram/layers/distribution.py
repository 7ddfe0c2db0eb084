"""分布类统计图层：箱线图、核密度曲线、小提琴图和 Q-Q 图。

类别轴上的序号统一通过 ``category_label`` 映射为 x 美学按首次出现排序的标签，
越界序号回退为 ``Category<i>``。类别带比例尺不排序，保持首次出现顺序。
"""

from __future__ import annotations

from typing import Any

from vegagram.charts.marks import scaled, value, with_tooltip
from vegagram.charts.scales import (
    band_scale,
    build_axes,
    data_ref,
    linear_scale,
    union_domain,
    y_scale,
)
from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.layers.common import SORT_BY_X, facet_group, group_coloring, grouped_row
from vegagram.models.context import AnalysisContext, LayerKind
from vegagram.models.datum import category_label, to_plain
from vegagram.models.fragment import Fragment
from vegagram.models.params import OutputParameters
from vegagram.models.stats import BoxplotCategory, DensityCurve, QQPoint, ViolinPoint

BOX_HALF_WIDTH = 15
BOX_STROKE = "#333"
MEDIAN_STROKE = "#000"
VIOLIN_OFFSET_DOMAIN = [-0.4, 0.4]
VIOLIN_OFFSET_RANGE = [-50, 50]

MEDIAN_TOOLTIP = "'Category: ' + datum.x + ', Median: ' + format(datum.median, '.3f')"
DENSITY_TOOLTIP = "'Value: ' + format(datum.x, '.3f') + ', Density: ' + format(datum.y, '.6f')"
VIOLIN_TOOLTIP = (
    "'Category: ' + datum.category + ', Y: ' + format(datum.y, '.3f')"
    " + ', Density: ' + format(datum.density, '.6f')"
)
QQ_TOOLTIP = "'Theoretical: ' + format(datum.x, '.3f') + ', Sample: ' + format(datum.y, '.3f')"


def _centered(field: str = "x", offset: float | None = None) -> dict[str, Any]:
    ref = scaled("xscale", field, band=0.5)
    if offset is not None:
        ref["offset"] = offset
    return ref


def build_boxplot_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    """箱体、须线和中位线分别对应一个数据源，绘制顺序为须线 → 箱体 → 中位线。"""
    categories: tuple[BoxplotCategory, ...] = context.stat(LayerKind.BOXPLOT)
    boxes: list[dict[str, Any]] = []
    whiskers: list[dict[str, Any]] = []
    medians: list[dict[str, Any]] = []
    for box in categories:
        label = category_label(box.category, context.x_labels)
        common = {"x": label, "category": box.category, "group": box.group}
        boxes.append({**common, "q1": to_plain(box.q1), "q3": to_plain(box.q3)})
        whiskers.append(
            {
                **common,
                "y_start": to_plain(box.q1),
                "y_end": to_plain(box.whisker_low),
                "type": "lower",
            }
        )
        whiskers.append(
            {
                **common,
                "y_start": to_plain(box.q3),
                "y_end": to_plain(box.whisker_high),
                "type": "upper",
            }
        )
        medians.append({**common, "median": to_plain(box.median)})

    marks = [
        {
            "name": "whiskers",
            "type": "rule",
            "from": {"data": "boxplot_whiskers"},
            "encode": {
                "enter": {
                    "x": _centered(),
                    "y": scaled("yscale", "y_start"),
                    "y2": scaled("yscale", "y_end"),
                    "stroke": value(BOX_STROKE),
                    "strokeWidth": value(1),
                }
            },
        },
        {
            "name": "boxes",
            "type": "rect",
            "from": {"data": "boxplot_boxes"},
            "encode": {
                "enter": {
                    "x": _centered(offset=-BOX_HALF_WIDTH),
                    "width": value(BOX_HALF_WIDTH * 2),
                    "y": scaled("yscale", "q3"),
                    "y2": scaled("yscale", "q1"),
                    "fill": scaled("categoryColor", "category"),
                    "fillOpacity": value(0.7),
                    "stroke": value(BOX_STROKE),
                    "strokeWidth": value(1),
                }
            },
        },
        with_tooltip(
            {
                "name": "medians",
                "type": "rule",
                "from": {"data": "boxplot_medians"},
                "encode": {
                    "enter": {
                        "x": _centered(offset=-BOX_HALF_WIDTH),
                        "x2": _centered(offset=BOX_HALF_WIDTH),
                        "y": scaled("yscale", "median"),
                        "stroke": value(MEDIAN_STROKE),
                        "strokeWidth": value(2),
                    }
                },
            },
            params,
            MEDIAN_TOOLTIP,
        ),
    ]
    scales = [
        band_scale("xscale", data_ref("boxplot_boxes", "x")),
        y_scale(
            context,
            domain=union_domain(
                ("table", "y"),
                ("boxplot_boxes", "q1"),
                ("boxplot_boxes", "q3"),
                ("boxplot_whiskers", "y_start"),
                ("boxplot_whiskers", "y_end"),
                ("boxplot_medians", "median"),
            ),
            zero=False,
        ),
        {
            "name": "categoryColor",
            "type": "ordinal",
            "domain": data_ref("boxplot_boxes", "category"),
            "range": list(style.categorical_colors),
        },
    ]
    return Fragment.of(
        data=[
            {"name": "boxplot_boxes", "values": boxes},
            {"name": "boxplot_whiskers", "values": whiskers},
            {"name": "boxplot_medians", "values": medians},
        ],
        scales=scales,
        axes=build_axes(params),
        marks=marks,
    )


def build_density_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    curves: tuple[DensityCurve, ...] = context.stat(LayerKind.DENSITY)
    coloring = group_coloring(context, style, (c.group for c in curves), "density")
    rows = [
        grouped_row(context, curve.group, coloring, x=x, y=y)
        for curve in curves
        for x, y in zip(curve.x, curve.y)
    ]

    tooltip = DENSITY_TOOLTIP
    if coloring.uses_color_field:
        tooltip = "'Group: ' + datum.color + ', " + tooltip[1:]
    line = {
        "type": "line",
        "from": {"data": "density"},
        "sort": dict(SORT_BY_X),
        "encode": {
            "enter": {
                "x": scaled("xscale", "x"),
                "y": scaled("yscale", "y"),
                "strokeWidth": value(2),
                "stroke": dict(coloring.encoding),
                "fill": value("transparent"),
            }
        },
    }
    line = with_tooltip(line, params, tooltip)
    if coloring.faceted:
        mark = facet_group("density_curves", "density_group_data", "density", line)
    else:
        mark = {"name": "density_curve", **line}

    scales = [
        linear_scale("xscale", data_ref("density", "x"), "width", nice=True),
        linear_scale("yscale", data_ref("density", "y"), "height", nice=True, zero=True),
        *coloring.scales,
    ]
    return Fragment.of(
        data=[{"name": "density", "values": rows}],
        scales=scales,
        axes=build_axes(params),
        marks=[mark],
    )


def build_violin_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    """每个类别一块水平方向的面积图，左右边界由 ``violin_width`` 比例尺换算成像素偏移。"""
    points: tuple[ViolinPoint, ...] = context.stat(LayerKind.VIOLIN)
    coloring = group_coloring(context, style, (p.group for p in points), "violin")
    rows = [
        grouped_row(
            context,
            point.group,
            coloring,
            category=category_label(point.category, context.x_labels),
            y=point.y,
            density=point.density,
            left=point.left,
            right=point.right,
        )
        for point in points
    ]

    fill = coloring.encoding
    area = {
        "type": "area",
        "from": {"data": "violin"},
        "sort": {"field": "datum.y"},
        "encode": {
            "enter": {
                "orient": value("horizontal"),
                "x": {**_centered("category"), "offset": scaled("violin_width", "left")},
                "x2": {**_centered("category"), "offset": scaled("violin_width", "right")},
                "y": scaled("yscale", "y"),
                "fill": dict(fill),
                "fillOpacity": value(0.7),
                "stroke": dict(fill),
                "strokeWidth": value(1),
            }
        },
    }
    area = with_tooltip(area, params, VIOLIN_TOOLTIP)
    mark = facet_group(
        "violin_plots", "violin_category", "violin", area, groupby=["category", "group"]
    )

    scales = [
        band_scale("xscale", data_ref("violin", "category")),
        y_scale(context, domain=data_ref("violin", "y")),
        linear_scale("violin_width", list(VIOLIN_OFFSET_DOMAIN), list(VIOLIN_OFFSET_RANGE)),
        *coloring.scales,
    ]
    return Fragment.of(
        data=[{"name": "violin", "values": rows}],
        scales=scales,
        axes=build_axes(params),
        marks=[mark],
    )


def build_qq_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    points: tuple[QQPoint, ...] = context.stat(LayerKind.QQ)
    coloring = group_coloring(context, style, (p.group for p in points), "qq")
    rows = [
        grouped_row(context, point.group, coloring, x=point.theoretical, y=point.sample)
        for point in points
    ]

    tooltip = QQ_TOOLTIP
    if coloring.uses_color_field:
        tooltip += " + ', Group: ' + datum.color"
    mark = {
        "name": "qq_points",
        "type": "symbol",
        "from": {"data": "qq"},
        "encode": {
            "enter": {
                "x": scaled("xscale", "x"),
                "y": scaled("yscale", "y"),
                "size": value(60),
                "stroke": value("white"),
                "strokeWidth": value(1),
                "fill": dict(coloring.encoding),
            }
        },
    }
    scales = [
        linear_scale("xscale", data_ref("qq", "x"), "width", nice=True),
        linear_scale("yscale", data_ref("qq", "y"), "height", nice=True),
        *coloring.scales,
    ]
    return Fragment.of(
        data=[{"name": "qq", "values": rows}],
        scales=scales,
        axes=build_axes(params),
        marks=[with_tooltip(mark, params, tooltip)],
    )
