"""几何图层构建器：直接从主数据表 ``table`` 绘制。"""

from __future__ import annotations

import logging
from typing import Any

from vegagram.charts.marks import JITTER_X_SIGNAL, assemble_mark, scaled, value
from vegagram.charts.scales import (
    CLUSTERED_BAND_PADDING,
    build_axes,
    color_scale,
    data_ref,
    position_scales,
    union_domain,
    x_scale,
    y_scale,
)
from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.layers.common import SORT_BY_X
from vegagram.models.context import AnalysisContext, LayerKind
from vegagram.models.fragment import Fragment
from vegagram.models.params import OutputParameters

logger = logging.getLogger(__name__)

_BAR_X_AXIS = {"tickSize": 0, "labelPadding": 4, "zindex": 1}
_SWARM_X_AXIS = {"labelAngle": 0, "labelFontSize": 12}
_ZERO_BASELINE = {"scale": "yscale", "value": 0}


def _x_position(context: AnalysisContext) -> dict[str, Any]:
    if context.x_is_numeric:
        return scaled("xscale", "x")
    return scaled("xscale", "x", band=0.5)


def _xy(context: AnalysisContext) -> dict[str, Any]:
    return {"x": _x_position(context), "y": scaled("yscale", "y")}


def _standard(
    kind: LayerKind,
    context: AnalysisContext,
    params: OutputParameters,
    style: VegaStyleSpec,
    position: dict[str, Any],
    **options: Any,
) -> Fragment:
    mark = assemble_mark(kind, context, params, style, position, **options)
    return Fragment.of(
        scales=position_scales(context, style),
        axes=build_axes(params),
        marks=[mark],
    )


def build_point_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    return _standard(LayerKind.POINT, context, params, style, _xy(context))


def build_line_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    """无分组时是一条折线；有颜色分组时按颜色分面，每组按 x 排序后连线。"""
    line = assemble_mark(LayerKind.LINE, context, params, style, _xy(context))
    line["sort"] = dict(SORT_BY_X)
    if context.color_grouped:
        inner = {key: v for key, v in line.items() if key != "name"}
        inner["from"] = {"data": "series"}
        mark = {
            "name": "lines",
            "type": "group",
            "from": {"facet": {"name": "series", "data": "table", "groupby": "color"}},
            "marks": [inner],
        }
    else:
        mark = line
    return Fragment.of(
        scales=position_scales(context, style),
        axes=build_axes(params),
        marks=[mark],
    )


def build_bar_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    """柱状图；有颜色分组时先按 x 分面，再在分面内按颜色做簇状排列。"""
    y = y_scale(context)
    y["round"] = True
    scales = [x_scale(context, force_band=True, padding=CLUSTERED_BAND_PADDING), y]
    if context.color_grouped:
        scales.append(color_scale(style))
        bars = assemble_mark(
            LayerKind.BAR,
            context,
            params,
            style,
            {
                "x": scaled("pos", "color"),
                "width": {"scale": "pos", "band": 1},
                "y": scaled("yscale", "y"),
                "y2": dict(_ZERO_BASELINE),
            },
            source="facet",
        )
        mark = {
            "name": "bar_groups",
            "type": "group",
            "from": {"facet": {"data": "table", "name": "facet", "groupby": "x"}},
            "encode": {"enter": {"x": scaled("xscale", "x")}},
            "signals": [{"name": "width", "update": "bandwidth('xscale')"}],
            "scales": [
                {
                    "name": "pos",
                    "type": "band",
                    "range": "width",
                    "domain": data_ref("facet", "color"),
                }
            ],
            "marks": [bars],
        }
    else:
        mark = assemble_mark(
            LayerKind.BAR,
            context,
            params,
            style,
            {
                "x": scaled("xscale", "x"),
                "width": {"scale": "xscale", "band": 1},
                "y": scaled("yscale", "y"),
                "y2": dict(_ZERO_BASELINE),
            },
        )
    return Fragment.of(
        scales=scales,
        axes=build_axes(params, x_options=_BAR_X_AXIS),
        marks=[mark],
    )


def _scattered(
    kind: LayerKind,
    context: AnalysisContext,
    params: OutputParameters,
    style: VegaStyleSpec,
    x_axis: dict[str, Any] | None = None,
) -> Fragment:
    # 水平扰动由渲染端在绘制时计算，这里只输出表达式
    mark = assemble_mark(
        kind,
        context,
        params,
        style,
        {"y": scaled("yscale", "y")},
        update={"x": {"signal": JITTER_X_SIGNAL}},
    )
    return Fragment.of(
        scales=position_scales(context, style, force_band=True),
        axes=build_axes(params, x_options=x_axis),
        marks=[mark],
    )


def build_jitter_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    return _scattered(LayerKind.JITTER, context, params, style)


def build_swarm_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    return _scattered(LayerKind.SWARM, context, params, style, x_axis=_SWARM_X_AXIS)


def build_raster_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    """一维刻度条：只有 x 比例尺和底部坐标轴。"""
    scales = [x_scale(context)]
    if context.color_grouped:
        scales.append(color_scale(style))
    mark = assemble_mark(
        LayerKind.RASTER,
        context,
        params,
        style,
        {"x": _x_position(context), "y": value(0), "height": {"signal": "height"}},
    )
    return Fragment.of(scales=scales, axes=build_axes(params, y=False), marks=[mark])


def build_interval_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    """误差线：从 ymin 到 ymax 的竖直线段。"""
    low, high = "ymin", "ymax"
    if context.aes.ymin is None or context.aes.ymax is None:
        logger.warning("interval 图层缺少 ymin/ymax，退化为 y 处的零长度线段")
        low = high = "y"
    scales = [
        x_scale(context),
        y_scale(
            context,
            domain=union_domain(("table", "y"), ("table", low), ("table", high)),
        ),
    ]
    if context.color_grouped:
        scales.append(color_scale(style))
    mark = assemble_mark(
        LayerKind.INTERVAL,
        context,
        params,
        style,
        {"x": _x_position(context), "y": scaled("yscale", low), "y2": scaled("yscale", high)},
    )
    return Fragment.of(scales=scales, axes=build_axes(params), marks=[mark])


def build_abline_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    return _standard(LayerKind.ABLINE, context, params, style, _xy(context))


def build_vline_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    position = {"x": _x_position(context), "y": value(0), "y2": {"signal": "height"}}
    return _standard(LayerKind.VLINE, context, params, style, position)


def build_hline_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    position = {"x": value(0), "x2": {"signal": "width"}, "y": scaled("yscale", "y")}
    return _standard(LayerKind.HLINE, context, params, style, position)


def build_polygon_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    position = {**_xy(context), "y2": dict(_ZERO_BASELINE)}
    return _standard(LayerKind.POLYGON, context, params, style, position)


GEOM_BUILDERS = {
    LayerKind.POINT: build_point_layer,
    LayerKind.LINE: build_line_layer,
    LayerKind.BAR: build_bar_layer,
    LayerKind.JITTER: build_jitter_layer,
    LayerKind.SWARM: build_swarm_layer,
    LayerKind.RASTER: build_raster_layer,
    LayerKind.INTERVAL: build_interval_layer,
    LayerKind.ABLINE: build_abline_layer,
    LayerKind.VLINE: build_vline_layer,
    LayerKind.HLINE: build_hline_layer,
    LayerKind.POLYGON: build_polygon_layer,
}

