"""二维直方图（bin2d）图层：每个计数非零的单元格一个矩形，按计数连续着色。"""

from __future__ import annotations

from typing import Any

from vegagram.charts.marks import scaled, value, with_tooltip
from vegagram.charts.scales import build_axes, data_ref, finite_extent, linear_scale
from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.models.context import AnalysisContext, LayerKind
from vegagram.models.datum import to_plain
from vegagram.models.fragment import Fragment
from vegagram.models.params import OutputParameters
from vegagram.models.stats import Bin2dCell

HEATMAP_TOOLTIP = (
    "'X: ' + format(datum.x, '.2f') + ', Y: ' + format(datum.y, '.2f')"
    " + ', Count: ' + datum.count"
)


def heat_color_scale(context: AnalysisContext, style: VegaStyleSpec) -> dict[str, Any]:
    """连续色标：外部标记连续色彩时使用其色图与范围，否则由数据决定定义域。"""
    continuous = context.continuous_color
    colormap = continuous.colormap if continuous.active else None
    scale = linear_scale(
        "heatColor",
        data_ref("heatmap_data", "count"),
        style.heat_colors(colormap),
    )
    if continuous.active and continuous.limits is not None:
        scale["domain"] = list(continuous.limits)
        scale["clamp"] = True
    return scale


def build_bin2d_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    cells: tuple[Bin2dCell, ...] = context.stat(LayerKind.BIN2D)
    rows = [
        {
            "x": to_plain(cell.x),
            "y": to_plain(cell.y),
            "count": to_plain(cell.count),
            "x_width": to_plain(cell.x_width),
            "y_width": to_plain(cell.y_width),
            "x0": to_plain(cell.x - cell.x_width / 2),
            "x1": to_plain(cell.x + cell.x_width / 2),
            "y0": to_plain(cell.y - cell.y_width / 2),
            "y1": to_plain(cell.y + cell.y_width / 2),
        }
        for cell in cells
    ]
    x_domain = finite_extent(r[key] for r in rows for key in ("x0", "x1"))
    y_domain = finite_extent(r[key] for r in rows for key in ("y0", "y1"))

    mark = {
        "name": "heatmap_cells",
        "type": "rect",
        "from": {"data": "heatmap_data"},
        "encode": {
            "enter": {
                "x": scaled("xscale", "x0"),
                "x2": scaled("xscale", "x1"),
                "y": scaled("yscale", "y1"),
                "y2": scaled("yscale", "y0"),
                "fill": scaled("heatColor", "count"),
                "stroke": value("white"),
                "strokeWidth": value(0.5),
            }
        },
    }
    return Fragment.of(
        data=[{"name": "heatmap_data", "values": rows}],
        scales=[
            linear_scale("xscale", x_domain, "width"),
            linear_scale("yscale", y_domain, "height"),
            heat_color_scale(context, style),
        ],
        axes=build_axes(params),
        marks=[with_tooltip(mark, params, HEATMAP_TOOLTIP)],
    )
