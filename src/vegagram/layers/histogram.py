"""直方图（bin）图层。

直方图的 y 定义域必须从 0 开始并由计数决定，而不是原始观测的 y，
因此这里使用字面量定义域：x 为分箱边界的最小/最大值，y 为 0..最大计数。
"""

from __future__ import annotations

from typing import Any

from vegagram.charts.marks import scaled, value, with_tooltip
from vegagram.charts.scales import build_axes, finite_extent, linear_scale
from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.layers.common import facet_group, group_coloring, grouped_row
from vegagram.models.context import AnalysisContext, LayerKind
from vegagram.models.fragment import Fragment
from vegagram.models.params import OutputParameters
from vegagram.models.stats import BinGroup

BIN_TOOLTIP = (
    "'Bin: [' + format(datum.x_left, '.2f') + ', ' + format(datum.x_right, '.2f')"
    " + '), Count: ' + datum.count"
)


def histogram_scales(bins: tuple[BinGroup, ...]) -> list[dict[str, Any]]:
    """字面量定义域的 ``xscale``/``yscale``，只取有限的边界与计数。"""
    x_domain = finite_extent(edge for group in bins for edge in group.edges)
    y_domain = [0, finite_extent(count for group in bins for count in group.counts)[1]]
    return [
        linear_scale("xscale", x_domain, "width"),
        linear_scale("yscale", y_domain, "height", nice=True, zero=True),
    ]


def build_bin_layer(
    context: AnalysisContext, params: OutputParameters, style: VegaStyleSpec
) -> Fragment:
    bins: tuple[BinGroup, ...] = context.stat(LayerKind.BIN)
    first_color = style.categorical_colors[0] if style.categorical_colors else style.mark_color
    coloring = group_coloring(
        context, style, (b.group for b in bins), "bins", single_color=first_color
    )

    rows: list[dict[str, Any]] = []
    for group in bins:
        for i, (center, count) in enumerate(zip(group.centers, group.counts)):
            left, right = group.edges[i], group.edges[i + 1]
            rows.append(
                grouped_row(
                    context,
                    group.group,
                    coloring,
                    x=center,
                    count=count,
                    bin_width=right - left,
                    x_left=left,
                    x_right=right,
                )
            )

    bars = {
        "type": "rect",
        "from": {"data": "bins"},
        "encode": {
            "enter": {
                "x": scaled("xscale", "x_left"),
                "x2": scaled("xscale", "x_right"),
                "y": scaled("yscale", "count"),
                "y2": {"scale": "yscale", "value": 0},
                "fill": dict(coloring.encoding),
                "stroke": value("white"),
                "strokeWidth": value(1),
            }
        },
    }
    bars = with_tooltip(bars, params, BIN_TOOLTIP)
    if len({b.group for b in bins}) > 1:
        mark = facet_group("histogram_bars", "bin_group_data", "bins", bars)
    else:
        mark = {"name": "histogram_bars", **bars}

    return Fragment.of(
        data=[{"name": "bins", "values": rows}],
        scales=[*histogram_scales(bins), *coloring.scales],
        axes=build_axes(params),
        marks=[mark],
    )
