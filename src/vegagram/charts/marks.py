"""图元装配。

几何图层之间的差别大多只在图元类型、默认样式和着色通道上，
这里用一张编码表描述它们，由 ``assemble_mark`` 统一生成图元；
只有分组柱状图、直方图、小提琴图等少数图层自行拼装。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.models.context import AnalysisContext, LayerKind
from vegagram.models.params import OutputParameters

JITTER_X_SIGNAL = (
    "scale('xscale', datum.x) + bandwidth('xscale')/2"
    " + (random() - 0.5) * bandwidth('xscale') * 0.8"
)


@dataclass(frozen=True)
class MarkStyle:
    """单类几何图层的编码表条目。

    ``color_channel`` 为 None 时使用固定参考色（参考线）或默认样式里的颜色。
    """

    name: str
    mark_type: str
    color_channel: str | None = "fill"
    defaults: Mapping[str, Any] = field(default_factory=dict)
    reference: bool = False
    tooltip: bool = True


MARK_STYLES: dict[LayerKind, MarkStyle] = {
    LayerKind.POINT: MarkStyle(
        "points", "symbol", "fill", {"size": 60, "stroke": "white", "strokeWidth": 1}
    ),
    LayerKind.JITTER: MarkStyle(
        "jitteredPoints", "symbol", "fill", {"size": 60, "stroke": "white", "strokeWidth": 1}
    ),
    LayerKind.SWARM: MarkStyle(
        "swarmPoints", "symbol", "fill", {"size": 80, "stroke": "white", "strokeWidth": 1}
    ),
    LayerKind.LINE: MarkStyle("lines", "line", "stroke", {"strokeWidth": 2}),
    LayerKind.BAR: MarkStyle("bars", "rect", "fill"),
    LayerKind.RASTER: MarkStyle("ticks", "rect", "fill", {"width": 2}, tooltip=False),
    LayerKind.INTERVAL: MarkStyle(
        "errorbars", "rule", "stroke", {"strokeWidth": 2}, tooltip=False
    ),
    LayerKind.ABLINE: MarkStyle(
        "abline", "line", None, {"strokeWidth": 2, "strokeDash": [5, 5]},
        reference=True, tooltip=False,
    ),
    LayerKind.VLINE: MarkStyle(
        "vlines", "rule", None, {"strokeWidth": 1, "strokeDash": [3, 3]},
        reference=True, tooltip=False,
    ),
    LayerKind.HLINE: MarkStyle(
        "hlines", "rule", None, {"strokeWidth": 1, "strokeDash": [3, 3]},
        reference=True, tooltip=False,
    ),
    LayerKind.POLYGON: MarkStyle(
        "polygons", "area", None, {"fill": "#cccccc", "fillOpacity": 0.3}, tooltip=False
    ),
}


def value(v: Any) -> dict[str, Any]:
    return {"value": v}


def scaled(scale: str, field_name: str, **extra: Any) -> dict[str, Any]:
    ref: dict[str, Any] = {"scale": scale, "field": field_name}
    ref.update(extra)
    return ref


def color_encoding(context: AnalysisContext, style: VegaStyleSpec) -> dict[str, Any]:
    """颜色分组启用时绑定 ``color`` 比例尺，否则使用默认图元色。"""
    if context.color_grouped:
        return scaled("color", "color")
    return value(style.mark_color)


def _quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace("'", "\\'")


def _number_or_text(field_name: str) -> str:
    return f"(isNumber(datum.{field_name}) ? format(datum.{field_name}, '.3f') : datum.{field_name})"


def xy_tooltip(params: OutputParameters, grouped: bool) -> str:
    """``'<x 标题>: ' + ... + ', <y 标题>: ' + ...`` 形式的提示表达式。"""
    signal = (
        f"'{_quote(params.x_label)}: ' + {_number_or_text('x')}"
        f" + ', {_quote(params.y_label)}: ' + {_number_or_text('y')}"
    )
    if grouped:
        signal += " + ', Color: ' + datum.color"
    return signal


def with_tooltip(mark: dict[str, Any], params: OutputParameters, signal: str) -> dict[str, Any]:
    """返回带 ``encode.update.tooltip`` 的新图元；提示关闭时原样返回副本。"""
    encode = dict(mark.get("encode") or {})
    if params.show_tooltip:
        update = dict(encode.get("update") or {})
        update["tooltip"] = {"signal": signal}
        encode["update"] = update
    return {**mark, "encode": encode}


def assemble_mark(
    kind: LayerKind,
    context: AnalysisContext,
    params: OutputParameters,
    style: VegaStyleSpec,
    position: Mapping[str, Any],
    source: str = "table",
    update: Mapping[str, Any] | None = None,
    name: str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """按编码表装配一个图元。

    ``position`` 为位置通道编码；``overrides`` 覆盖默认样式中的同名通道。
    """
    entry = MARK_STYLES[kind]
    enter: dict[str, Any] = dict(position)
    for channel, default in entry.defaults.items():
        enter[channel] = value(default)
    if entry.reference:
        enter["stroke"] = value(style.reference_color)
    elif entry.color_channel is not None:
        enter[entry.color_channel] = color_encoding(context, style)
    enter.update(overrides or {})

    encode: dict[str, Any] = {"enter": enter}
    if update:
        encode["update"] = dict(update)
    mark = {
        "name": name or entry.name,
        "type": entry.mark_type,
        "from": {"data": source},
        "encode": encode,
    }
    if entry.tooltip:
        mark = with_tooltip(mark, params, xy_tooltip(params, context.color_grouped))
    return mark
