"""图例与交互式高亮。

只有同时存在序数型 ``color`` 比例尺、且主数据表中颜色取值多于一个时才生成图例。
交互式图例通过 ``clear``/``shift``/``clicked`` 三个信号维护 ``selected`` 数据源，
所有绑定 ``color`` 比例尺的图元（含任意深度的嵌套图元）在 update 阶段按选中状态
切换不透明度与颜色。
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.models.datum import is_missing

logger = logging.getLogger(__name__)

COLOR_SCALE = "color"
SELECTED = "selected"
ACTIVE_OPACITY = 0.7
INACTIVE_OPACITY = 0.15


def selection_test(field: str) -> str:
    return f"!length(data('{SELECTED}')) || indata('{SELECTED}', 'value', {field})"


MARK_TEST = selection_test("datum.color")
LEGEND_TEST = selection_test("datum.value")

LEGEND_CLICK = "@legendSymbol:click, @legendLabel:click"


def needs_legend(spec: dict[str, Any], table_rows: Sequence[dict[str, Any]]) -> bool:
    """存在序数型 ``color`` 比例尺且主数据表颜色取值多于一个。"""
    has_scale = any(
        scale.get("name") == COLOR_SCALE and scale.get("type") == "ordinal"
        for scale in spec.get("scales", ())
    )
    if not has_scale:
        return False
    colors = {
        row["color"]
        for row in table_rows
        if "color" in row and not is_missing(row["color"]) and row["color"] != ""
    }
    return len(colors) > 1


def static_legend() -> dict[str, Any]:
    return {
        "fill": COLOR_SCALE,
        "orient": "right",
        "padding": 10,
        "cornerRadius": 5,
        "strokeColor": "#ddd",
        "fillColor": "#fff",
        "title": "Color",
        "titlePadding": 5,
        "titleFontSize": 12,
        "titleFontWeight": "bold",
        "labelFontSize": 11,
        "symbolSize": 100,
        "symbolType": "circle",
    }


def interaction_signals() -> list[dict[str, Any]]:
    return [
        {
            "name": "clear",
            "value": True,
            "on": [{"events": "pointerup[!event.item]", "update": "true", "force": True}],
        },
        {
            "name": "shift",
            "value": False,
            "on": [{"events": LEGEND_CLICK, "update": "event.shiftKey", "force": True}],
        },
        {
            "name": "clicked",
            "value": None,
            "on": [{"events": LEGEND_CLICK, "update": "{value: datum.value}", "force": True}],
        },
    ]


def selection_source() -> dict[str, Any]:
    """选中集合；触发器按顺序求值。"""
    return {
        "name": SELECTED,
        "on": [
            {"trigger": "clear", "remove": True},
            {"trigger": "!shift", "remove": True},
            {"trigger": "!shift && clicked", "insert": "clicked"},
            {"trigger": "shift && clicked", "toggle": "clicked"},
        ],
    }


def interactive_legend() -> dict[str, Any]:
    return {
        "fill": COLOR_SCALE,
        "title": "Color",
        "orient": "right",
        "padding": 10,
        "encode": {
            "symbols": {
                "name": "legendSymbol",
                "interactive": True,
                "update": {
                    "fill": {"value": "transparent"},
                    "strokeWidth": {"value": 2},
                    "opacity": [
                        {"test": LEGEND_TEST, "value": ACTIVE_OPACITY},
                        {"value": INACTIVE_OPACITY},
                    ],
                    "size": {"value": 64},
                },
            },
            "labels": {
                "name": "legendLabel",
                "interactive": True,
                "update": {
                    "opacity": [
                        {"test": LEGEND_TEST, "value": 1},
                        {"value": 0.25},
                    ]
                },
            },
        },
    }


def _uses_color_scale(encoding: Any) -> bool:
    return isinstance(encoding, dict) and encoding.get("scale") == COLOR_SCALE


def _highlight(mark: dict[str, Any], neutral_color: str) -> None:
    encode = mark.get("encode")
    enter = encode.get("enter") if isinstance(encode, dict) else None
    if isinstance(enter, dict):
        for channel in ("fill", "stroke"):
            if not _uses_color_scale(enter.get(channel)):
                continue
            update = encode.setdefault("update", {})
            update["opacity"] = [
                {"test": MARK_TEST, "value": ACTIVE_OPACITY},
                {"value": INACTIVE_OPACITY},
            ]
            update[channel] = [
                {"test": MARK_TEST, "scale": COLOR_SCALE, "field": "color"},
                {"value": neutral_color},
            ]
    for child in mark.get("marks", ()):
        _highlight(child, neutral_color)


def highlight_marks(
    marks: Iterable[dict[str, Any]], neutral_color: str = "#ccc"
) -> list[dict[str, Any]]:
    """返回改写后的图元副本：绑定 ``color`` 比例尺的图元按选中状态高亮。"""
    rewritten = copy.deepcopy(list(marks))
    for mark in rewritten:
        _highlight(mark, neutral_color)
    return rewritten


def compose_legend(
    spec: dict[str, Any],
    table_rows: Sequence[dict[str, Any]],
    interactive: bool,
    style: VegaStyleSpec,
) -> dict[str, Any]:
    """按需附加图例；不需要图例时返回未改动的副本。"""
    result = copy.deepcopy(spec)
    if not needs_legend(result, table_rows):
        return result

    if interactive:
        result["signals"] = [*result.get("signals", []), *interaction_signals()]
        result["data"] = [*result.get("data", []), selection_source()]
        result["legends"] = [interactive_legend()]
        result["marks"] = highlight_marks(result.get("marks", []), style.neutral_color)
    else:
        result["legends"] = [static_legend()]
    padding = dict(result.get("padding") or style.padding())
    padding["right"] = style.legend_padding_right
    result["padding"] = padding
    logger.debug("已添加%s图例", "交互式" if interactive else "静态")
    return result


@dataclass(frozen=True)
class SelectionEvent:
    """图例上的一次交互：``clear`` 为点击空白处，``click`` 为点击图例项。"""

    kind: str
    value: Any = None
    shift: bool = False


@dataclass(frozen=True)
class SelectionState:
    """``selected`` 数据源的纯函数版本，用于推演交互结果。"""

    selected: tuple[Any, ...] = ()

    def apply(self, event: SelectionEvent) -> SelectionState:
        if event.kind == "clear":
            return SelectionState()
        if event.kind != "click":
            raise ValueError(f"未知的图例事件: {event.kind}")
        if not event.shift:
            return SelectionState((event.value,))
        if event.value in self.selected:
            return SelectionState(tuple(v for v in self.selected if v != event.value))
        return SelectionState((*self.selected, event.value))

    def is_highlighted(self, value: Any) -> bool:
        return not self.selected or value in self.selected

    def opacity(self, value: Any) -> float:
        return ACTIVE_OPACITY if self.is_highlighted(value) else INACTIVE_OPACITY
