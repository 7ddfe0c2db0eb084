"""统计图层共用的着色与分面工具。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from vegagram.charts.marks import scaled, value
from vegagram.charts.scales import color_scale, group_color_scale
from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.models.context import AnalysisContext
from vegagram.models.datum import to_plain

SORT_BY_X = {"field": "datum.x"}


@dataclass(frozen=True)
class GroupColoring:
    """统计图层的着色方案。

    颜色分组启用且每组都能对应到颜色标签时共用 ``color`` 比例尺（参与图例联动）；
    否则多组结果使用按数据源命名的私有组色比例尺，单组使用默认图元色。
    """

    encoding: dict[str, Any]
    scales: tuple[dict[str, Any], ...]
    faceted: bool
    uses_color_field: bool


def group_coloring(
    context: AnalysisContext,
    style: VegaStyleSpec,
    groups: Iterable[int],
    source: str,
    single_color: str | None = None,
) -> GroupColoring:
    distinct = sorted(set(groups))
    faceted = len(distinct) > 1 or context.color_grouped
    if context.color_grouped and all(context.group_color(g) is not None for g in distinct):
        return GroupColoring(
            scaled("color", "color"), (color_scale(style, "table"),), faceted, True
        )
    if len(distinct) > 1:
        scale = group_color_scale(style, source)
        return GroupColoring(scaled(scale["name"], "group"), (scale,), faceted, False)
    return GroupColoring(value(single_color or style.mark_color), (), faceted, False)


def grouped_row(
    context: AnalysisContext, group: int, coloring: GroupColoring, **fields: Any
) -> dict[str, Any]:
    """统计结果的一行；数值统一转为 JSON 标量，分组启用时附带颜色标签。"""
    row = {key: to_plain(v) for key, v in fields.items()}
    row["group"] = group
    if coloring.uses_color_field:
        row["color"] = context.group_color(group)
    return row


def facet_group(
    name: str,
    facet_name: str,
    source: str,
    inner: dict[str, Any],
    groupby: str | list[str] = "group",
) -> dict[str, Any]:
    """按 ``groupby`` 分面的 group 图元，内部图元从分面数据读取。"""
    return {
        "name": name,
        "type": "group",
        "from": {"facet": {"name": facet_name, "data": source, "groupby": groupby}},
        "marks": [{**inner, "from": {"data": facet_name}}],
    }
