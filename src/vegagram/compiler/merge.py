"""多图层合并。

合并规则：
- 主数据表 ``table`` 位于 data 首位且只出现一次；
- 图元按图层顺序追加（后绘制的图层在上）；
- 比例尺与数据源按名称去重，先出现者生效；
- 坐标轴按 orient 去重，标题统一取自输出参数。
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Sequence

from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.models.fragment import Fragment
from vegagram.models.params import OutputParameters

logger = logging.getLogger(__name__)

TABLE = "table"


def _axis_title(orient: str, params: OutputParameters) -> str | None:
    if orient == "bottom":
        return params.x_label
    if orient == "left":
        return params.y_label
    return None


def merge_fragments(
    fragments: Iterable[Fragment],
    table_rows: Sequence[dict[str, Any]],
    params: OutputParameters,
    style: VegaStyleSpec,
) -> dict[str, Any]:
    """把各图层片段合并为一个完整的 Vega 文档（不含图例）。

    输入不会被修改，返回的文档与片段之间不共享任何可变对象。
    """
    spec = style.base_spec(params.width_px, params.height_px)
    data: list[dict[str, Any]] = [{"name": TABLE, "values": copy.deepcopy(list(table_rows))}]
    scales: list[dict[str, Any]] = []
    axes: list[dict[str, Any]] = []
    marks: list[dict[str, Any]] = []
    data_names = {TABLE}
    scale_names: set[str] = set()
    orients: set[str] = set()

    for fragment in fragments:
        marks.extend(copy.deepcopy(mark) for mark in fragment.marks)
        for scale in fragment.scales:
            name = scale.get("name")
            if name in scale_names:
                logger.debug("比例尺 %s 已存在，忽略后续定义", name)
                continue
            scale_names.add(name)
            scales.append(copy.deepcopy(scale))
        for source in fragment.data:
            name = source.get("name")
            if name in data_names:
                continue
            data_names.add(name)
            data.append(copy.deepcopy(source))
        for axis in fragment.axes:
            orient = axis.get("orient")
            if orient in orients:
                continue
            orients.add(orient)
            merged = copy.deepcopy(axis)
            title = _axis_title(orient, params)
            if title is not None:
                merged["title"] = title
            axes.append(merged)

    spec["data"] = data
    spec["scales"] = scales
    spec["axes"] = axes
    spec["marks"] = marks
    if params.has_title:
        spec["title"] = params.title
    return spec
