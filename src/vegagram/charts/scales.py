"""比例尺与坐标轴合成。

数值轴使用 linear，非数值轴使用 band；定义域一律以
``{"data": ..., "field": ...}`` 引用数据源，只有直方图等需要固定下限的
图层才使用字面量定义域。分类调色板来自注入的 ``VegaStyleSpec``。
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

import numpy as np

from vegagram.charts.style_contract import VegaStyleSpec
from vegagram.errors import Notice, NoticeCode
from vegagram.models.context import AnalysisContext
from vegagram.models.params import OutputParameters

logger = logging.getLogger(__name__)

DEFAULT_BAND_PADDING = 0.1
CLUSTERED_BAND_PADDING = 0.2


def data_ref(source: str, field: str, sort: bool = False) -> dict[str, Any]:
    ref: dict[str, Any] = {"data": source, "field": field}
    if sort:
        ref["sort"] = True
    return ref


def finite_extent(values: Iterable[Any], default: tuple[float, float] = (0, 1)) -> list[float]:
    """有限值的 ``[最小, 最大]``，NaN/Inf 与 None 不参与；没有有限值时返回 ``default``。"""
    array = np.asarray([v for v in values if v is not None], dtype=float)
    finite = array[np.isfinite(array)]
    if finite.size == 0:
        return list(default)
    return [float(finite.min()), float(finite.max())]


def union_domain(*refs: tuple[str, str]) -> dict[str, Any]:
    """多个数据源字段的并集定义域。"""
    return {"fields": [{"data": source, "field": field} for source, field in refs]}


def band_scale(
    name: str,
    domain: dict[str, Any],
    range_: str = "width",
    padding: float = DEFAULT_BAND_PADDING,
) -> dict[str, Any]:
    return {"name": name, "type": "band", "domain": domain, "range": range_, "padding": padding}


def linear_scale(
    name: str,
    domain: dict[str, Any] | list[float],
    range_: str | list[Any] = "width",
    **options: Any,
) -> dict[str, Any]:
    scale: dict[str, Any] = {"name": name, "type": "linear", "domain": domain, "range": range_}
    scale.update(options)
    return scale


def x_scale(
    context: AnalysisContext,
    source: str = "table",
    field: str = "x",
    force_band: bool = False,
    padding: float = DEFAULT_BAND_PADDING,
) -> dict[str, Any]:
    if force_band or not context.x_is_numeric:
        return band_scale("xscale", data_ref(source, field, sort=True), "width", padding)
    return linear_scale("xscale", data_ref(source, field), "width")


def y_scale(
    context: AnalysisContext,
    source: str = "table",
    field: str = "y",
    domain: dict[str, Any] | None = None,
    zero: bool = True,
) -> dict[str, Any]:
    if domain is None and not context.y_is_numeric:
        scale = band_scale("yscale", data_ref(source, field, sort=True), "height")
    else:
        scale = linear_scale("yscale", domain or data_ref(source, field), "height")
    scale["nice"] = True
    scale["zero"] = zero
    return scale


def color_scale(
    style: VegaStyleSpec,
    source: str = "table",
    field: str = "color",
    name: str = "color",
) -> dict[str, Any]:
    """分类颜色比例尺，值域为注入的调色板。"""
    return {
        "name": name,
        "type": "ordinal",
        "domain": data_ref(source, field),
        "range": list(style.categorical_colors),
    }


def group_color_scale(style: VegaStyleSpec, source: str, field: str = "group") -> dict[str, Any]:
    """统计结果按组着色、但没有颜色分组时使用的私有比例尺。"""
    return color_scale(style, source, field, name=f"{source}GroupColor")


def position_scales(
    context: AnalysisContext,
    style: VegaStyleSpec,
    source: str = "table",
    force_band: bool = False,
    padding: float = DEFAULT_BAND_PADDING,
) -> list[dict[str, Any]]:
    """``xscale``/``yscale``，颜色分组启用时追加 ``color``。"""
    scales = [
        x_scale(context, source, force_band=force_band, padding=padding),
        y_scale(context, source),
    ]
    if context.color_grouped:
        scales.append(color_scale(style, source))
    return scales


def build_axes(
    params: OutputParameters,
    x: bool = True,
    y: bool = True,
    x_options: dict[str, Any] | None = None,
    y_options: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    axes: list[dict[str, Any]] = []
    if x:
        axis = {"orient": "bottom", "scale": "xscale", "title": params.x_label}
        axis.update(x_options or {})
        axes.append(axis)
    if y:
        axis = {"orient": "left", "scale": "yscale", "title": params.y_label}
        axis.update(y_options or {})
        axes.append(axis)
    return axes


def check_palette(style: VegaStyleSpec, labels: Sequence[str]) -> Notice | None:
    """类别数超过调色板长度时给出诊断，调色板本身保持不变。"""
    capacity = len(style.categorical_colors)
    if len(labels) <= capacity:
        return None
    message = f"颜色类别数 {len(labels)} 超过调色板容量 {capacity}，超出部分的配色由渲染端决定"
    logger.warning("%s", message)
    return Notice(NoticeCode.PALETTE_OVERFLOW, message)
