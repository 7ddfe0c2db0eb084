"""图层注册中心与调度。"""

from __future__ import annotations

import logging
from typing import Callable

from vegagram.charts.style_contract import VegaStyleSpec, build_style_spec
from vegagram.errors import Notice, NoticeCode
from vegagram.layers.distribution import (
    build_boxplot_layer,
    build_density_layer,
    build_qq_layer,
    build_violin_layer,
)
from vegagram.layers.geoms import GEOM_BUILDERS
from vegagram.layers.heatmap import build_bin2d_layer
from vegagram.layers.histogram import build_bin_layer
from vegagram.layers.regression import build_glm_layer, build_smooth_layer
from vegagram.layers.summary import build_summary_layer
from vegagram.models.context import AnalysisContext, LayerKind
from vegagram.models.fragment import Fragment, Layer
from vegagram.models.params import OutputParameters

logger = logging.getLogger(__name__)

LayerBuilder = Callable[[AnalysisContext, OutputParameters, VegaStyleSpec], Fragment]

STAT_BUILDERS: dict[LayerKind, LayerBuilder] = {
    LayerKind.GLM: build_glm_layer,
    LayerKind.SMOOTH: build_smooth_layer,
    LayerKind.BIN: build_bin_layer,
    LayerKind.SUMMARY: build_summary_layer,
    LayerKind.BOXPLOT: build_boxplot_layer,
    LayerKind.DENSITY: build_density_layer,
    LayerKind.VIOLIN: build_violin_layer,
    LayerKind.QQ: build_qq_layer,
    LayerKind.BIN2D: build_bin2d_layer,
}


class LayerRegistry:
    """按图层类别管理构建器。"""

    def __init__(self) -> None:
        self._builders: dict[LayerKind, LayerBuilder] = {}

    def register(
        self, kind: LayerKind, builder: LayerBuilder, *, allow_override: bool = False
    ) -> None:
        """注册一个图层构建器。

        Args:
            kind: 图层类别。
            builder: 构建函数 ``(context, params, style) -> Fragment``。
            allow_override: 若为 True，允许覆盖已注册的构建器；否则抛出 ValueError。
        """
        if kind in self._builders:
            existing = self._builders[kind]
            existing_loc = f"{existing.__module__}.{existing.__qualname__}"
            new_loc = f"{builder.__module__}.{builder.__qualname__}"
            if allow_override:
                logger.warning(
                    "图层 %s 已存在（%s），将被覆盖为 %s", kind.value, existing_loc, new_loc
                )
            else:
                raise ValueError(
                    f"图层类别冲突: '{kind.value}' 已由 {existing_loc} 注册，"
                    f"新注册来源 {new_loc}。如需覆盖请传入 allow_override=True"
                )
        self._builders[kind] = builder
        logger.debug("注册图层: %s", kind.value)

    def get(self, kind: LayerKind) -> LayerBuilder | None:
        return self._builders.get(kind)

    def kinds(self) -> list[LayerKind]:
        return list(self._builders.keys())

    def __contains__(self, kind: object) -> bool:
        return kind in self._builders


def create_default_registry() -> LayerRegistry:
    """创建并注册全部内置图层。"""
    registry = LayerRegistry()
    for kind, builder in GEOM_BUILDERS.items():
        registry.register(kind, builder)
    for kind, builder in STAT_BUILDERS.items():
        registry.register(kind, builder)
    return registry


def plan_layers(context: AnalysisContext) -> tuple[tuple[LayerKind, ...], tuple[Notice, ...]]:
    """确定图层顺序：先按声明顺序的几何图层，再按输入顺序的非空统计图层。

    没有任何图层时退化为散点图，并给出 ``NO_LAYERS_DETECTED`` 诊断。
    """
    planned: list[LayerKind] = []
    for kind in context.declared_geoms:
        if kind in planned:
            continue
        if kind.is_statistic and not context.stat(kind):
            continue
        planned.append(kind)
    for kind in context.stats:
        if kind not in planned and context.stat(kind):
            planned.append(kind)

    if planned:
        return tuple(planned), ()
    message = "未检测到任何图层，使用散点图作为默认图层"
    logger.info("%s", message)
    return (LayerKind.POINT,), (Notice(NoticeCode.NO_LAYERS_DETECTED, message),)


def build_layers(
    context: AnalysisContext,
    params: OutputParameters,
    style: VegaStyleSpec | None = None,
    registry: LayerRegistry | None = None,
) -> tuple[tuple[Layer, ...], tuple[Notice, ...]]:
    """按计划顺序调用各图层构建器。"""
    style = style or build_style_spec()
    registry = registry or create_default_registry()
    kinds, notices = plan_layers(context)

    layers: list[Layer] = []
    collected = list(notices)
    for kind in kinds:
        builder = registry.get(kind)
        if builder is None:
            logger.warning("图层 %s 没有注册构建器，已跳过", kind.value)
            continue
        fragment = builder(context, params, style)
        logger.debug(
            "图层 %s: %d 个数据源, %d 个比例尺, %d 个图元",
            kind.value,
            len(fragment.data),
            len(fragment.scales),
            len(fragment.marks),
        )
        layers.append(Layer(kind, fragment))
        collected.extend(fragment.notices)
    return tuple(layers), tuple(collected)
