"""编译流水线：分析上下文 + 输出参数 → Vega 文档。"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from vegagram.analysis.aesthetics import (
    build_analysis_context,
    build_table_rows,
    removed_points_notice,
)
from vegagram.charts.scales import check_palette
from vegagram.charts.style_contract import VegaStyleSpec, build_style_spec
from vegagram.compiler.legend import compose_legend
from vegagram.compiler.merge import merge_fragments
from vegagram.compiler.validation import validate_references
from vegagram.errors import Notice
from vegagram.layers.registry import LayerRegistry, build_layers
from vegagram.models.context import AnalysisContext
from vegagram.models.fragment import CompileResult
from vegagram.models.params import (
    OutputParameters,
    parse_output_options,
    validate_option_names,
)

logger = logging.getLogger(__name__)


def compile_vega_spec(
    source: AnalysisContext | Mapping[str, Any],
    options: OutputParameters | Mapping[Any, Any] | Sequence[Any] | None = None,
    *,
    style: VegaStyleSpec | None = None,
    registry: LayerRegistry | None = None,
) -> CompileResult:
    """编译一张图。

    Args:
        source: 分析上下文，或可由 ``build_analysis_context`` 解析的绘图描述映射。
        options: 输出参数对象、选项映射或名称/取值交替的序列。
        style: 风格契约，缺省时由全局配置构建。
        registry: 图层注册中心，缺省时使用内置图层集。

    Raises:
        ConfigurationError: 选项名不是字符串、或绘图描述的美学映射长度不一致。
    """
    # 选项名在任何分析之前校验，默认值随后由上下文补全
    if not isinstance(options, OutputParameters):
        validate_option_names(options)
    context = source if isinstance(source, AnalysisContext) else build_analysis_context(source)
    if isinstance(options, OutputParameters):
        params = options
    else:
        params = parse_output_options(options, context)
    style = style or build_style_spec()

    notices: list[Notice] = list(context.notices)
    table = build_table_rows(context)
    removed = removed_points_notice(table)
    if removed is not None:
        notices.append(removed)
    if context.color_grouped:
        overflow = check_palette(style, context.grouping.labels)
        if overflow is not None:
            notices.append(overflow)

    layers, layer_notices = build_layers(context, params, style, registry)
    notices.extend(layer_notices)

    spec = merge_fragments((layer.fragment for layer in layers), table.rows, params, style)
    spec = compose_legend(spec, table.rows, params.is_interactive, style)
    notices.extend(validate_references(spec))

    kinds = tuple(layer.kind for layer in layers)
    logger.info(
        "编译完成: 图层=%s, 观测=%d, 剔除=%d, 诊断=%d",
        ",".join(kind.value for kind in kinds),
        len(table.rows),
        table.removed,
        len(notices),
    )
    return CompileResult(
        spec=spec,
        notices=tuple(notices),
        removed_points=table.removed,
        layer_kinds=kinds,
    )
