"""图表公共模块：风格契约、比例尺与图元装配。"""

from vegagram.charts.style_contract import (
    VegaStyleSpec,
    build_style_spec,
    parse_palette,
    sample_colormap,
)

__all__ = [
    "VegaStyleSpec",
    "build_style_spec",
    "parse_palette",
    "sample_colormap",
]
