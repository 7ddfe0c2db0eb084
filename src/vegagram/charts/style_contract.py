"""统一图表风格契约。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from vegagram.config import settings


def parse_palette(raw: str | None, fallback: Sequence[str] = ()) -> list[str]:
    """解析逗号分隔的调色板配置，自动去重并保留顺序。"""
    values = [part.strip() for part in (raw or "").split(",") if part.strip()]
    result: list[str] = []
    for value in values:
        if value not in result:
            result.append(value)
    if not result:
        return list(fallback)
    return result


def rgb_to_hex(rgb: Sequence[float]) -> str:
    """0..1 区间的 RGB 三元组转换为 ``#rrggbb``。"""
    channels = np.clip(np.nan_to_num(np.asarray(rgb, dtype=float)[:3]), 0.0, 1.0)
    r, g, b = (int(np.floor(c * 255 + 0.5)) for c in channels)
    return f"#{r:02x}{g:02x}{b:02x}"


def sample_colormap(colormap: Sequence[Sequence[float]], count: int) -> list[str]:
    """在 N×3 色图上均匀取 ``count`` 个颜色（四舍五入到最近行）。"""
    matrix = np.asarray(colormap, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] == 0 or matrix.shape[1] < 3:
        return []
    positions = np.linspace(0, matrix.shape[0] - 1, count)
    indices = np.floor(positions + 0.5).astype(int)
    return [rgb_to_hex(matrix[i]) for i in indices]


@dataclass(frozen=True)
class VegaStyleSpec:
    """Vega 输出的风格契约。

    调色板等视觉常量集中在这里，由构建器显式注入，
    不在各处重复硬编码。
    """

    schema_url: str
    categorical_colors: tuple[str, ...]
    continuous_colors: tuple[str, ...]
    mark_color: str = "#ff4565"
    neutral_color: str = "#ccc"
    reference_color: str = "#808080"
    padding_left: int = 60
    padding_right: int = 20
    padding_top: int = 20
    padding_bottom: int = 60
    legend_padding_right: int = 120
    colormap_samples: int = 9

    def padding(self, with_legend: bool = False) -> dict[str, int]:
        """画布留白；有图例时加宽右侧。"""
        return {
            "left": self.padding_left,
            "right": self.legend_padding_right if with_legend else self.padding_right,
            "top": self.padding_top,
            "bottom": self.padding_bottom,
        }

    def base_spec(self, width: Any, height: Any) -> dict[str, Any]:
        """返回顶层骨架（尚未填充 data/scales/axes/marks）。"""
        return {
            "$schema": self.schema_url,
            "width": width,
            "height": height,
            "padding": self.padding(),
            "autosize": "none",
        }

    def heat_colors(self, colormap: Sequence[Sequence[float]] | None) -> list[str]:
        """连续色标的颜色序列；外部色图不可用时使用默认连续调色板。"""
        if colormap is not None:
            sampled = sample_colormap(colormap, self.colormap_samples)
            if sampled:
                return sampled
        return list(self.continuous_colors)


def build_style_spec(palette: str | None = None) -> VegaStyleSpec:
    """根据配置构建风格契约，``palette`` 可临时覆盖分类调色板。"""
    categorical = parse_palette(
        palette if palette is not None else settings.categorical_palette,
        fallback=parse_palette(settings.categorical_palette),
    )
    continuous = parse_palette(settings.continuous_palette)
    return VegaStyleSpec(
        schema_url=settings.vega_schema_url,
        categorical_colors=tuple(categorical),
        continuous_colors=tuple(continuous),
        mark_color=settings.mark_color,
        neutral_color=settings.neutral_color,
        reference_color=settings.reference_line_color,
        padding_left=settings.padding_left,
        padding_right=settings.padding_right,
        padding_top=settings.padding_top,
        padding_bottom=settings.padding_bottom,
        legend_padding_right=settings.legend_padding_right,
        colormap_samples=max(2, int(settings.colormap_samples)),
    )
