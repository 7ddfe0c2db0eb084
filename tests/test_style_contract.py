"""风格契约与配置测试。"""

from __future__ import annotations

import pytest

from vegagram.charts.style_contract import (
    build_style_spec,
    parse_palette,
    rgb_to_hex,
    sample_colormap,
)
from vegagram.config import Settings, settings


def test_parse_palette_dedupes_and_keeps_order() -> None:
    """重复颜色去除，顺序保持不变。"""
    assert parse_palette(" #111, #222,#111 ,, #333") == ["#111", "#222", "#333"]


def test_parse_palette_falls_back_when_empty() -> None:
    """空配置回退到备用调色板。"""
    assert parse_palette("", fallback=["#abc"]) == ["#abc"]
    assert parse_palette(None) == []


def test_rgb_to_hex_clips_channels() -> None:
    assert rgb_to_hex([0, 0.5, 1]) == "#0080ff"
    assert rgb_to_hex([-1, 2, 1]) == "#00ffff"
    assert rgb_to_hex([float("nan"), 1, 1]) == "#00ffff"


def test_sample_colormap_picks_nearest_rows() -> None:
    """在三行色图上取三个颜色应依次得到首、中、尾三行。"""
    colormap = [[1, 0, 0], [0, 1, 0], [0, 0, 1]]
    assert sample_colormap(colormap, 3) == ["#ff0000", "#00ff00", "#0000ff"]
    assert len(sample_colormap(colormap, 9)) == 9


def test_sample_colormap_rejects_bad_matrix() -> None:
    assert sample_colormap([], 9) == []
    assert sample_colormap([[1, 0]], 9) == []


def test_default_style_spec_matches_settings() -> None:
    spec = build_style_spec()
    assert len(spec.categorical_colors) == 8
    assert spec.categorical_colors[0] == "#fc4464"
    assert spec.mark_color == settings.mark_color
    assert spec.schema_url.endswith("/vega/v6.json")


def test_style_spec_palette_override() -> None:
    spec = build_style_spec("#000000,#ffffff")
    assert spec.categorical_colors == ("#000000", "#ffffff")


def test_padding_widens_for_legend() -> None:
    spec = build_style_spec()
    assert spec.padding() == {"left": 60, "right": 20, "top": 20, "bottom": 60}
    assert spec.padding(with_legend=True)["right"] == 120


def test_base_spec_skeleton() -> None:
    base = build_style_spec().base_spec(640, 480)
    assert base["$schema"] == settings.vega_schema_url
    assert base["width"] == 640
    assert base["height"] == 480
    assert base["autosize"] == "none"


def test_heat_colors_prefers_sampled_colormap() -> None:
    spec = build_style_spec()
    assert spec.heat_colors(None) == list(spec.continuous_colors)
    sampled = spec.heat_colors([[0, 0, 0], [1, 1, 1]])
    assert sampled[0] == "#000000"
    assert sampled[-1] == "#ffffff"
    assert len(sampled) == spec.colormap_samples


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """环境变量前缀为 VEGAGRAM_。"""
    monkeypatch.setenv("VEGAGRAM_DEFAULT_WIDTH", "720")
    monkeypatch.setenv("VEGAGRAM_CATEGORICAL_PALETTE", "#123456,#654321")
    local = Settings()
    assert local.default_width == 720
    assert parse_palette(local.categorical_palette) == ["#123456", "#654321"]
