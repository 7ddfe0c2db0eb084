"""图层构建器与调度测试。"""

from __future__ import annotations

from typing import Any

import math

import pytest

from vegagram.analysis.aesthetics import build_analysis_context
from vegagram.charts.marks import JITTER_X_SIGNAL
from vegagram.charts.scales import finite_extent
from vegagram.charts.style_contract import build_style_spec
from vegagram.errors import NoticeCode
from vegagram.layers.distribution import (
    build_boxplot_layer,
    build_density_layer,
    build_qq_layer,
    build_violin_layer,
)
from vegagram.layers.geoms import (
    build_bar_layer,
    build_jitter_layer,
    build_line_layer,
    build_point_layer,
    build_raster_layer,
    build_swarm_layer,
    build_vline_layer,
)
from vegagram.layers.heatmap import build_bin2d_layer
from vegagram.layers.histogram import build_bin_layer
from vegagram.layers.registry import (
    LayerRegistry,
    build_layers,
    create_default_registry,
    plan_layers,
)
from vegagram.layers.regression import build_glm_layer, build_smooth_layer
from vegagram.layers.summary import build_summary_layer
from vegagram.models.context import LayerKind
from vegagram.models.fragment import Fragment
from vegagram.models.params import parse_output_options

STYLE = build_style_spec()
PARAMS = parse_output_options()


def _context(**extra: Any):
    description: dict[str, Any] = {"aes": {"x": [1, 2, 3], "y": [4, 5, 6]}}
    description.update(extra)
    return build_analysis_context(description)


def _scales(fragment: Fragment) -> dict[str, dict[str, Any]]:
    return {scale["name"]: scale for scale in fragment.scales}


class TestGeoms:
    def test_point_layer_numeric_axes(self) -> None:
        fragment = build_point_layer(_context(), PARAMS, STYLE)
        scales = _scales(fragment)
        assert scales["xscale"]["type"] == "linear"
        assert scales["yscale"]["type"] == "linear"
        mark = fragment.marks[0]
        assert mark["type"] == "symbol"
        assert mark["from"] == {"data": "table"}
        assert mark["encode"]["enter"]["fill"] == {"value": STYLE.mark_color}
        assert "tooltip" in mark["encode"]["update"]
        assert fragment.data == ()

    def test_categorical_x_uses_band_scale(self) -> None:
        context = build_analysis_context({"aes": {"x": ["a", "b"], "y": [1, 2]}})
        fragment = build_point_layer(context, PARAMS, STYLE)
        assert _scales(fragment)["xscale"]["type"] == "band"
        assert fragment.marks[0]["encode"]["enter"]["x"]["band"] == 0.5

    def test_tooltip_disabled(self) -> None:
        params = parse_output_options({"tooltip": "false"})
        mark = build_point_layer(_context(), params, STYLE).marks[0]
        assert "update" not in mark["encode"]

    def test_tooltip_escapes_axis_titles(self) -> None:
        params = parse_output_options({"x": "it's"})
        mark = build_point_layer(_context(), params, STYLE).marks[0]
        assert "'it\\'s: '" in mark["encode"]["update"]["tooltip"]["signal"]

    def test_grouped_line_facets_by_color(self) -> None:
        context = _context(aes={"x": [1, 2, 3], "y": [4, 5, 6], "color": ["a", "b", "a"]})
        fragment = build_line_layer(context, PARAMS, STYLE)
        group = fragment.marks[0]
        assert group["type"] == "group"
        assert group["from"]["facet"] == {"name": "series", "data": "table", "groupby": "color"}
        inner = group["marks"][0]
        assert inner["from"] == {"data": "series"}
        assert inner["sort"] == {"field": "datum.x"}
        assert inner["encode"]["enter"]["stroke"] == {"scale": "color", "field": "color"}
        assert "color" in _scales(fragment)

    def test_grouped_bars_nest_position_scale(self) -> None:
        context = _context(aes={"x": ["a", "a", "b"], "y": [4, 5, 6], "color": ["u", "v", "u"]})
        fragment = build_bar_layer(context, PARAMS, STYLE)
        assert _scales(fragment)["xscale"]["padding"] == 0.2
        group = fragment.marks[0]
        assert group["name"] == "bar_groups"
        assert group["signals"] == [{"name": "width", "update": "bandwidth('xscale')"}]
        assert group["scales"][0]["domain"] == {"data": "facet", "field": "color"}
        assert group["marks"][0]["from"] == {"data": "facet"}

    def test_ungrouped_bars_start_at_zero(self) -> None:
        fragment = build_bar_layer(_context(), PARAMS, STYLE)
        enter = fragment.marks[0]["encode"]["enter"]
        assert enter["y2"] == {"scale": "yscale", "value": 0}
        assert _scales(fragment)["xscale"]["type"] == "band"

    def test_jitter_and_swarm_offsets_are_renderer_side(self) -> None:
        for builder in (build_jitter_layer, build_swarm_layer):
            fragment = builder(_context(), PARAMS, STYLE)
            assert fragment.marks[0]["encode"]["update"]["x"] == {"signal": JITTER_X_SIGNAL}
            assert _scales(fragment)["xscale"]["type"] == "band"

    def test_raster_has_only_x_axis(self) -> None:
        fragment = build_raster_layer(_context(), PARAMS, STYLE)
        assert [axis["orient"] for axis in fragment.axes] == ["bottom"]
        assert list(_scales(fragment)) == ["xscale"]

    def test_reference_lines_use_reference_color(self) -> None:
        mark = build_vline_layer(_context(), PARAMS, STYLE).marks[0]
        assert mark["type"] == "rule"
        assert mark["encode"]["enter"]["stroke"] == {"value": STYLE.reference_color}
        assert mark["encode"]["enter"]["strokeDash"] == {"value": [3, 3]}


class TestRegression:
    def test_glm_paint_order_and_filtered_source(self) -> None:
        """置信带 → 回归线 → 原始点。"""
        context = _context(
            results={"stat_glm": {"x": [1, 2, 3], "y": [4, 5, 6], "yci": [[3, 5], [4, 6], [5, 7]]}}
        )
        fragment = build_glm_layer(context, PARAMS, STYLE)
        assert [m["name"] for m in fragment.marks] == [
            "confidence_areas",
            "regression_line",
            "data_points",
        ]
        names = [source["name"] for source in fragment.data]
        assert names == ["stats", "confidence_filtered"]
        assert fragment.data[1]["source"] == "stats"
        fields = _scales(fragment)["yscale"]["domain"]["fields"]
        assert {"data": "confidence_filtered", "field": "ci_lower"} in fields

    def test_glm_without_ci_has_no_area(self) -> None:
        context = _context(results={"stat_glm": {"x": [1, 2], "y": [4, 5]}})
        fragment = build_glm_layer(context, PARAMS, STYLE)
        assert [m["name"] for m in fragment.marks] == ["regression_line", "data_points"]
        assert [source["name"] for source in fragment.data] == ["stats"]

    def test_grouped_glm_shares_color_scale(self) -> None:
        context = _context(
            aes={"x": [1, 2, 3], "y": [4, 5, 6], "color": ["a", "b", "a"]},
            results={"stat_glm": [{"x": [1, 2], "y": [4, 5]}, {"x": [1, 2], "y": [5, 6]}]},
        )
        fragment = build_glm_layer(context, PARAMS, STYLE)
        rows = fragment.data[0]["values"]
        assert {row["color"] for row in rows} == {"a", "b"}
        lines = fragment.marks[0]
        assert lines["type"] == "group"
        assert lines["marks"][0]["encode"]["enter"]["stroke"] == {"scale": "color", "field": "color"}

    def test_multi_group_without_color_uses_private_scale(self) -> None:
        context = _context(
            results={"stat_smooth": [{"x": [1, 2], "y": [4, 5]}, {"x": [1, 2], "y": [5, 6]}]}
        )
        fragment = build_smooth_layer(context, PARAMS, STYLE)
        assert "smooth_statsGroupColor" in _scales(fragment)
        assert fragment.data[0]["name"] == "smooth_stats"


class TestStatLayers:
    def test_histogram_literal_domains(self) -> None:
        context = _context(results={"stat_bin": {"edges": [0, 1, 2, 3], "counts": [5, 9, 2]}})
        fragment = build_bin_layer(context, PARAMS, STYLE)
        scales = _scales(fragment)
        assert scales["xscale"]["domain"] == [0.0, 3.0]
        assert scales["yscale"]["domain"] == [0, 9.0]
        rows = fragment.data[0]["values"]
        assert rows[0]["x_left"] == 0.0
        assert rows[0]["x_right"] == 1.0
        mark = fragment.marks[0]
        assert mark["name"] == "histogram_bars"
        assert mark["encode"]["enter"]["fill"] == {"value": STYLE.categorical_colors[0]}

    def test_multi_group_histogram_is_faceted(self) -> None:
        context = _context(
            results={
                "stat_bin": [
                    {"edges": [0, 1, 2], "counts": [1, 2]},
                    {"edges": [0, 1, 2], "counts": [3, 4]},
                ]
            }
        )
        mark = build_bin_layer(context, PARAMS, STYLE).marks[0]
        assert mark["type"] == "group"
        assert mark["from"]["facet"]["name"] == "bin_group_data"

    def test_summary_maps_categories_and_pivots_ci(self) -> None:
        context = build_analysis_context(
            {
                "aes": {"x": ["lo", "hi", "lo"], "y": [1, 2, 3]},
                "results": {
                    "stat_summary": {"x": [1, 2], "y": [2, 2], "yci": [[1, 3], [1, 3]]}
                },
            }
        )
        fragment = build_summary_layer(context, PARAMS, STYLE)
        lines, ci = fragment.data
        assert [row["x"] for row in lines["values"]] == ["lo", "hi"]
        assert ci["transform"][0]["type"] == "pivot"
        assert {row["ci_type"] for row in ci["values"]} == {"lower", "upper"}
        assert fragment.marks[0]["encode"]["enter"]["x"]["band"] == 0.5

    def test_boxplot_components(self) -> None:
        context = build_analysis_context(
            {
                "aes": {"x": ["a", "b"], "y": [1, 2]},
                "results": {"stat_boxplot": {"boxplot_data": [[1, 2, 3, 4, 5], [2, 3, 4, 5, 6]]}},
            }
        )
        fragment = build_boxplot_layer(context, PARAMS, STYLE)
        assert [source["name"] for source in fragment.data] == [
            "boxplot_boxes",
            "boxplot_whiskers",
            "boxplot_medians",
        ]
        assert [row["x"] for row in fragment.data[0]["values"]] == ["a", "b"]
        assert len(fragment.data[1]["values"]) == 4
        assert "categoryColor" in _scales(fragment)
        box = next(m for m in fragment.marks if m["name"] == "boxes")
        assert box["encode"]["enter"]["x"]["offset"] == -15

    def test_density_single_and_grouped(self) -> None:
        single = _context(results={"stat_density": {"x": [0, 1], "y": [0.2, 0.4]}})
        mark = build_density_layer(single, PARAMS, STYLE).marks[0]
        assert mark["name"] == "density_curve"
        grouped = _context(
            aes={"x": [1, 2, 3], "y": [4, 5, 6], "color": ["a", "b", "b"]},
            results={"stat_density": [{"x": [0, 1], "y": [1, 2]}, {"x": [0, 1], "y": [2, 1]}]},
        )
        fragment = build_density_layer(grouped, PARAMS, STYLE)
        assert fragment.marks[0]["name"] == "density_curves"
        assert _scales(fragment)["yscale"]["zero"] is True

    def test_violin_offsets_use_width_scale(self) -> None:
        context = build_analysis_context(
            {
                "aes": {"x": ["ctl", "trt"], "y": [1, 2]},
                "results": {
                    "stat_violin": {
                        "unique_x": [1, 2],
                        "densities": [[0.1, 0.2], [0.3, 0.1]],
                        "densities_y": [[0, 1], [0, 1]],
                    }
                },
            }
        )
        fragment = build_violin_layer(context, PARAMS, STYLE)
        scales = _scales(fragment)
        assert scales["violin_width"]["domain"] == [-0.4, 0.4]
        assert scales["violin_width"]["range"] == [-50, 50]
        assert {row["category"] for row in fragment.data[0]["values"]} == {"ctl", "trt"}
        area = fragment.marks[0]["marks"][0]
        assert area["encode"]["enter"]["x"]["offset"] == {"scale": "violin_width", "field": "left"}

    def test_qq_points(self) -> None:
        context = _context(results={"stat_qq": {"x": [-1, 0, 1], "y": [-2, 0, 2]}})
        fragment = build_qq_layer(context, PARAMS, STYLE)
        assert fragment.marks[0]["name"] == "qq_points"
        assert len(fragment.data[0]["values"]) == 3
        assert "zero" not in _scales(fragment)["yscale"]

    def test_bin2d_heat_scale(self) -> None:
        context = _context(
            results={"stat_bin2d": {"counts": [[1, 0], [0, 4]], "edges": {"x": [0, 1, 2], "y": [0, 1, 2]}}},
            continuous_color_options={
                "active": True,
                "colormap": [[0, 0, 0], [1, 1, 1]],
                "CLim": [0, 10],
            },
        )
        fragment = build_bin2d_layer(context, PARAMS, STYLE)
        heat = _scales(fragment)["heatColor"]
        assert heat["domain"] == [0.0, 10.0]
        assert heat["clamp"] is True
        assert heat["range"][0] == "#000000"
        assert len(fragment.data[0]["values"]) == 2

    def test_bin2d_default_colors_follow_data(self) -> None:
        context = _context(
            results={"stat_bin2d": {"counts": [[1]], "edges": {"x": [0, 1], "y": [0, 1]}}}
        )
        heat = _scales(build_bin2d_layer(context, PARAMS, STYLE))["heatColor"]
        assert heat["domain"] == {"data": "heatmap_data", "field": "count"}
        assert heat["range"] == list(STYLE.continuous_colors)


class TestDispatch:
    def test_declared_geoms_then_stats(self) -> None:
        context = _context(
            geoms=["line", "point"],
            results={
                "stat_bin": {"edges": [0, 1], "counts": [1]},
                "stat_glm": {"x": [1, 2], "y": [1, 2]},
            },
        )
        kinds, notices = plan_layers(context)
        assert kinds == (LayerKind.LINE, LayerKind.POINT, LayerKind.BIN, LayerKind.GLM)
        assert notices == ()

    def test_no_layers_defaults_to_point(self) -> None:
        kinds, notices = plan_layers(_context())
        assert kinds == (LayerKind.POINT,)
        assert notices[0].code is NoticeCode.NO_LAYERS_DETECTED

    def test_registry_rejects_duplicates(self) -> None:
        registry = LayerRegistry()
        registry.register(LayerKind.POINT, build_point_layer)
        with pytest.raises(ValueError):
            registry.register(LayerKind.POINT, build_line_layer)
        registry.register(LayerKind.POINT, build_line_layer, allow_override=True)
        assert registry.get(LayerKind.POINT) is build_line_layer

    def test_default_registry_covers_every_kind(self) -> None:
        registry = create_default_registry()
        assert set(registry.kinds()) == set(LayerKind)

    def test_build_layers_skips_unregistered(self) -> None:
        registry = LayerRegistry()
        registry.register(LayerKind.LINE, build_line_layer)
        layers, _ = build_layers(_context(geoms=["point", "line"]), PARAMS, STYLE, registry)
        assert [layer.kind for layer in layers] == [LayerKind.LINE]


def test_finite_extent_ignores_missing_and_non_finite() -> None:
    assert finite_extent([3, None, math.nan, -1, math.inf]) == [-1.0, 3.0]
    assert finite_extent([math.nan, None]) == [0, 1]
    assert finite_extent([], default=(2, 5)) == [2, 5]
