"""美学映射分析与主数据表构建测试。"""

from __future__ import annotations

import math

import numpy as np
import pytest

from vegagram.analysis.aesthetics import (
    analyze_continuous_color,
    analyze_grouping,
    build_analysis_context,
    build_table_rows,
    removed_points_notice,
)
from vegagram.errors import ConfigurationError, NoticeCode
from vegagram.models.context import Aesthetics, LayerKind
from vegagram.models.datum import (
    category_label,
    distinct_stable,
    is_numeric_values,
    label_of,
    to_plain,
)


class TestDatum:
    def test_label_of_collapses_integral_floats(self) -> None:
        """4 与 4.0 规范化为同一个标签。"""
        assert label_of(4) == "4"
        assert label_of(4.0) == "4"
        assert label_of(np.float64(2.5)) == "2.5"
        assert label_of(True) == "true"
        assert label_of("B") == "B"

    def test_numeric_detection_excludes_booleans(self) -> None:
        assert is_numeric_values([1, 2.5, float("nan")])
        assert is_numeric_values([])
        assert not is_numeric_values(["a", "b"])
        assert not is_numeric_values([True, False])

    def test_distinct_stable_keeps_first_seen_order(self) -> None:
        assert distinct_stable(["c", "a", "c", None, "b", "a"]) == ["c", "a", "b"]

    def test_to_plain_converts_numpy_and_non_finite(self) -> None:
        assert to_plain(np.int64(3)) == 3
        assert isinstance(to_plain(np.int64(3)), int)
        assert to_plain(np.float32(1.5)) == 1.5
        assert to_plain(float("inf")) is None
        assert to_plain(float("nan")) is None

    def test_category_label_fallback(self) -> None:
        assert category_label(2, ["a", "b"]) == "b"
        assert category_label(3, ["a", "b"]) == "Category3"


class TestGrouping:
    def test_two_distinct_colors_activate_grouping(self) -> None:
        grouping = analyze_grouping(Aesthetics(x=(1, 2), y=(1, 2), color=("A", "B")))
        assert grouping.has_color_group
        assert grouping.labels == ("A", "B")

    def test_single_color_keeps_metadata_only(self) -> None:
        grouping = analyze_grouping(Aesthetics(x=(1, 2), y=(1, 2), color=("A", "A")))
        assert not grouping.has_color_group
        assert grouping.color_data == ("A", "A")

    def test_integral_float_colors_are_one_group(self) -> None:
        """4 与 4.0 视为同一颜色，不启用分组。"""
        grouping = analyze_grouping(Aesthetics(x=(1, 2), y=(1, 2), color=(4, 4.0)))
        assert not grouping.has_color_group

    def test_continuous_color_requires_explicit_flag(self) -> None:
        assert not analyze_continuous_color({"colormap": [[0, 0, 0]]}).active
        cc = analyze_continuous_color(
            {"active": True, "colormap": [[0, 0, 0], [1, 1, 1]], "CLim": [0, 10]}
        )
        assert cc.active
        assert cc.limits == (0.0, 10.0)
        assert cc.colormap == ((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))


class TestTable:
    def test_nan_rows_removed(self) -> None:
        """任一坐标为 NaN 的观测被剔除，并报告剔除数量。"""
        context = build_analysis_context(
            {"aes": {"x": [1, 2, float("nan"), 4], "y": [1, float("nan"), 3, 4]}}
        )
        table = build_table_rows(context)
        assert [(row["x"], row["y"]) for row in table.rows] == [(1, 1), (4, 4)]
        assert table.removed == 2
        notice = removed_points_notice(table)
        assert notice is not None
        assert notice.code is NoticeCode.INVALID_NUMERIC_OBSERVATION

    def test_infinite_values_removed(self) -> None:
        context = build_analysis_context({"aes": {"x": [1, 2, 3], "y": [1, math.inf, -math.inf]}})
        assert build_table_rows(context).removed == 2

    def test_categorical_axis_drops_missing_and_stringifies(self) -> None:
        context = build_analysis_context({"aes": {"x": ["a", None, "c"], "y": [1, 2, 3]}})
        table = build_table_rows(context)
        assert [row["x"] for row in table.rows] == ["a", "c"]
        assert table.removed == 1
        assert removed_points_notice(build_table_rows(build_analysis_context(
            {"aes": {"x": [1], "y": [1]}}
        ))) is None

    def test_color_written_only_when_grouped(self) -> None:
        grouped = build_analysis_context(
            {"aes": {"x": [1, 2], "y": [3, 4], "color": [1, 2.0]}}
        )
        assert [row["color"] for row in build_table_rows(grouped).rows] == ["1", "2"]
        single = build_analysis_context({"aes": {"x": [1, 2], "y": [3, 4], "color": ["A", "A"]}})
        assert all("color" not in row for row in build_table_rows(single).rows)

    def test_missing_colors_do_not_become_categories(self) -> None:
        """颜色缺失的观测被剔除，表中颜色与分组标签一致。"""
        context = build_analysis_context(
            {"aes": {"x": [1, 2, 3, 4], "y": [1, 2, 3, 4], "color": ["A", None, "B", math.nan]}}
        )
        table = build_table_rows(context)
        assert [row["color"] for row in table.rows] == ["A", "B"]
        assert table.removed == 2
        assert table.distinct_colors == list(context.grouping.labels)

    def test_interval_bounds_are_carried(self) -> None:
        context = build_analysis_context(
            {"aes": {"x": [1, 2], "y": [3, 4], "ymin": [2, 3], "ymax": [4, 5]}}
        )
        rows = build_table_rows(context).rows
        assert rows[0] == {"x": 1, "y": 3, "ymin": 2, "ymax": 4}


class TestContext:
    def test_mismatched_lengths_are_fatal(self) -> None:
        with pytest.raises(ConfigurationError):
            build_analysis_context({"aes": {"x": [1, 2, 3], "y": [1, 2]}})
        with pytest.raises(ConfigurationError):
            build_analysis_context({"aes": {"x": [1, 2], "y": [1, 2], "color": ["A"]}})

    def test_geometry_names_and_result_handles(self) -> None:
        """几何图层按声明顺序去重，results 中的几何键也视为声明。"""
        context = build_analysis_context(
            {
                "aes": {"x": [1, 2], "y": [1, 2]},
                "geoms": ["geom_line_handle", "point", "geom_line", "unknown"],
                "results": {"geom_bar_handle": [1], "stat_glm": {"x": [1, 2], "y": [1, 2]}},
            }
        )
        assert context.declared_geoms == (LayerKind.LINE, LayerKind.POINT, LayerKind.BAR)
        assert list(context.stats) == [LayerKind.GLM]

    def test_labels_and_figure_size(self) -> None:
        context = build_analysis_context(
            {
                "aes": {"x": [1], "y": [1]},
                "figure": {"width": 640, "height": 480},
                "labels": {"x": "Time", "y": "Value"},
            }
        )
        assert (context.figure_width, context.figure_height) == (640, 480)
        assert (context.x_label, context.y_label) == ("Time", "Value")

    def test_short_ci_interpolated_against_observation_x(self) -> None:
        """较短的 CI 以等长的数值观测 x 作为插值基准。"""
        context = build_analysis_context(
            {
                "aes": {"x": [0, 2], "y": [0, 2]},
                "results": {"stat_glm": {"x": [0, 1, 2, 3], "y": [0, 1, 2, 3], "yci": [[0, 1], [2, 3]]}},
            }
        )
        curve = context.stat(LayerKind.GLM)[0]
        assert curve.ci_lower == pytest.approx((0, 1, 2, 3))
        assert curve.ci_upper == pytest.approx((1, 2, 3, 4))

    def test_malformed_stat_notices_are_collected(self) -> None:
        context = build_analysis_context(
            {"aes": {"x": [1], "y": [1]}, "results": {"stat_density": [{"x": [1, 2]}]}}
        )
        assert LayerKind.DENSITY not in context.stats
        assert [n.code for n in context.notices] == [NoticeCode.MALFORMED_STATISTIC_RECORD]
