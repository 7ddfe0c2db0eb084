"""图层片段合并测试。"""

from __future__ import annotations

import copy

from vegagram.charts.style_contract import build_style_spec
from vegagram.compiler.merge import merge_fragments
from vegagram.models.fragment import Fragment
from vegagram.models.params import parse_output_options

STYLE = build_style_spec()
ROWS = [{"x": 1, "y": 2}, {"x": 2, "y": 3}]


def _fragment(tag: str, domain_field: str = "x", data: list | None = None) -> Fragment:
    return Fragment.of(
        data=data,
        scales=[
            {"name": "xscale", "type": "linear", "domain": {"data": "table", "field": domain_field}},
            {"name": "yscale", "type": "linear", "domain": {"data": "table", "field": "y"}},
        ],
        axes=[
            {"orient": "bottom", "scale": "xscale", "title": f"{tag}-x"},
            {"orient": "left", "scale": "yscale", "title": f"{tag}-y"},
        ],
        marks=[{"name": f"{tag}_mark", "type": "symbol", "from": {"data": "table"}}],
    )


def test_table_is_first_and_unique() -> None:
    fragments = [
        _fragment("a", data=[{"name": "table", "values": []}, {"name": "stats", "values": []}]),
        _fragment("b", data=[{"name": "stats", "values": [{"x": 9}]}]),
    ]
    spec = merge_fragments(fragments, ROWS, parse_output_options(), STYLE)
    names = [source["name"] for source in spec["data"]]
    assert names == ["table", "stats"]
    assert spec["data"][0]["values"] == ROWS
    assert spec["data"][1]["values"] == []


def test_scales_deduplicated_first_wins() -> None:
    fragments = [_fragment("a", "x"), _fragment("b", "other"), _fragment("c", "third")]
    spec = merge_fragments(fragments, ROWS, parse_output_options(), STYLE)
    assert [scale["name"] for scale in spec["scales"]] == ["xscale", "yscale"]
    assert spec["scales"][0]["domain"]["field"] == "x"


def test_marks_keep_layer_order() -> None:
    """先声明的图层先绘制。"""
    spec = merge_fragments(
        [_fragment("point"), _fragment("line")], ROWS, parse_output_options(), STYLE
    )
    assert [mark["name"] for mark in spec["marks"]] == ["point_mark", "line_mark"]


def test_axes_deduplicated_and_titled_from_params() -> None:
    params = parse_output_options({"x": "Dose", "y": "Response"})
    spec = merge_fragments([_fragment("a"), _fragment("b")], ROWS, params, STYLE)
    assert [axis["orient"] for axis in spec["axes"]] == ["bottom", "left"]
    assert [axis["title"] for axis in spec["axes"]] == ["Dose", "Response"]


def test_inputs_are_not_mutated() -> None:
    fragment = _fragment("a", data=[{"name": "stats", "values": [{"x": 1}]}])
    rows = copy.deepcopy(ROWS)
    before = copy.deepcopy(fragment)
    spec = merge_fragments([fragment], rows, parse_output_options(), STYLE)
    spec["marks"][0]["name"] = "changed"
    spec["data"][0]["values"][0]["x"] = 100
    spec["data"][1]["values"].append({"x": 2})
    spec["scales"][0]["domain"]["field"] = "changed"
    assert fragment == before
    assert rows == ROWS


def test_canvas_and_title() -> None:
    params = parse_output_options({"width": "640", "height": "480"})
    spec = merge_fragments([_fragment("a")], ROWS, params, STYLE)
    assert (spec["width"], spec["height"]) == (640, 480)
    assert spec["padding"] == STYLE.padding()
    assert "title" not in spec

    titled = merge_fragments(
        [_fragment("a")], ROWS, parse_output_options({"title": "Growth"}), STYLE
    )
    assert titled["title"] == "Growth"


def test_no_fragments_yields_empty_skeleton() -> None:
    spec = merge_fragments([], ROWS, parse_output_options(), STYLE)
    assert [source["name"] for source in spec["data"]] == ["table"]
    assert spec["marks"] == []
    assert spec["scales"] == []
