"""引用完整性检查：所有数据源和比例尺引用都必须能在作用域内解析。"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from vegagram.errors import Notice, NoticeCode

logger = logging.getLogger(__name__)


def _domain_sources(domain: Any) -> Iterator[str]:
    if not isinstance(domain, dict):
        return
    if "data" in domain:
        yield domain["data"]
    for ref in domain.get("fields", ()):
        if isinstance(ref, dict) and "data" in ref:
            yield ref["data"]


def _encoding_scales(node: Any) -> Iterator[str]:
    if isinstance(node, dict):
        scale = node.get("scale")
        if isinstance(scale, str):
            yield scale
        for child in node.values():
            yield from _encoding_scales(child)
    elif isinstance(node, list):
        for child in node:
            yield from _encoding_scales(child)


def _check_scales(
    scales: list[dict[str, Any]], data_names: set[str], where: str, problems: list[str]
) -> None:
    for scale in scales:
        for source in _domain_sources(scale.get("domain")):
            if source not in data_names:
                problems.append(f"{where}比例尺 {scale.get('name')} 引用了未定义的数据源 {source}")


def _check_marks(
    marks: list[dict[str, Any]],
    data_names: set[str],
    scale_names: set[str],
    where: str,
    problems: list[str],
) -> None:
    for index, mark in enumerate(marks):
        label = mark.get("name") or f"{where}marks[{index}]"
        source = mark.get("from") or {}
        inner_data = set(data_names)
        if "data" in source and source["data"] not in data_names:
            problems.append(f"图元 {label} 引用了未定义的数据源 {source['data']}")
        facet = source.get("facet")
        if isinstance(facet, dict):
            if facet.get("data") not in data_names:
                problems.append(f"图元 {label} 的分面引用了未定义的数据源 {facet.get('data')}")
            inner_data.add(facet.get("name"))

        inner_scales = set(scale_names)
        inner_scales.update(s.get("name") for s in mark.get("scales", ()))
        _check_scales(mark.get("scales", []), inner_data, f"{label} 内的", problems)
        for scale in _encoding_scales(mark.get("encode")):
            if scale not in inner_scales:
                problems.append(f"图元 {label} 引用了未定义的比例尺 {scale}")
        _check_marks(mark.get("marks", []), inner_data, inner_scales, f"{label}.", problems)


def find_unresolved_references(spec: dict[str, Any]) -> list[str]:
    """返回所有无法解析的引用描述；空列表表示文档自洽。"""
    problems: list[str] = []
    data_names: set[str] = set()
    for source in spec.get("data", ()):
        upstream = source.get("source")
        if upstream is not None and upstream not in data_names:
            problems.append(f"数据源 {source.get('name')} 的上游 {upstream} 未定义或定义在其后")
        data_names.add(source.get("name"))

    scale_names = {scale.get("name") for scale in spec.get("scales", ())}
    _check_scales(spec.get("scales", []), data_names, "", problems)
    for axis in spec.get("axes", ()):
        if axis.get("scale") not in scale_names:
            problems.append(f"坐标轴 {axis.get('orient')} 引用了未定义的比例尺 {axis.get('scale')}")
    for legend in spec.get("legends", ()):
        for channel in ("fill", "stroke", "size", "shape"):
            name = legend.get(channel)
            if name is not None and name not in scale_names:
                problems.append(f"图例引用了未定义的比例尺 {name}")
    _check_marks(spec.get("marks", []), data_names, scale_names, "", problems)
    return problems


def validate_references(spec: dict[str, Any]) -> tuple[Notice, ...]:
    """检查引用完整性，每个无法解析的引用记录一条 ERROR 日志和诊断。"""
    notices = []
    for problem in find_unresolved_references(spec):
        logger.error("%s", problem)
        notices.append(Notice(NoticeCode.UNRESOLVED_REFERENCE, problem))
    return tuple(notices)
