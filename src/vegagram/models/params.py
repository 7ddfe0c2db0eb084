"""输出参数解析。"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from vegagram.config import settings
from vegagram.errors import ConfigurationError
from vegagram.models.context import AnalysisContext

logger = logging.getLogger(__name__)

# 选项名 -> 字段名
OPTION_FIELDS: dict[str, str] = {
    "file_name": "file_name",
    "export_path": "export_path",
    "x": "x_label",
    "y": "y_label",
    "title": "title",
    "width": "width",
    "height": "height",
    "interactive": "interactive",
    "tooltip": "tooltip",
}

DEFAULT_TITLE = "Untitled"

_TRUE_WORDS = {"true", "1", "yes", "on"}
_FALSE_WORDS = {"false", "0", "no", "off"}


class OutputParameters(BaseModel):
    """输出参数；宽高为数字字符串，开关为 ``"true"``/``"false"``。"""

    model_config = ConfigDict(frozen=True)

    file_name: str = "untitled"
    export_path: str = "./"
    x_label: str = "x-axis"
    y_label: str = "y-axis"
    title: str = DEFAULT_TITLE
    width: str = "500"
    height: str = "500"
    interactive: str = "false"
    tooltip: str = "true"

    @property
    def is_interactive(self) -> bool:
        return self.interactive == "true"

    @property
    def show_tooltip(self) -> bool:
        return self.tooltip == "true"

    @property
    def has_title(self) -> bool:
        return self.title != DEFAULT_TITLE

    @property
    def width_px(self) -> int | float:
        return _as_number(self.width)

    @property
    def height_px(self) -> int | float:
        return _as_number(self.height)


def _as_number(text: str) -> int | float:
    value = float(text)
    return int(value) if value.is_integer() else value


def normalize_dimension(value: Any, default: str, name: str = "width") -> str:
    """宽高归一化为正数的数字字符串，非法值回退默认并告警。"""
    if not isinstance(value, bool):
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            number = math.nan
        if math.isfinite(number) and number > 0:
            return str(int(number)) if number.is_integer() else repr(number)
    logger.warning("参数 %s 的取值 %r 不是有效像素尺寸，回退为 %s", name, value, default)
    return default


def normalize_flag(value: Any, default: str, name: str = "interactive") -> str:
    """布尔类选项归一化为 ``"true"``/``"false"``。"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return "true" if value else "false"
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return "true"
    if text in _FALSE_WORDS:
        return "false"
    logger.warning("参数 %s 的取值 %r 无法识别，回退为 %s", name, value, default)
    return default


def _pairs(options: Mapping[Any, Any] | Sequence[Any] | None) -> list[tuple[Any, Any]]:
    if options is None:
        return []
    if isinstance(options, Mapping):
        return list(options.items())
    if isinstance(options, (str, bytes)):
        raise ConfigurationError("输出选项必须是映射或名称/取值交替的序列")
    items = list(options)
    if len(items) % 2 != 0:
        raise ConfigurationError(f"输出选项 {items[-1]!r} 缺少取值")
    return [(items[i], items[i + 1]) for i in range(0, len(items), 2)]


def validate_option_names(
    options: Mapping[Any, Any] | Sequence[Any] | None,
) -> list[tuple[str, Any]]:
    """展开为 ``(名称, 取值)`` 对并检查名称类型，不依赖分析上下文。

    Raises:
        ConfigurationError: 选项名不是字符串，或序列形式缺少取值。
    """
    pairs = _pairs(options)
    for position, (name, _) in enumerate(pairs):
        if not isinstance(name, str):
            raise ConfigurationError(
                f"第 {position + 1} 个输出选项名必须是字符串，实际为 {type(name).__name__}"
            )
    return pairs


def parse_output_options(
    options: Mapping[Any, Any] | Sequence[Any] | None = None,
    context: AnalysisContext | None = None,
) -> OutputParameters:
    """解析输出选项。

    选项可以是映射，也可以是 ``["width", "400", "height", "300"]`` 形式的序列。
    选项名不是字符串时抛出 ``ConfigurationError``；未知选项名忽略。
    轴标题、宽高的默认值取自分析上下文，缺失时使用全局配置。
    """
    pairs = validate_option_names(options)
    defaults: dict[str, str] = {
        "x_label": "x-axis",
        "y_label": "y-axis",
        "width": str(settings.default_width),
        "height": str(settings.default_height),
    }
    if context is not None:
        if context.x_label:
            defaults["x_label"] = context.x_label
        if context.y_label:
            defaults["y_label"] = context.y_label
        if context.figure_width:
            defaults["width"] = normalize_dimension(context.figure_width, defaults["width"])
        if context.figure_height:
            defaults["height"] = normalize_dimension(
                context.figure_height, defaults["height"], name="height"
            )

    values: dict[str, Any] = dict(defaults)
    for name, value in pairs:
        field_name = OPTION_FIELDS.get(name)
        if field_name is None:
            logger.debug("忽略未知输出选项: %s", name)
            continue
        values[field_name] = value

    values["width"] = normalize_dimension(values["width"], defaults["width"])
    values["height"] = normalize_dimension(values["height"], defaults["height"], name="height")
    values["interactive"] = normalize_flag(values.get("interactive", "false"), "false")
    values["tooltip"] = normalize_flag(values.get("tooltip", "true"), "true", name="tooltip")
    for key in ("file_name", "export_path", "x_label", "y_label", "title"):
        if key in values:
            values[key] = str(values[key])
    return OutputParameters(**values)
