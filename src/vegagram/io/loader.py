"""绘图描述文件的读取。"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from vegagram.analysis.aesthetics import build_analysis_context
from vegagram.errors import ConfigurationError
from vegagram.models.context import AnalysisContext

logger = logging.getLogger(__name__)


def load_plot_description(path: str | Path) -> dict[str, Any]:
    """读取 JSON 绘图描述；文件不可读或内容不是 JSON 对象时抛出 ``ConfigurationError``。"""
    file_path = Path(path)
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"无法读取绘图描述文件 {file_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"绘图描述文件 {file_path} 不是合法 JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"绘图描述文件 {file_path} 的顶层必须是 JSON 对象")
    logger.debug("已读取绘图描述: %s", file_path)
    return payload


def load_analysis_context(path: str | Path) -> AnalysisContext:
    return build_analysis_context(load_plot_description(path))
