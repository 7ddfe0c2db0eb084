"""Vega 文档与 HTML 预览页的落盘。"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from vegagram.config import settings
from vegagram.models.fragment import CompileResult
from vegagram.models.params import OutputParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportPaths:
    json_path: Path
    html_path: Path


def render_html(file_name: str) -> str:
    """HTML 预览页：加载同目录下的 ``<file_name>.json`` 并交给 vega-embed 渲染。"""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Vega Chart</title>
    <script src="{settings.vega_js_url}"></script>
    <script src="{settings.vega_embed_js_url}"></script>
</head>
<body>
    <div id="{file_name}_chart"></div>
    <script>
        fetch("{file_name}.json")
            .then(response => response.json())
            .then(spec => {{
                vegaEmbed("#{file_name}_chart", spec, {{
                    actions: true,
                    theme: "default",
                    renderer: "{settings.html_renderer}"
                }});
            }})
            .catch(error => console.error("Error loading chart:", error));
    </script>
</body>
</html>
"""


def dump_spec(spec: dict[str, Any]) -> str:
    """严格 JSON：文档中出现 NaN/Inf 时抛出 ``ValueError``。"""
    return json.dumps(
        spec, ensure_ascii=False, allow_nan=False, indent=settings.json_indent or None
    )


def write_vega_files(
    result: CompileResult | dict[str, Any], params: OutputParameters
) -> ExportPaths:
    """写出 ``<export_path>/<file_name>.json`` 与同名 ``.html``，目录不存在时自动创建。"""
    spec = result.spec if isinstance(result, CompileResult) else result
    export_dir = Path(params.export_path or ".")
    export_dir.mkdir(parents=True, exist_ok=True)

    json_path = export_dir / f"{params.file_name}.json"
    html_path = export_dir / f"{params.file_name}.html"
    json_path.write_text(dump_spec(spec) + "\n", encoding="utf-8")
    html_path.write_text(render_html(params.file_name), encoding="utf-8")
    logger.info("已写出 Vega 文档: %s", json_path)
    logger.info("已写出 HTML 预览页: %s", html_path)
    return ExportPaths(json_path=json_path, html_path=html_path)
