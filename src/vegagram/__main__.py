"""命令行入口：`python -m vegagram` / `vegagram`。"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence


def _configure_logging(verbose: bool) -> None:
    from vegagram.config import settings

    level = logging.DEBUG if settings.debug or verbose else settings.log_level.upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="vegagram - 图形语法描述到 Vega 文档的编译器")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="编译绘图描述并写出 JSON 与 HTML")
    export_parser.add_argument("description", help="绘图描述 JSON 文件路径")
    export_parser.add_argument("--file-name", dest="file_name", help="输出文件名（不含扩展名）")
    export_parser.add_argument("--export-path", dest="export_path", help="输出目录")
    export_parser.add_argument("--width", help="画布宽度（像素）")
    export_parser.add_argument("--height", help="画布高度（像素）")
    export_parser.add_argument("--title", help="图表标题")
    export_parser.add_argument("-x", dest="x", help="x 轴标题")
    export_parser.add_argument("-y", dest="y", help="y 轴标题")
    export_parser.add_argument("--interactive", action="store_true", help="生成可点击的交互式图例")
    export_parser.add_argument("--no-tooltip", action="store_true", help="关闭悬停提示")
    export_parser.set_defaults(func=_cmd_export)

    return parser


def _export_options(args: argparse.Namespace) -> dict[str, str]:
    options: dict[str, str] = {}
    for name in ("file_name", "export_path", "width", "height", "title", "x", "y"):
        value = getattr(args, name)
        if value is not None:
            options[name] = value
    options["interactive"] = "true" if args.interactive else "false"
    options["tooltip"] = "false" if args.no_tooltip else "true"
    return options


def _cmd_export(args: argparse.Namespace) -> int:
    from vegagram.compiler.pipeline import compile_vega_spec
    from vegagram.errors import ConfigurationError
    from vegagram.io.export import write_vega_files
    from vegagram.io.loader import load_analysis_context
    from vegagram.models.params import parse_output_options

    try:
        context = load_analysis_context(args.description)
        params = parse_output_options(_export_options(args), context)
    except ConfigurationError as exc:
        print(f"错误：{exc}", file=sys.stderr)
        return 1

    result = compile_vega_spec(context, params)
    paths = write_vega_files(result, params)
    for notice in result.notices:
        print(f"[{notice.code.value}] {notice.message}", file=sys.stderr)
    print(f"✓ Vega 文档: {paths.json_path}")
    print(f"✓ HTML 预览: {paths.html_path}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])
    _configure_logging(args.verbose)
    try:
        return int(args.func(args))
    except KeyboardInterrupt:
        print("已中断。")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
