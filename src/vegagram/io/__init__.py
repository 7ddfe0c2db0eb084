"""文件读写。"""

from vegagram.io.export import ExportPaths, render_html, write_vega_files
from vegagram.io.loader import load_analysis_context, load_plot_description

__all__ = [
    "ExportPaths",
    "load_analysis_context",
    "load_plot_description",
    "render_html",
    "write_vega_files",
]
