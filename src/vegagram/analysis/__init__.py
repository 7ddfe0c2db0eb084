"""输入分析：美学映射、分组与统计结果归一化。"""

from vegagram.analysis.aesthetics import (
    PrimaryTable,
    analyze_aesthetics,
    build_analysis_context,
    build_table_rows,
)
from vegagram.analysis.normalizer import normalize_stat, resolve_ci_shape

__all__ = [
    "PrimaryTable",
    "analyze_aesthetics",
    "build_analysis_context",
    "build_table_rows",
    "normalize_stat",
    "resolve_ci_shape",
]
