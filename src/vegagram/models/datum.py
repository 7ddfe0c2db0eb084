"""观测值类型判定与标签规范化。"""

from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd

_NUMERIC_KINDS = {"integer", "floating", "mixed-integer-float", "decimal", "empty"}


def is_missing(value: Any) -> bool:
    """None / NaN / NaT 视为缺失。"""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_numeric_values(values: Sequence[Any]) -> bool:
    """全部非缺失值均为实数（不含布尔）时视为数值轴；空序列按数值处理。"""
    if len(values) == 0:
        return True
    kind = pd.api.types.infer_dtype(list(values), skipna=True)
    return kind in _NUMERIC_KINDS


def to_plain(value: Any) -> Any:
    """numpy 标量转为 JSON 可序列化的 Python 标量，NaN/Inf 转为 None。"""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        number = float(value)
        return number if math.isfinite(number) else None
    if is_missing(value):
        return None
    return value


def label_of(value: Any) -> str:
    """将取值规范化为字符串标签（``4`` 与 ``4.0`` 都得到 ``"4"``）。"""
    if isinstance(value, (bool, np.bool_)):
        return str(bool(value)).lower()
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        number = float(value)
        if math.isfinite(number) and number.is_integer():
            return str(int(number))
        return repr(number) if math.isfinite(number) else str(number)
    return str(value)


def distinct_stable(values: Iterable[Any]) -> list[Any]:
    """按首次出现顺序去重，忽略缺失值。"""
    kept = [value for value in values if not is_missing(value)]
    return list(pd.unique(pd.Series(kept, dtype=object)))


def distinct_labels(values: Iterable[Any]) -> list[str]:
    """规范化为字符串后按首次出现顺序去重。"""
    return distinct_stable(label_of(v) for v in values if not is_missing(v))


def category_label(index: int, labels: Sequence[str], prefix: str = "Category") -> str:
    """1 起始的类别序号映射为标签，越界时回退为 ``<prefix><index>``。"""
    if 1 <= index <= len(labels):
        return labels[index - 1]
    return f"{prefix}{index}"
