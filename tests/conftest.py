"""测试初始化。"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture()
def scatter_description() -> dict[str, Any]:
    """五个观测的基础散点描述。"""
    return {
        "aes": {"x": [1, 2, 3, 4, 5], "y": [2, 4, 1, 5, 3]},
        "geoms": ["geom_point"],
    }


@pytest.fixture()
def grouped_description(scatter_description: dict[str, Any]) -> dict[str, Any]:
    """两种颜色分组的散点描述。"""
    scatter_description["aes"]["color"] = ["A", "A", "B", "B", "B"]
    return scatter_description
