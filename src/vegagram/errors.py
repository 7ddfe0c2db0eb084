"""异常与可恢复诊断。

只有配置契约违规是致命的（抛出 ``ConfigurationError``）；
数据形状上的不规则一律降级为 ``Notice``，随编译结果返回给调用方。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class VegagramError(Exception):
    """vegagram 异常基类。"""


class ConfigurationError(VegagramError, ValueError):
    """配置契约违规，编译开始前中止。"""


class NoticeCode(str, Enum):
    """可恢复诊断类别。"""

    NO_LAYERS_DETECTED = "no_layers_detected"
    MALFORMED_STATISTIC_RECORD = "malformed_statistic_record"
    INVALID_NUMERIC_OBSERVATION = "invalid_numeric_observation"
    UNRESOLVED_CI_SHAPE = "unresolved_ci_shape"
    PALETTE_OVERFLOW = "palette_overflow"
    UNRESOLVED_REFERENCE = "unresolved_reference"


@dataclass(frozen=True)
class Notice:
    """单条诊断信息。"""

    code: NoticeCode
    message: str
    layer: str | None = None
    group: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.layer is not None:
            payload["layer"] = self.layer
        if self.group is not None:
            payload["group"] = self.group
        return payload
