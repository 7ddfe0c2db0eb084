"""图层构建器与调度。"""

from vegagram.layers.registry import (
    LayerRegistry,
    build_layers,
    create_default_registry,
    plan_layers,
)

__all__ = [
    "LayerRegistry",
    "build_layers",
    "create_default_registry",
    "plan_layers",
]
