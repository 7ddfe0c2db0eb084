"""应用配置，基于 Pydantic Settings。"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# 项目根目录（pyproject.toml 所在位置）
_ROOT = Path(__file__).resolve().parent.parent.parent

_DEFAULT_CATEGORICAL = "#fc4464,#08bc4d,#04b0fc,#ff9500,#9b59b6,#e74c3c,#2ecc71,#3498db"
_DEFAULT_CONTINUOUS = (
    "#440154,#482777,#3f4a8a,#31678e,#26838f,#1f9d8a,#6cce5a,#b6de2b,#fee825"
)


class Settings(BaseSettings):
    """全局配置，支持 .env 文件和环境变量。"""

    model_config = SettingsConfigDict(
        env_file=str(_ROOT / ".env"),
        env_file_encoding="utf-8",
        env_prefix="VEGAGRAM_",
        extra="ignore",
    )

    # ---- 基础 ----
    app_name: str = "vegagram"
    debug: bool = False
    log_level: str = "INFO"

    # ---- 画布 ----
    vega_schema_url: str = "https://vega.github.io/schema/vega/v6.json"
    default_width: int = 500
    default_height: int = 500
    padding_left: int = 60
    padding_right: int = 20
    padding_top: int = 20
    padding_bottom: int = 60
    legend_padding_right: int = 120  # 出现图例时右侧留白

    # ---- 颜色 ----
    mark_color: str = "#ff4565"
    neutral_color: str = "#ccc"
    reference_line_color: str = "#808080"
    categorical_palette: str = _DEFAULT_CATEGORICAL
    continuous_palette: str = _DEFAULT_CONTINUOUS
    colormap_samples: int = 9

    # ---- 导出 ----
    vega_js_url: str = "https://cdn.jsdelivr.net/npm/vega@5"
    vega_embed_js_url: str = "https://cdn.jsdelivr.net/npm/vega-embed@6"
    html_renderer: str = "canvas"
    json_indent: int = 2


# 全局单例
settings = Settings()
