"""
运行期配置 - 读取 config/tablify.yaml

职责：
- 加载标识前缀/默认内容/日志等运行参数
- 提供环境变量覆盖机制（TABLIFY_ 前缀）
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class IdentityConfig(BaseModel):
    """自动标识配置"""

    row_prefix: str = "jsr"
    column_prefix: str = "jsc"
    grid_prefix: str = "jsg"
    start: int = Field(1, ge=0)


class DefaultContentConfig(BaseModel):
    """表格级默认内容（列未定义模板时使用）"""

    title_uses_column_id: bool = True   # 标题行默认显示列ID
    title: str = ""
    body: str = ""
    footer: str = ""


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "tablify.log"


class TablifyConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    defaults: DefaultContentConfig = Field(default_factory=DefaultContentConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "TABLIFY_",
        "env_nested_delimiter": "__",
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> TablifyConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        options = data.get("tablify_options", {})

        return cls(
            identity=IdentityConfig(**cls._extract(options, "identity")),
            defaults=DefaultContentConfig(**cls._extract(options, "default_content")),
            logging=LoggingConfig(**cls._extract(options, "logging")),
        )

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def default_content(self, kind: str, column_id: str) -> str:
        """获取表格级默认内容（kind 为 title/body/footer）"""
        if kind == "title":
            return column_id if self.defaults.title_uses_column_id else self.defaults.title
        return getattr(self.defaults, kind)


DEFAULT_CONFIG_PATH = Path("config/tablify.yaml")

# 全局配置实例
_config: TablifyConfig | None = None


def get_config() -> TablifyConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = TablifyConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> TablifyConfig:
    """重新加载配置"""
    global _config
    _config = TablifyConfig.from_yaml(yaml_path or DEFAULT_CONFIG_PATH)
    return _config
