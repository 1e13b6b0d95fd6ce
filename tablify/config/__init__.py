"""
配置层 - 加载运行期配置

职责：
- 加载 config/tablify.yaml（运行期参数）
- 提供类型安全的配置访问接口
"""

from .runtime_config import (
    DefaultContentConfig,
    IdentityConfig,
    LoggingConfig,
    TablifyConfig,
    get_config,
    reload_config,
)

__all__ = [
    "TablifyConfig",
    "IdentityConfig",
    "DefaultContentConfig",
    "LoggingConfig",
    "get_config",
    "reload_config",
]
