"""
配置层 - 加载运行期配置与默认报告内容

职责：
- 加载 config/runtime.yaml（运行期参数：分页常量/超时/渲染后端）
- 加载 default_content.yaml（各报告类型的默认章节）
- 提供类型安全的配置访问接口
"""

from .content_loader import (
    ContentLibrary,
    ContentLoader,
    ReportTypeContent,
    SectionDefault,
    load_content,
)
from .runtime_config import (
    PaginationConfig,
    RendererConfig,
    RuntimeConfig,
    get_config,
    reload_config,
    setup_logging,
)

__all__ = [
    "ContentLoader",
    "ContentLibrary",
    "ReportTypeContent",
    "SectionDefault",
    "load_content",
    "PaginationConfig",
    "RendererConfig",
    "RuntimeConfig",
    "get_config",
    "reload_config",
    "setup_logging",
]
