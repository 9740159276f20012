"""
模块接口契约 - 定义各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 外部协作方（内容库/人员目录/渲染服务）一律通过接口注入
3. 便于单元测试和mock替换

使用方式：
    from report_engine.interfaces import IRenderer

    class MyRenderer(IRenderer):
        def render(self, html: str) -> bytes:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import JobRecord, Page, PersonRecord, RenderContext, Section


# ============================================================================
# 外部协作方接口
# ============================================================================

class IContentStore(ABC):
    """模板内容库接口 - 按报告类型返回章节列表"""

    @abstractmethod
    def get_sections(self, template_type: str) -> list[Section] | None:
        """
        获取报告类型对应的章节

        Args:
            template_type: 报告类型键（如 asbestosClearanceFriable）

        Returns:
            章节列表；未找到时返回 None
        """
        ...


class IPersonDirectory(ABC):
    """人员目录接口 - 按标识查询负责人（姓名/执照/签名）"""

    @abstractmethod
    def lookup(self, identifier: str) -> PersonRecord | None:
        """查询负责人，未找到返回 None"""
        ...


class IRenderer(ABC):
    """渲染器接口 - 最终HTML转PDF"""

    @abstractmethod
    def render(self, html: str) -> bytes:
        """
        渲染HTML为PDF

        Raises:
            RenderError: 渲染失败
        """
        ...


class IPDFMerger(ABC):
    """PDF合并接口"""

    @abstractmethod
    def merge(self, primary: bytes, attachments: list) -> bytes:
        """把附件PDF合并进主文档，返回合并后的字节流"""
        ...


# ============================================================================
# 文档生成模块接口
# ============================================================================

class ISectionResolver(ABC):
    """章节解析器接口"""

    @abstractmethod
    def resolve(self, record: JobRecord, flags: list[str] | None = None) -> dict[str, Section]:
        """按报告类型与任务记录解析出有序章节（可恢复缺口写入 flags）"""
        ...


class IDocumentAssembler(ABC):
    """文档装配器接口"""

    @abstractmethod
    def assemble(self, context: RenderContext, site_plan_attached: bool = False) -> list[Page]:
        """按渲染上下文生成有序页面列表"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class ReportEngineError(Exception):
    """基础异常"""
    pass


class TemplateLoadError(ReportEngineError):
    """必需的页面模板缺失（致命）"""

    def __init__(self, message: str, role: str | None = None):
        super().__init__(message)
        self.role = role


class RenderError(ReportEngineError):
    """渲染失败（致命）"""

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage


class ContentFetchError(ReportEngineError):
    """内容库读取失败（可恢复，降级为默认内容）"""
    pass


class MergeError(ReportEngineError):
    """附件合并失败（可恢复，返回未合并的主文档）"""
    pass
