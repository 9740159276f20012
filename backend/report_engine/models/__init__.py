"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- JobRecord: 被报告的清理/评估任务快照（只读）
- Section/ContentBlock/Page: 章节、分页单元与页面
- AppendixAssignment: 附录字母分配
- RenderContext: 单次渲染上下文
- RenderJob: 渲染任务状态与生命周期
"""

from .job import JobProgress, JobStatus, RenderJob
from .job_record import TEMPLATE_TYPES, Item, JobRecord, PersonRecord, Project, ReportKind
from .page import (
    AppendixAssignment,
    AppendixKind,
    ContentBlock,
    Page,
    PageRole,
    PaginationPlan,
    PhotoEntry,
    PlannedPage,
    Section,
)
from .render_context import DerivedFields, RenderContext

__all__ = [
    "RenderJob",
    "JobStatus",
    "JobProgress",
    "JobRecord",
    "Item",
    "Project",
    "PersonRecord",
    "ReportKind",
    "TEMPLATE_TYPES",
    "Section",
    "ContentBlock",
    "PlannedPage",
    "PaginationPlan",
    "Page",
    "PageRole",
    "PhotoEntry",
    "AppendixKind",
    "AppendixAssignment",
    "DerivedFields",
    "RenderContext",
]
