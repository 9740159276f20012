"""
流水线模块 - 渲染编排与任务管理

子模块：
- stages: 流水线各阶段定义
- executor: 流水线执行器（单次渲染）
- job_manager: 并发任务管理
- manifest: 页面计划描述
"""

from .stages import PLAN_STAGES, RENDER_STAGES, PipelineStage, StageEnum
from .executor import PipelineExecutor, RenderResult, RenderSession
from .job_manager import JobManager
from .manifest import build_manifest, write_manifest

__all__ = [
    "PipelineStage",
    "StageEnum",
    "RENDER_STAGES",
    "PLAN_STAGES",
    "PipelineExecutor",
    "RenderResult",
    "RenderSession",
    "JobManager",
    "build_manifest",
    "write_manifest",
]
