"""
流水线阶段定义

职责：
1. 定义各阶段的名称与进度区间
2. 渲染流程严格顺序：章节解析 → 替换 → 分页 → 装配 → 序列化 → 渲染 → 合并

测试要点：
- test_stage_order: 阶段顺序
- test_stage_progress_ranges: 进度区间连续
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StageEnum(str, Enum):
    """流水线阶段枚举"""
    RESOLVE_SECTIONS = "RESOLVE_SECTIONS"
    SUBSTITUTE = "SUBSTITUTE"
    PLAN_MAIN_CONTENT = "PLAN_MAIN_CONTENT"
    ASSEMBLE = "ASSEMBLE"
    SERIALIZE = "SERIALIZE"
    RENDER = "RENDER"
    MERGE = "MERGE"


@dataclass
class PipelineStage:
    """流水线阶段"""
    name: str
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点


# 报告渲染流水线各阶段配置
RENDER_STAGES: list[PipelineStage] = [
    PipelineStage(StageEnum.RESOLVE_SECTIONS.value, 0, 10),
    PipelineStage(StageEnum.SUBSTITUTE.value, 10, 20),
    PipelineStage(StageEnum.PLAN_MAIN_CONTENT.value, 20, 30),
    PipelineStage(StageEnum.ASSEMBLE.value, 30, 40),
    PipelineStage(StageEnum.SERIALIZE.value, 40, 50),
    PipelineStage(StageEnum.RENDER.value, 50, 90),
    PipelineStage(StageEnum.MERGE.value, 90, 100),
]

# 仅生成页面计划（不渲染）
PLAN_STAGES: list[PipelineStage] = RENDER_STAGES[:4]
