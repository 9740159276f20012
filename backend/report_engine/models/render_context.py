"""
渲染上下文 - 单次渲染在各阶段之间传递的结构化数据

文档生成模块只消费这个结构，与外部持久层/路由层完全解耦
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .job_record import JobRecord
from .page import AppendixAssignment, Page, PaginationPlan, Section


class DerivedFields(BaseModel):
    """派生字段（由任务记录计算，均已HTML转义）"""

    # === 项目/客户 ===
    client_name: str = "Unknown Client"
    company_name: str = ""
    site_name: str = "Unknown Site"
    site_address: str = "Unknown Address"
    project_id: str = ""
    job_reference: str = ""
    revision: str = "0"

    # === 清理信息 ===
    report_type: str = ""
    asbestos_type: str = "non-friable"
    asbestos_removalist: str = "Unknown Removalist"
    item_count: str = "0"

    # === 负责人 ===
    laa_name: str = "Unknown LAA"
    laa_license: str = ""
    laa_licence_state: str = ""
    signature_image: str = ""

    # === 日期 ===
    inspection_time: str = "Unknown Time"
    inspection_date: str = "Unknown Date"
    report_date: str = ""

    # === 附录 ===
    photos_appendix: str = ""
    site_plan_appendix: str = ""
    air_monitoring_appendix: str = ""
    appendix_references: str = ""

    # === 评估范围/识别结果（项目符号行） ===
    assessment_scope: str = ""
    identified_asbestos: str = ""

    def as_placeholders(self) -> dict[str, str]:
        """占位符名 -> 值（字段名大写即占位符名）"""
        return {name.upper(): value for name, value in self.model_dump().items()}


class RenderContext(BaseModel):
    """单次渲染上下文（流水线各阶段读写）"""

    record: JobRecord
    template_type: str = ""

    # 附录字母（每次渲染计算一次，贯穿所有页面）
    appendices: AppendixAssignment = Field(default_factory=AppendixAssignment)

    derived: DerivedFields = Field(default_factory=DerivedFields)

    # 原始章节（占位符未替换）与渲染后的章节（正文已转为HTML）
    sections: dict[str, Section] = Field(default_factory=dict)
    rendered: dict[str, Section] = Field(default_factory=dict)

    plan: PaginationPlan | None = None
    pages: list[Page] = Field(default_factory=list)
    html: str = ""

    force_split: bool = False
    flags: list[str] = Field(default_factory=list)

    def add_flag(self, flag: str) -> None:
        if flag not in self.flags:
            self.flags.append(flag)
