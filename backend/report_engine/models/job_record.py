"""
任务记录模型 - 被报告的清理/评估任务快照

由持久层拥有，核心只读取其只读快照（frozen），从不修改
"""

from __future__ import annotations

import base64
from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class ReportKind(str, Enum):
    """报告种类"""
    CLEARANCE = "Clearance"
    ASSESSMENT = "Assessment"


# (报告种类, 子类型小写) -> 内容库报告类型键
TEMPLATE_TYPES: dict[tuple[str, str], str] = {
    ("Clearance", "non-friable"): "asbestosClearanceNonFriable",
    ("Clearance", "friable"): "asbestosClearanceFriable",
    ("Clearance", "friable (non-friable conditions)"): "asbestosClearanceFriableNonFriableConditions",
    ("Clearance", "vehicle/equipment"): "asbestosClearanceVehicle",
    ("Clearance", "vehicle"): "asbestosClearanceVehicle",
    ("Assessment", "asbestos"): "asbestosAssessment",
    ("Assessment", "lead"): "leadAssessment",
}


class Project(BaseModel):
    """项目/现场"""
    project_id: str | None = Field(None, description="项目编号(如 LDJ01234)")
    name: str | None = Field(None, description="现场名称")
    address: str | None = None
    client_name: str | None = None

    model_config = {"frozen": True}


class Item(BaseModel):
    """单个检查/清除单元（样品或清除区域），顺序即表格行序与照片编号顺序"""
    item_number: str | None = None
    location_description: str = ""
    material_description: str = ""
    asbestos_type: str | None = Field(None, description="friable / non-friable")
    asbestos_content: str | None = Field(None, description="分析结果")
    sample_id: str | None = None
    condition: str | None = None
    risk_rating: str | None = None
    photograph: str | bytes | None = Field(None, description="图片字节或 data-URI")

    model_config = {"frozen": True}

    @property
    def has_photo(self) -> bool:
        if isinstance(self.photograph, bytes):
            return len(self.photograph) > 0
        return bool(self.photograph and self.photograph.strip())

    def photo_src(self) -> str:
        """返回可直接放入 <img src> 的地址"""
        photo = self.photograph
        if not self.has_photo:
            return ""
        if isinstance(photo, bytes):
            mime = "image/png" if photo.startswith(b"\x89PNG") else "image/jpeg"
            return f"data:{mime};base64,{base64.b64encode(photo).decode('ascii')}"
        photo = photo.strip()
        if photo.startswith(("data:", "http://", "https://")):
            return photo
        return f"data:image/jpeg;base64,{photo}"


class PersonRecord(BaseModel):
    """负责人（人员目录查询结果）"""
    name: str
    licence_number: str | None = None
    licence_state: str | None = None
    signature_image: str | None = Field(None, description="签名图片 data-URI")

    model_config = {"frozen": True}


class JobRecord(BaseModel):
    """清理/评估任务快照（核心只读）"""

    kind: ReportKind = ReportKind.CLEARANCE
    subtype: str = "Non-friable"

    items: list[Item] = Field(default_factory=list)

    # 可选附录标记
    has_site_plan: bool = False
    has_air_monitoring: bool = False

    # 自由文本
    exclusions: str | None = None
    discussion: str | None = None

    # 负责人（目录标识，如 LAA 姓名）与项目
    responsible_person: str | None = None
    project: Project = Field(default_factory=Project)

    asbestos_removalist: str | None = None
    inspection_date: date | None = None
    inspection_time: str | None = Field(None, description="24小时制 HH:MM")
    job_reference: str | None = None
    revision: int = 0

    # 站点平面图为图片时直接渲染为附录页；为PDF时作为附件合并
    site_plan_image: str | None = None
    air_monitoring_summary: str | None = Field(None, description="空气监测结果摘要（附录页正文）")

    model_config = {"frozen": True}

    @property
    def template_type(self) -> str:
        """内容库报告类型键；未知子类型返回空串（由内容库按种类兜底）"""
        return TEMPLATE_TYPES.get((self.kind.value, self.subtype.strip().lower()), "")

    @property
    def is_clearance(self) -> bool:
        return self.kind == ReportKind.CLEARANCE

    def items_with_photos(self) -> list[Item]:
        """有照片的条目（保持原顺序）"""
        return [item for item in self.items if item.has_photo]
