"""
页面模型 - 章节、内容块、分页计划、附录字母与页面

页面只持有角色与已解析内容，直到最后一步才序列化为HTML
"""

from __future__ import annotations

import string
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, Field


class Section(BaseModel):
    """报告正文章节（标题+正文，正文可含占位符与内联标记）"""
    key: str
    title: str = ""
    body: str = ""
    source: str = Field("store", description="store / default / fallback / conditional")

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return not self.body.strip()


class PageRole(str, Enum):
    """页面角色"""
    COVER = "cover"
    VERSION_CONTROL = "versionControl"
    MAIN_CONTENT = "mainContent"
    BACKGROUND = "background"
    DISCUSSION = "discussion"
    GLOSSARY = "glossary"
    APPENDIX_DIVIDER = "appendixDivider"
    APPENDIX_PHOTOS = "appendixPhotos"
    APPENDIX_SITE_PLAN = "appendixSitePlan"
    APPENDIX_AIR_MONITORING = "appendixAirMonitoring"


class AppendixKind(str, Enum):
    """可选附录内容"""
    PHOTOS = "photos"
    SITE_PLAN = "site_plan"
    AIR_MONITORING = "air_monitoring"


class AppendixAssignment(BaseModel):
    """附录字母分配（每次渲染按存在标记重新计算，不跨记录缓存）"""

    PRIORITY: ClassVar[tuple[AppendixKind, ...]] = (
        AppendixKind.PHOTOS,
        AppendixKind.SITE_PLAN,
        AppendixKind.AIR_MONITORING,
    )

    letters: dict[AppendixKind, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def compute(
        cls,
        *,
        photos: bool = True,
        site_plan: bool = False,
        air_monitoring: bool = False,
    ) -> AppendixAssignment:
        """按固定优先级分配连续字母，缺席内容不占字母"""
        present = {
            AppendixKind.PHOTOS: photos,
            AppendixKind.SITE_PLAN: site_plan,
            AppendixKind.AIR_MONITORING: air_monitoring,
        }
        kinds = [kind for kind in cls.PRIORITY if present[kind]]
        return cls(letters={kind: string.ascii_uppercase[i] for i, kind in enumerate(kinds)})

    def letter_for(self, kind: AppendixKind) -> str | None:
        return self.letters.get(kind)

    def has(self, kind: AppendixKind) -> bool:
        return kind in self.letters

    @property
    def ordered(self) -> list[tuple[AppendixKind, str]]:
        return sorted(self.letters.items(), key=lambda kv: kv[1])


class ContentBlock(BaseModel):
    """分页单元（规划时临时创建，不持久化）"""
    name: str
    height: int
    order: int
    section_key: str | None = None
    is_table: bool = False

    # 表格块拆分后的行区间 [row_start, row_end)
    row_start: int | None = None
    row_end: int | None = None

    @property
    def is_continuation(self) -> bool:
        return self.is_table and bool(self.row_start)


class PlannedPage(BaseModel):
    """一张物理页上的块"""
    index: int
    blocks: list[ContentBlock] = Field(default_factory=list)
    used_height: int = 0


class PaginationPlan(BaseModel):
    """主体内容分页结果"""
    capacity: int
    pages: list[PlannedPage] = Field(default_factory=list)
    forced_split: bool = False

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page_of(self, block_name: str) -> int | None:
        """块首次出现的页索引"""
        for page in self.pages:
            if any(b.name == block_name for b in page.blocks):
                return page.index
        return None


class PhotoEntry(BaseModel):
    """照片页中的单张照片（编号全局连续）"""
    number: int
    location: str = ""
    material: str = ""
    src: str = ""


class Page(BaseModel):
    """页面（角色 + 已解析内容），按序交给外部渲染器"""
    role: PageRole
    page_number: int = 0
    title: str = ""

    appendix_kind: AppendixKind | None = None
    appendix_letter: str | None = None

    # 主体页
    blocks: list[ContentBlock] = Field(default_factory=list)
    continuation: bool = False

    # 背景页/讨论页：已渲染正文的章节
    sections: list[Section] = Field(default_factory=list)

    # 照片页
    photos: list[PhotoEntry] = Field(default_factory=list)

    def describe(self) -> dict:
        """页面计划描述（不含正文，便于测试与manifest）"""
        info: dict = {"page": self.page_number, "role": self.role.value}
        if self.appendix_letter:
            info["appendix"] = self.appendix_letter
        if self.blocks:
            info["blocks"] = [b.name for b in self.blocks]
        if self.sections:
            info["sections"] = [s.key for s in self.sections]
        if self.photos:
            info["photos"] = [p.number for p in self.photos]
        return info
