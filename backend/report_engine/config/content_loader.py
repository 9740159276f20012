"""
默认内容加载器 - 读取 config/default_content.yaml

职责：
- 解析YAML并提供类型安全访问
- 提供各报告类型的默认章节、条件章节、主体块顺序、讨论主题顺序
- 缓存加载结果（避免重复解析）

使用方式：
    library = ContentLoader.load()
    report_type = library.get_report_type("asbestosClearanceFriable", kind="Clearance")
    section = report_type.sections["inspectionDetails"]
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONTENT_PATH = Path(__file__).with_name("default_content.yaml")


class SectionDefault(BaseModel):
    """章节默认内容"""
    title: str = ""
    body: str = ""
    aliases: list[str] = Field(default_factory=list, description="内容库中的旧键名")


class ConditionalSection(BaseModel):
    """条件章节（标记未置位时解析为空串）"""
    flag: str = Field(..., description="JobRecord 上的布尔属性名")
    title: str = ""
    body: str = ""


class ReportTypeContent(BaseModel):
    """单个报告类型的默认内容"""
    kind: str
    title: str
    subtitle: str = ""
    footer: str = ""

    # 主体页块顺序（分页规划用）
    main_blocks: list[str] = Field(default_factory=list)
    table_block: str | None = None

    # 背景页章节（清理报告）
    background_sections: list[str] = Field(default_factory=list)

    # 讨论主题顺序（评估报告，两两成页）
    discussion_topics: list[str] = Field(default_factory=list)

    # 术语表页章节（评估报告，讨论页之后）
    glossary_section: str | None = None

    sections: dict[str, SectionDefault] = Field(default_factory=dict)
    conditional_sections: dict[str, ConditionalSection] = Field(default_factory=dict)

    # 任务自由文本追加规则：章节键 -> JobRecord 字段
    appends: dict[str, str] = Field(default_factory=dict)

    @property
    def section_order(self) -> list[str]:
        """标准章节在前，条件章节在后"""
        return list(self.sections) + [
            k for k in self.conditional_sections if k not in self.sections
        ]


class ContentLibrary(BaseModel):
    """默认内容库（default_content.yaml 的结构化表示）"""
    schema_version: str

    # 内容库与默认值都缺失时的通用措辞
    generic_fallback_body: str = ""

    # 报告种类 -> 兜底报告类型
    fallback_types: dict[str, str] = Field(default_factory=dict)

    # 附录标题
    appendix_titles: dict[str, str] = Field(default_factory=dict)

    report_types: dict[str, ReportTypeContent] = Field(default_factory=dict)

    def get_report_type(self, template_type: str, kind: str | None = None) -> ReportTypeContent:
        """获取报告类型配置，未知类型按报告种类兜底"""
        if template_type in self.report_types:
            return self.report_types[template_type]
        fallback = self.fallback_types.get(kind or "", "")
        if fallback in self.report_types:
            return self.report_types[fallback]
        raise KeyError(f"未知报告类型: {template_type}")

    def get_appendix_title(self, kind: str) -> str:
        return self.appendix_titles.get(kind, kind.replace("_", " ").upper())


class ContentLoader:
    """默认内容加载器（缓存）"""

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, content_path: str | Path = DEFAULT_CONTENT_PATH) -> ContentLibrary:
        """加载并缓存默认内容"""
        path = Path(content_path)
        if not path.exists():
            raise FileNotFoundError(f"默认内容文件不存在: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        # 下划线开头的顶层键仅用作YAML锚点
        data = {k: v for k, v in data.items() if not k.startswith("_")}
        return ContentLibrary(**data)

    @classmethod
    def reload(cls, content_path: str | Path = DEFAULT_CONTENT_PATH) -> ContentLibrary:
        """强制重新加载（清除缓存）"""
        cls.load.cache_clear()
        return cls.load(content_path)


# 便捷函数
def load_content(content_path: str | Path | None = None) -> ContentLibrary:
    """加载默认内容库"""
    return ContentLoader.load(content_path or DEFAULT_CONTENT_PATH)
