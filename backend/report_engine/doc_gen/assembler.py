"""
文档装配器 - 生成有序页面列表并贯穿附录字母

职责：
1. 清理报告：封面 → 版本控制 → 主体页(1..N) → 背景/法规页 → 附录A分隔页 → 照片页
   → [平面图分隔页 + 平面图页] → [空气监测页]
2. 评估报告：封面 → 版本控制 → 主体页(1..N) → 讨论主题页（两两成页）→ [术语表页] → 附录同上
3. 照片按固定数量分页，保持条目顺序与全局编号
4. 每个输出页面所需的模板必须可加载，否则整个渲染失败

依赖：
- TemplateLoader: 页面模板
- PhotoConfig: 每页照片数

测试要点：
- test_clearance_page_order: 清理报告页面顺序
- test_photo_pagination: 照片分页与编号
- test_discussion_pairs: 讨论主题成对且空对被跳过
- test_glossary_after_discussion: 术语表页位于讨论页之后
- test_missing_template_fatal: 模板缺失时失败
"""

from __future__ import annotations

import logging

from ..config import ContentLibrary, RuntimeConfig, get_config, load_content
from ..interfaces import IDocumentAssembler
from ..models import (
    AppendixKind,
    Page,
    PageRole,
    PhotoEntry,
    RenderContext,
    Section,
)
from .templates import DOCUMENT_ROLE, TemplateLoader

logger = logging.getLogger(__name__)

APPENDIX_CONTENT_ROLES: dict[AppendixKind, PageRole] = {
    AppendixKind.PHOTOS: PageRole.APPENDIX_PHOTOS,
    AppendixKind.SITE_PLAN: PageRole.APPENDIX_SITE_PLAN,
    AppendixKind.AIR_MONITORING: PageRole.APPENDIX_AIR_MONITORING,
}


class DocumentAssembler(IDocumentAssembler):
    """文档装配器实现"""

    def __init__(
        self,
        templates: TemplateLoader | None = None,
        library: ContentLibrary | None = None,
        config: RuntimeConfig | None = None,
    ):
        self.config = config or get_config()
        self.templates = templates or TemplateLoader(self.config.template_dir)
        self.library = library or load_content(self.config.content_path)
        self.photos_per_page = max(1, self.config.photos.photos_per_page)

    def assemble(self, context: RenderContext, site_plan_attached: bool = False) -> list[Page]:
        """生成有序页面列表（页码从1开始）"""
        record = context.record
        report_type = self.library.get_report_type(context.template_type, record.kind.value)
        sections = context.rendered or context.sections

        pages: list[Page] = [
            Page(role=PageRole.COVER, title=report_type.title),
            Page(role=PageRole.VERSION_CONTROL, title="VERSION CONTROL"),
        ]

        # === 主体页 ===
        plan = context.plan
        if plan is None:
            raise ValueError("主体内容尚未分页")
        for planned in plan.pages:
            pages.append(
                Page(
                    role=PageRole.MAIN_CONTENT,
                    title=report_type.title,
                    blocks=list(planned.blocks),
                    continuation=planned.index > 0,
                )
            )

        # === 背景页 / 讨论页 ===
        if record.is_clearance:
            background = _pick(sections, report_type.background_sections)
            pages.append(Page(role=PageRole.BACKGROUND, sections=background))
        else:
            pages.extend(self._discussion_pages(sections, report_type.discussion_topics))
            if report_type.glossary_section:
                glossary = _pick(sections, [report_type.glossary_section])
                if glossary:
                    pages.append(Page(role=PageRole.GLOSSARY, title=glossary[0].title, sections=glossary))

        # === 附录 ===
        pages.extend(self._appendix_pages(context, site_plan_attached))

        for number, page in enumerate(pages, start=1):
            page.page_number = number

        # 每个页面角色的模板都必须可加载
        for role in {p.role for p in pages}:
            self.templates.require(role)
        self.templates.require(DOCUMENT_ROLE)

        logger.info(
            f"装配完成: {context.template_type} 共 {len(pages)} 页, "
            f"附录 {[letter for _, letter in context.appendices.ordered]}"
        )
        return pages

    def _discussion_pages(self, sections: dict[str, Section], topics: list[str]) -> list[Page]:
        """讨论主题两两成页，两者均为空时跳过该对"""
        pages = []
        for i in range(0, len(topics), 2):
            pair = _pick(sections, topics[i:i + 2])
            if not pair:
                continue
            pages.append(Page(role=PageRole.DISCUSSION, sections=pair))
        return pages

    def _appendix_pages(self, context: RenderContext, site_plan_attached: bool) -> list[Page]:
        pages: list[Page] = []
        record = context.record
        appendices = context.appendices

        for kind, letter in appendices.ordered:
            title = self.library.get_appendix_title(kind.value)

            if kind == AppendixKind.PHOTOS:
                pages.append(_divider(kind, letter, title))
                pages.extend(self._photo_pages(context, letter, title))

            elif kind == AppendixKind.SITE_PLAN:
                pages.append(_divider(kind, letter, title))
                # PDF 平面图在合并阶段插入分隔页之后，替代内容页
                if not site_plan_attached:
                    pages.append(
                        Page(
                            role=PageRole.APPENDIX_SITE_PLAN,
                            title=title,
                            appendix_kind=kind,
                            appendix_letter=letter,
                        )
                    )
                if not record.site_plan_image and not site_plan_attached:
                    logger.warning("已标记平面图但未提供平面图内容")
                    context.add_flag("平面图缺失")

            elif kind == AppendixKind.AIR_MONITORING:
                # 分隔与内容同页，外部监测报告PDF在合并阶段追加
                pages.append(
                    Page(
                        role=PageRole.APPENDIX_AIR_MONITORING,
                        title=title,
                        appendix_kind=kind,
                        appendix_letter=letter,
                    )
                )
        return pages

    def _photo_pages(self, context: RenderContext, letter: str, title: str) -> list[Page]:
        photos = [
            PhotoEntry(
                number=number,
                location=item.location_description,
                material=item.material_description,
                src=item.photo_src(),
            )
            for number, item in enumerate(context.record.items_with_photos(), start=1)
        ]
        if not photos:
            context.add_flag("无照片")

        pages = []
        for start in range(0, len(photos), self.photos_per_page):
            pages.append(
                Page(
                    role=PageRole.APPENDIX_PHOTOS,
                    title=title,
                    appendix_kind=AppendixKind.PHOTOS,
                    appendix_letter=letter,
                    photos=photos[start:start + self.photos_per_page],
                    continuation=start > 0,
                )
            )
        return pages

    def divider_positions(self, pages: list[Page]) -> dict[AppendixKind, int]:
        """各附录分隔页的页码（合并阶段按此插入附件）"""
        return {
            p.appendix_kind: p.page_number
            for p in pages
            if p.role == PageRole.APPENDIX_DIVIDER and p.appendix_kind is not None
        }


def _divider(kind: AppendixKind, letter: str, title: str) -> Page:
    return Page(
        role=PageRole.APPENDIX_DIVIDER,
        title=title,
        appendix_kind=kind,
        appendix_letter=letter,
    )


def _pick(sections: dict[str, Section], keys: list[str]) -> list[Section]:
    """按顺序取出非空章节"""
    return [sections[k] for k in keys if k in sections and not sections[k].is_empty]
