"""
HTML序列化器 - 把类型化页面列表序列化为最终HTML

页面顺序与内容由装配器决定，此处只负责最后一步的标记输出
"""

from __future__ import annotations

import html

from ..config import ContentLibrary, RuntimeConfig, get_config, load_content
from ..models import Page, PageRole, RenderContext
from .markup import render_markup
from .substitution import substitute
from .templates import DOCUMENT_ROLE, TemplateLoader


class HtmlDocumentWriter:
    """HTML文档序列化器"""

    def __init__(
        self,
        templates: TemplateLoader | None = None,
        library: ContentLibrary | None = None,
        config: RuntimeConfig | None = None,
    ):
        config = config or get_config()
        self.templates = templates or TemplateLoader(config.template_dir)
        self.library = library or load_content(config.content_path)

    def write(self, context: RenderContext, pages: list[Page] | None = None) -> str:
        pages = pages if pages is not None else context.pages
        fragments = [self.render_page(context, page, len(pages)) for page in pages]
        document = self.templates.require(DOCUMENT_ROLE)
        return document.render(report=self._report_view(context), fragments=fragments)

    def render_page(self, context: RenderContext, page: Page, page_total: int) -> str:
        template = self.templates.require(page.role)
        record = context.record
        sections = context.rendered or context.sections

        extra: dict = {}
        if page.role == PageRole.MAIN_CONTENT:
            extra["blocks"] = [
                {
                    "block": block,
                    "section": sections.get(block.section_key) if block.section_key else None,
                    "rows": record.items[block.row_start:block.row_end] if block.is_table else [],
                }
                for block in page.blocks
            ]
        elif page.role == PageRole.APPENDIX_SITE_PLAN:
            extra["image_src"] = _image_src(record.site_plan_image)
        elif page.role == PageRole.APPENDIX_AIR_MONITORING:
            summary = record.air_monitoring_summary or ""
            extra["summary_html"] = render_markup(html.escape(summary)) if summary.strip() else ""

        return template.render(
            page=page,
            page_total=page_total,
            report=self._report_view(context),
            derived=context.derived,
            record=record,
            sections=sections,
            **extra,
        )

    def _report_view(self, context: RenderContext) -> dict:
        report_type = self.library.get_report_type(context.template_type, context.record.kind.value)
        values = context.derived.as_placeholders()
        return {
            "title": substitute(report_type.title, values),
            "subtitle": substitute(report_type.subtitle, values),
            "footer": substitute(report_type.footer, values),
            "is_clearance": context.record.is_clearance,
            "table_title": "Table 1: Removal Items" if context.record.is_clearance else "Table 1: Sample Register",
        }


def _image_src(value: str | None) -> str:
    if not value or not value.strip():
        return ""
    value = value.strip()
    if value.startswith(("data:", "http://", "https://")):
        return value
    return f"data:image/jpeg;base64,{value}"
