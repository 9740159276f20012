"""
页面模板加载器 - 按页面角色加载HTML片段模板（jinja2）

职责：
1. 页面角色 -> 模板文件映射
2. 模板缺失时抛出 TemplateLoadError（致命，携带页面角色）

依赖：
- jinja2: HTML模板
- report_engine/templates/*.html
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound, select_autoescape

from ..interfaces import TemplateLoadError
from ..models import PageRole

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

ROLE_TEMPLATES: dict[str, str] = {
    PageRole.COVER.value: "cover.html",
    PageRole.VERSION_CONTROL.value: "version_control.html",
    PageRole.MAIN_CONTENT.value: "main_content.html",
    PageRole.BACKGROUND.value: "background.html",
    PageRole.DISCUSSION.value: "discussion.html",
    PageRole.GLOSSARY.value: "glossary.html",
    PageRole.APPENDIX_DIVIDER.value: "appendix_divider.html",
    PageRole.APPENDIX_PHOTOS.value: "photo_page.html",
    PageRole.APPENDIX_SITE_PLAN.value: "site_plan.html",
    PageRole.APPENDIX_AIR_MONITORING.value: "air_monitoring.html",
}

DOCUMENT_ROLE = "document"
ROLE_TEMPLATES[DOCUMENT_ROLE] = "document.html"


class TemplateLoader:
    """页面模板加载器"""

    def __init__(self, template_dir: str | Path | None = None):
        self.template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def require(self, role: PageRole | str) -> Template:
        """加载角色对应的模板，缺失即失败"""
        role_name = role.value if isinstance(role, PageRole) else role
        name = ROLE_TEMPLATES.get(role_name)
        if name is None:
            raise TemplateLoadError(f"未登记的页面角色: {role_name}", role=role_name)
        try:
            return self.env.get_template(name)
        except TemplateNotFound as e:
            raise TemplateLoadError(
                f"页面模板缺失: {name} (角色 {role_name}, 目录 {self.template_dir})",
                role=role_name,
            ) from e
