"""
文档生成模块 - 章节解析/占位符替换/分页/装配/渲染/合并

子模块：
- markup: 内联标记解析（段落/列表/强调）
- substitution: 占位符替换与人员缓存
- derivation: 派生字段与附录引用
- sections: 章节解析（内容库 + 默认内容）
- pagination: 主体内容分页
- assembler: 页面装配与附录字母
- html_writer: 最终HTML序列化
- pdf_engine: 渲染后端适配器
- pdf_merge: 外部PDF合并
"""

from .assembler import DocumentAssembler
from .derivation import DerivationEngine, appendix_reference_sentence, format_time_12h
from .html_writer import HtmlDocumentWriter
from .markup import BulletList, InlineRun, Paragraph, render_markup, tokenize
from .pagination import BlockPlanner
from .pdf_engine import (
    CallableRenderer,
    ChromiumPDFRenderer,
    HttpPDFRenderer,
    PDFExporter,
    count_pdf_pages,
)
from .pdf_merge import Attachment, PDFMerger, decode_pdf_payload
from .sections import SectionResolver, placeholder_name
from .substitution import PersonLookupCache, PlaceholderEngine, substitute
from .templates import TemplateLoader

__all__ = [
    "DocumentAssembler",
    "DerivationEngine",
    "appendix_reference_sentence",
    "format_time_12h",
    "HtmlDocumentWriter",
    "BulletList",
    "InlineRun",
    "Paragraph",
    "render_markup",
    "tokenize",
    "BlockPlanner",
    "CallableRenderer",
    "ChromiumPDFRenderer",
    "HttpPDFRenderer",
    "PDFExporter",
    "count_pdf_pages",
    "Attachment",
    "PDFMerger",
    "decode_pdf_payload",
    "SectionResolver",
    "placeholder_name",
    "PersonLookupCache",
    "PlaceholderEngine",
    "substitute",
    "TemplateLoader",
]
