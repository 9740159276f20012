"""
内联标记解析器 - 把章节正文中的迷你标记转换为类型化块节点

职责：
1. 断行：[BR] 与自然换行均视为断行，连续3个以上断行折叠为2个
2. 分组：连续的项目符号行（[BULLET] 或 •，标记与 [BR] 一样不区分大小写）合并为一个列表，列表内的空行被吞掉
3. 段落：非项目符号、非空行各自成段；列表外的空行直接丢弃
4. 强调：**粗体** 先于 __下划线__ 处理；未配对的标记原样保留
5. 输出：块节点序列化为HTML（<p>/<ul class="bullets">/<strong>/<u>）

说明：
- 正文视为可信HTML片段（签名 <img> 等由派生字段注入），此处不做转义

测试要点：
- test_bullet_run_with_blank_lines: 空行不打断列表
- test_open_bullet_run_flushed: 末尾未关闭的列表被输出
- test_inline_order: 粗体先于下划线
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

BREAK_MARKER_RE = re.compile(r"\[BR\]", re.IGNORECASE)
EXCESS_BREAKS_RE = re.compile(r"\n{3,}")
BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
UNDERLINE_RE = re.compile(r"__(.+?)__")

BULLET_MARKER_RE = re.compile(r"^(?:\[BULLET\]|•)", re.IGNORECASE)


@dataclass(frozen=True)
class InlineRun:
    """一段同样式的文本"""
    text: str
    bold: bool = False
    underline: bool = False


@dataclass(frozen=True)
class Paragraph:
    """段落块"""
    runs: tuple[InlineRun, ...] = ()


@dataclass(frozen=True)
class BulletList:
    """项目符号列表块（每项为一组内联文本）"""
    items: tuple[tuple[InlineRun, ...], ...] = field(default_factory=tuple)


Block = Paragraph | BulletList


def normalize_breaks(text: str) -> str:
    """断行标记与自然换行统一为 \\n，并折叠多余断行"""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = BREAK_MARKER_RE.sub("\n", text)
    return EXCESS_BREAKS_RE.sub("\n\n", text)


def _strip_bullet(line: str) -> str | None:
    """若为项目符号行返回去掉标记后的文本，否则返回 None"""
    m = BULLET_MARKER_RE.match(line)
    return line[m.end():].strip() if m else None


def parse_inline(text: str) -> tuple[InlineRun, ...]:
    """解析行内强调（先粗体，后下划线）"""
    runs: list[InlineRun] = []
    for segment, bold in _split(text, BOLD_RE):
        for piece, underline in _split(segment, UNDERLINE_RE):
            runs.append(InlineRun(piece, bold=bold, underline=underline))
    return tuple(runs)


def _split(text: str, pattern: re.Pattern[str]) -> list[tuple[str, bool]]:
    """按强调正则切分为 (文本, 是否命中) 序列，丢弃空片段"""
    parts: list[tuple[str, bool]] = []
    pos = 0
    for m in pattern.finditer(text):
        if m.start() > pos:
            parts.append((text[pos:m.start()], False))
        parts.append((m.group(1), True))
        pos = m.end()
    if pos < len(text):
        parts.append((text[pos:], False))
    return parts


def tokenize(text: str) -> list[Block]:
    """把正文解析为块节点序列"""
    blocks: list[Block] = []
    bullets: list[tuple[InlineRun, ...]] = []

    def flush() -> None:
        if bullets:
            blocks.append(BulletList(tuple(bullets)))
            bullets.clear()

    for raw in normalize_breaks(text or "").split("\n"):
        line = raw.strip()
        item = _strip_bullet(line)
        if item is not None:
            bullets.append(parse_inline(item))
        elif not line:
            # 列表内空行吞掉；列表外空行丢弃
            continue
        else:
            flush()
            blocks.append(Paragraph(parse_inline(line)))

    flush()
    return blocks


def runs_to_html(runs: tuple[InlineRun, ...]) -> str:
    out = []
    for run in runs:
        text = run.text
        if run.underline:
            text = f"<u>{text}</u>"
        if run.bold:
            text = f"<strong>{text}</strong>"
        out.append(text)
    return "".join(out)


def to_html(blocks: list[Block]) -> str:
    """块节点序列化为HTML"""
    parts = []
    for block in blocks:
        if isinstance(block, BulletList):
            items = "".join(f"<li>{runs_to_html(item)}</li>" for item in block.items)
            parts.append(f'<ul class="bullets">{items}</ul>')
        else:
            parts.append(f"<p>{runs_to_html(block.runs)}</p>")
    return "\n".join(parts)


def render_markup(text: str) -> str:
    """正文 -> HTML"""
    return to_html(tokenize(text))
