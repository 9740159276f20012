"""
占位符替换引擎 - 把章节正文中的占位符替换为计算值，并转换内联标记

职责：
1. [NAME] 与 {NAME} 为同义占位符；未解析的占位符原样保留（便于排查）
2. [BR] / [BULLET] 为保留标记，永不作为占位符
3. 负责人目录查询按标识缓存（每次渲染一个缓存实例，渲染结束时清空）

依赖：
- IPersonDirectory: 外部人员目录

测试要点：
- test_bracket_and_brace_synonyms: 两种占位符等价
- test_unresolved_left_verbatim: 未解析占位符保留
- test_substitution_idempotent: 已替换文本再次替换不变
- test_person_lookup_memoized: 同一标识只查询一次
- test_empty_value_leaves_single_space: 空值不留双空格
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from ..interfaces import IPersonDirectory
from ..models import PersonRecord
from .markup import render_markup

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\[([A-Z][A-Z0-9_]*)\]|\{([A-Z][A-Z0-9_]*)\}")

RESERVED_TOKENS = frozenset({"BR", "BULLET"})

# 空条件值替换后留下的连续空格
SPACE_RUN_RE = re.compile(r"[ \t]{2,}")


def substitute(text: str, values: Mapping[str, str]) -> str:
    """单遍替换占位符（替换结果不再二次扫描）"""

    def _replace(m: re.Match[str]) -> str:
        name = m.group(1) or m.group(2)
        if name in RESERVED_TOKENS:
            return m.group(0)
        value = values.get(name)
        if value is None:
            return m.group(0)
        return str(value)

    return PLACEHOLDER_RE.sub(_replace, text or "")


def find_placeholders(text: str) -> list[str]:
    """文本中出现的占位符名（不含保留标记）"""
    names = []
    for m in PLACEHOLDER_RE.finditer(text or ""):
        name = m.group(1) or m.group(2)
        if name not in RESERVED_TOKENS and name not in names:
            names.append(name)
    return names


class PersonLookupCache:
    """负责人目录查询缓存（按标识记忆，包括未命中）"""

    def __init__(self, directory: IPersonDirectory | None = None):
        self._directory = directory
        self._entries: dict[str, PersonRecord | None] = {}
        self.lookups = 0

    def get(self, identifier: str | None) -> PersonRecord | None:
        key = (identifier or "").strip()
        if not key or self._directory is None:
            return None
        if key in self._entries:
            return self._entries[key]

        self.lookups += 1
        try:
            person = self._directory.lookup(key)
        except Exception as e:
            logger.warning(f"人员目录查询失败: {key}: {e}")
            person = None
        if person is None:
            logger.warning(f"人员目录未找到: {key}")
        self._entries[key] = person
        return person

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identifier: str) -> bool:
        return identifier.strip() in self._entries


class PlaceholderEngine:
    """占位符替换引擎（持有本次渲染的人员缓存）"""

    def __init__(self, cache: PersonLookupCache | None = None):
        self.cache = cache if cache is not None else PersonLookupCache()

    def substitute(self, text: str, values: Mapping[str, str]) -> str:
        return substitute(text, values)

    def render(self, text: str, values: Mapping[str, str]) -> str:
        """替换占位符后转换内联标记为HTML"""
        return render_markup(SPACE_RUN_RE.sub(" ", self.substitute(text, values)))

    def resolve_person(self, identifier: str | None) -> PersonRecord | None:
        return self.cache.get(identifier)

    def reset_cache(self) -> None:
        """清空人员缓存（每次顶层渲染结束调用一次）"""
        self.cache.clear()

    def unresolved(self, text: str, values: Mapping[str, str]) -> list[str]:
        """替换后仍残留的占位符"""
        return [name for name in find_placeholders(text) if name not in values]
