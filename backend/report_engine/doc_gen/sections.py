"""
章节解析器 - 按报告类型与任务记录解析出有序章节

职责：
1. 在超时保护下读取内容库（None/异常/超时 => 使用默认内容，不致命）
   读取在解析器持有的线程池上执行；挂起的读取线程不会被中断，
   进程退出时仍会等待它返回，内容库客户端应自带连接超时
2. 内容库章节按键名或别名匹配；缺失或空正文 => 默认正文 => 通用措辞
3. 条件章节：标记未置位时解析为空串（保留占位槽位）
4. 任务自由文本追加在标准正文之后，从不替换

依赖：
- IContentStore: 外部内容库
- ContentLibrary: default_content.yaml

测试要点：
- test_store_timeout_falls_back: 内容库挂起时降级
- test_store_pool_reused: 多次读取共用线程池
- test_missing_section_uses_default: 缺失章节使用默认正文
- test_conditional_section_empty: 条件章节未置位为空
- test_exclusions_appended: 自由文本追加
"""

from __future__ import annotations

import html
import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

from ..config import ContentLibrary, ReportTypeContent, RuntimeConfig, get_config, load_content
from ..interfaces import ContentFetchError, IContentStore, ISectionResolver
from ..models import JobRecord, Section

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def placeholder_name(section_key: str) -> str:
    """章节键 -> 占位符名（airMonitoringResults -> AIR_MONITORING_RESULTS）"""
    return _CAMEL_BOUNDARY_RE.sub("_", section_key).upper()


class SectionResolver(ISectionResolver):
    """章节解析器实现"""

    def __init__(
        self,
        store: IContentStore | None = None,
        library: ContentLibrary | None = None,
        config: RuntimeConfig | None = None,
    ):
        self.config = config or get_config()
        self.store = store
        self.library = library or load_content(self.config.content_path)
        self.timeout = self.config.timeouts.content_fetch_sec
        self._pool: ThreadPoolExecutor | None = None
        self._pool_lock = threading.Lock()

    def report_type_for(self, record: JobRecord) -> ReportTypeContent:
        return self.library.get_report_type(record.template_type, record.kind.value)

    def resolve(self, record: JobRecord, flags: list[str] | None = None) -> dict[str, Section]:
        """解析有序章节（标准章节在前，条件章节在后）"""
        flags = flags if flags is not None else []
        report_type = self.report_type_for(record)
        if not record.template_type:
            logger.warning(f"未知报告子类型 {record.subtype}，按 {record.kind.value} 兜底")
            _flag(flags, f"未知子类型:{record.subtype}")

        stored: list[Section] | None = None
        try:
            stored = self._fetch(record.template_type or record.kind.value)
        except ContentFetchError as e:
            logger.warning(f"内容库读取失败，使用默认内容: {e}")
            _flag(flags, "内容库不可用")
        if stored is None:
            _flag(flags, "使用默认内容")
            stored = []

        by_key = {s.key: s for s in stored if s is not None}
        resolved: dict[str, Section] = {}

        for key, default in report_type.sections.items():
            candidate = by_key.get(key)
            if candidate is None:
                candidate = next((by_key[a] for a in default.aliases if a in by_key), None)

            if candidate is not None and not candidate.is_empty:
                section = Section(
                    key=key,
                    title=candidate.title or default.title,
                    body=candidate.body,
                    source="store",
                )
            elif default.body.strip():
                if by_key:
                    _flag(flags, f"章节缺省:{key}")
                section = Section(key=key, title=default.title, body=default.body, source="default")
            else:
                logger.warning(f"章节 {key} 无默认正文，使用通用措辞")
                _flag(flags, f"章节缺省:{key}")
                section = Section(
                    key=key,
                    title=default.title,
                    body=self.library.generic_fallback_body,
                    source="fallback",
                )
            resolved[key] = section

        for key, conditional in report_type.conditional_sections.items():
            present = bool(getattr(record, conditional.flag, False))
            override = by_key.get(key)
            body = ""
            if present:
                body = override.body if override and not override.is_empty else conditional.body
            resolved[key] = Section(key=key, title=conditional.title, body=body, source="conditional")

        for key, field_name in report_type.appends.items():
            extra = (getattr(record, field_name, None) or "").strip()
            if not extra or key not in resolved:
                continue
            base = resolved[key]
            resolved[key] = base.model_copy(
                update={"body": f"{base.body.rstrip()}\n\n{html.escape(extra)}"}
            )

        return resolved

    def _fetch(self, template_type: str) -> list[Section] | None:
        """在超时保护下读取内容库"""
        if self.store is None:
            return None

        future = self._get_pool().submit(self.store.get_sections, template_type)
        try:
            return future.result(timeout=self.timeout)
        except FuturesTimeoutError as e:
            # 仍在排队的读取直接取消；已挂起的读取留在池内线程上
            future.cancel()
            raise ContentFetchError(f"内容库超时({self.timeout}s): {template_type}") from e
        except Exception as e:
            raise ContentFetchError(f"{template_type}: {e}") from e

    def _get_pool(self) -> ThreadPoolExecutor:
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.config.concurrency.max_workers,
                    thread_name_prefix="content-store",
                )
            return self._pool

    def shutdown(self, wait: bool = False) -> None:
        """关闭内容库读取线程池（之后的读取会重新建池）"""
        with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=wait, cancel_futures=True)


def _flag(flags: list[str], flag: str) -> None:
    if flag not in flags:
        flags.append(flag)
