"""
PDF合并 - 把外部提供的PDF（空气监测报告、平面图）合并进主文档

职责：
1. 附件可为字节、base64 或带 data-URI 前缀的 base64
2. 默认按参数顺序追加到末尾；指定页码时插入到该页之后
3. 合并页数 = 各输入页数之和
4. 任一附件损坏：记录日志并原样返回主文档（不抛出）

依赖：
- PyPDF2: PDF读写

测试要点：
- test_merge_page_count: 合并页数之和
- test_merge_insert_after_page: 指定位置插入
- test_malformed_attachment_returns_primary: 损坏附件降级
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass

from PyPDF2 import PdfReader, PdfWriter

from ..interfaces import IPDFMerger, MergeError

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    """外部提供的PDF附件"""
    data: bytes | str
    # 1起页码；None 表示追加到末尾
    insert_after_page: int | None = None
    label: str = ""


def decode_pdf_payload(data: bytes | str) -> bytes:
    """解码附件负载（原始字节 / base64 / data-URI）"""
    if isinstance(data, bytes):
        if data.lstrip().startswith(b"%PDF"):
            return data
        text = data.decode("ascii", errors="strict")
    else:
        text = data
    text = text.strip()
    if text.startswith("data:"):
        _, _, text = text.partition(",")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MergeError(f"附件不是合法的base64: {e}") from e


class PDFMerger(IPDFMerger):
    """PDF合并器实现"""

    def merge(self, primary: bytes, attachments: list[Attachment | bytes | str]) -> bytes:
        """合并附件；失败时返回主文档"""
        if not attachments:
            return primary
        try:
            return self._merge(primary, [_as_attachment(a) for a in attachments])
        except Exception as e:
            logger.exception(f"PDF合并失败，返回未合并的主文档: {e}")
            return primary

    def _merge(self, primary: bytes, attachments: list[Attachment]) -> bytes:
        primary_reader = PdfReader(io.BytesIO(primary))
        primary_pages = list(primary_reader.pages)

        inserts: dict[int, list[PdfReader]] = {}
        appended: list[PdfReader] = []
        for att in attachments:
            try:
                reader = PdfReader(io.BytesIO(decode_pdf_payload(att.data)))
                page_count = len(reader.pages)
            except MergeError:
                raise
            except Exception as e:
                raise MergeError(f"附件损坏: {att.label or '未命名'}: {e}") from e
            if page_count == 0:
                raise MergeError(f"附件无页面: {att.label or '未命名'}")

            position = att.insert_after_page
            if position is not None and 0 <= position < len(primary_pages):
                inserts.setdefault(position, []).append(reader)
            else:
                appended.append(reader)

        writer = PdfWriter()
        for reader in inserts.get(0, []):
            _copy(writer, reader)
        for number, page in enumerate(primary_pages, start=1):
            writer.add_page(page)
            for reader in inserts.get(number, []):
                _copy(writer, reader)
        for reader in appended:
            _copy(writer, reader)

        out = io.BytesIO()
        writer.write(out)
        logger.info(
            f"PDF合并完成: 主文档 {len(primary_pages)} 页 + 附件 {len(attachments)} 个, "
            f"共 {len(writer.pages)} 页"
        )
        return out.getvalue()


def _copy(writer: PdfWriter, reader: PdfReader) -> None:
    for page in reader.pages:
        writer.add_page(page)


def _as_attachment(value: Attachment | bytes | str) -> Attachment:
    return value if isinstance(value, Attachment) else Attachment(data=value)
