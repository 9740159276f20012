"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(clearance_record, blank_pdf):
        assert clearance_record.has_air_monitoring
"""

from __future__ import annotations

import io
import tempfile
import threading
import time
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Generator

import pytest
from PyPDF2 import PdfWriter

from report_engine.config import ContentLibrary, RuntimeConfig, load_content
from report_engine.interfaces import IContentStore, IPersonDirectory
from report_engine.models import Item, JobRecord, PersonRecord, Project, ReportKind, Section
from report_engine.pipeline import PipelineExecutor

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


# ============================================================================
# PDF 工具
# ============================================================================

def make_pdf(pages: int, width: float = 595, height: float = 842) -> bytes:
    """生成指定页数的空白PDF"""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=width, height=height)
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


def count_roles(html: str) -> int:
    """HTML中页面根节点数量（每页一个 data-role）"""
    return html.count('data-role="')


class PageCountingRenderer:
    """假渲染器：按HTML页面数返回空白PDF，并记录调用"""

    def __init__(self):
        self.calls: list[str] = []

    def __call__(self, html: str) -> bytes:
        self.calls.append(html)
        return make_pdf(count_roles(html))


# ============================================================================
# 外部协作方
# ============================================================================

class FakeDirectory(IPersonDirectory):
    """人员目录（记录查询次数）"""

    def __init__(self, people: dict[str, PersonRecord] | None = None, delay: float = 0.0):
        self.people = people or {}
        self.delay = delay
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def lookup(self, identifier: str) -> PersonRecord | None:
        with self._lock:
            self.calls.append(identifier)
        if self.delay:
            time.sleep(self.delay)
        return self.people.get(identifier)


class FakeStore(IContentStore):
    """内容库"""

    def __init__(
        self,
        sections: list[Section] | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ):
        self.sections = sections
        self.delay = delay
        self.error = error
        self.calls: list[str] = []

    def get_sections(self, template_type: str) -> list[Section] | None:
        self.calls.append(template_type)
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.sections


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def runtime_config(temp_dir: Path) -> RuntimeConfig:
    """运行期配置（存储目录指向临时目录）"""
    config = RuntimeConfig(storage_dir=temp_dir / "storage")
    config.timeouts.content_fetch_sec = 0.2
    return config


@pytest.fixture(scope="session")
def library() -> ContentLibrary:
    """默认内容库（会话级别缓存）"""
    return load_content()


# ============================================================================
# 数据模型 Fixtures
# ============================================================================

@pytest.fixture
def pdf_factory() -> Callable[..., bytes]:
    """空白PDF工厂"""
    return make_pdf


@pytest.fixture
def store_factory() -> Callable[..., FakeStore]:
    return FakeStore


@pytest.fixture
def directory_factory() -> Callable[..., FakeDirectory]:
    return FakeDirectory


@pytest.fixture
def laa() -> PersonRecord:
    return PersonRecord(
        name="Jordan Smith",
        licence_number="AA00123",
        licence_state="ACT",
        signature_image="data:image/png;base64,iVBORw0KGgo=",
    )


@pytest.fixture
def directory(laa: PersonRecord) -> FakeDirectory:
    return FakeDirectory({"Jordan Smith": laa})


@pytest.fixture
def make_items() -> Callable[..., list[Item]]:
    """生成条目：前 photos 个带照片"""

    def _make(count: int, photos: int = 0) -> list[Item]:
        return [
            Item(
                item_number=str(i + 1),
                location_description=f"Room {i + 1}",
                material_description=f"Fibre cement sheet {i + 1}",
                asbestos_type="non-friable",
                photograph=PNG_BYTES if i < photos else None,
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def project() -> Project:
    return Project(
        project_id="LDJ01234",
        name="12 Example Street, Braddon",
        address="12 Example Street, Braddon ACT 2612",
        client_name="Acme Property Group",
    )


@pytest.fixture
def clearance_record(make_items, project: Project) -> JobRecord:
    """无平面图、有空气监测、5个条目（3张照片）"""
    return JobRecord(
        kind=ReportKind.CLEARANCE,
        subtype="Non-friable",
        items=make_items(5, photos=3),
        has_site_plan=False,
        has_air_monitoring=True,
        exclusions="Roof cavity was not accessible at the time of inspection.",
        responsible_person="Jordan Smith",
        project=project,
        asbestos_removalist="Safe Removals Pty Ltd",
        inspection_date=date(2024, 3, 5),
        inspection_time="14:30",
        job_reference="LDJ01234-CLR",
    )


@pytest.fixture
def assessment_record(make_items, project: Project) -> JobRecord:
    return JobRecord(
        kind=ReportKind.ASSESSMENT,
        subtype="Asbestos",
        items=make_items(4, photos=4),
        discussion="Two materials were confirmed to contain chrysotile asbestos.",
        responsible_person="Jordan Smith",
        project=project,
        inspection_date=date(2024, 6, 1),
    )


# ============================================================================
# 流水线 Fixtures
# ============================================================================

@pytest.fixture
def renderer() -> PageCountingRenderer:
    return PageCountingRenderer()


@pytest.fixture
def executor(runtime_config, library, directory, renderer) -> PipelineExecutor:
    return PipelineExecutor(
        person_directory=directory,
        renderer=renderer,
        config=runtime_config,
        library=library,
    )
