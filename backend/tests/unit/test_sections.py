"""
章节解析单元测试

每个模块完成后必须运行：pytest tests/unit/test_sections.py -v
"""

import pytest

from report_engine.config import ContentLibrary, ReportTypeContent, SectionDefault
from report_engine.doc_gen.sections import SectionResolver, placeholder_name
from report_engine.models import JobRecord, ReportKind, Section


class TestPlaceholderName:
    """章节键转占位符名"""

    def test_camel_case(self):
        assert placeholder_name("airMonitoringResults") == "AIR_MONITORING_RESULTS"
        assert placeholder_name("sitePlanReference") == "SITE_PLAN_REFERENCE"


class TestStoreFallback:
    """内容库降级测试"""

    def test_no_store_uses_defaults(self, library, runtime_config, clearance_record):
        """测试未注入内容库时使用默认内容"""
        flags: list[str] = []
        sections = SectionResolver(None, library, runtime_config).resolve(clearance_record, flags)

        assert sections["inspectionDetails"].source == "default"
        assert sections["inspectionDetails"].title == "INSPECTION DETAILS"
        assert "使用默认内容" in flags

    def test_store_none(self, library, runtime_config, clearance_record, store_factory):
        """测试内容库返回None"""
        store = store_factory(sections=None)
        sections = SectionResolver(store, library, runtime_config).resolve(clearance_record)
        assert sections["signOff"].source == "default"
        assert store.calls == ["asbestosClearanceNonFriable"]

    def test_store_timeout_falls_back(self, library, runtime_config, clearance_record, store_factory):
        """测试内容库挂起时在超时内降级"""
        store = store_factory(sections=[Section(key="inspectionDetails", body="late")], delay=1.0)
        flags: list[str] = []
        sections = SectionResolver(store, library, runtime_config).resolve(clearance_record, flags)

        assert sections["inspectionDetails"].source == "default"
        assert "内容库不可用" in flags
        assert "使用默认内容" in flags

    def test_store_pool_reused(self, library, runtime_config, clearance_record, store_factory):
        """测试多次读取共用同一线程池，关闭后重新建池"""
        store = store_factory(sections=[])
        resolver = SectionResolver(store, library, runtime_config)

        resolver.resolve(clearance_record)
        pool = resolver._pool
        resolver.resolve(clearance_record)
        assert resolver._pool is pool
        assert len(store.calls) == 2

        resolver.shutdown(wait=True)
        assert resolver._pool is None
        resolver.resolve(clearance_record)
        assert resolver._pool is not None
        assert resolver._pool is not pool
        resolver.shutdown(wait=True)

    def test_store_error_falls_back(self, library, runtime_config, clearance_record, store_factory):
        """测试内容库异常不致命"""
        store = store_factory(error=ConnectionError("refused"))
        flags: list[str] = []
        sections = SectionResolver(store, library, runtime_config).resolve(clearance_record, flags)

        assert sections["clearanceCertification"].source == "default"
        assert "内容库不可用" in flags


class TestSectionMatching:
    """章节匹配测试"""

    def test_store_section_used(self, library, runtime_config, clearance_record, store_factory):
        """测试内容库章节优先"""
        store = store_factory(sections=[Section(key="inspectionDetails", title="DETAILS", body="Custom body")])
        sections = SectionResolver(store, library, runtime_config).resolve(clearance_record)

        assert sections["inspectionDetails"].body == "Custom body"
        assert sections["inspectionDetails"].title == "DETAILS"
        assert sections["inspectionDetails"].source == "store"

    def test_alias_match(self, library, runtime_config, clearance_record, store_factory):
        """测试按旧键名匹配"""
        store = store_factory(
            sections=[Section(key="nonFriableClearanceCertificateLimitations", body="Stored limits")]
        )
        sections = SectionResolver(store, library, runtime_config).resolve(clearance_record)
        assert sections["limitations"].body == "Stored limits"

    def test_missing_section_uses_default(self, library, runtime_config, clearance_record, store_factory):
        """测试缺失章节使用默认正文并记录"""
        store = store_factory(sections=[Section(key="inspectionDetails", body="Custom body")])
        flags: list[str] = []
        sections = SectionResolver(store, library, runtime_config).resolve(clearance_record, flags)

        assert sections["signOff"].source == "default"
        assert "章节缺省:signOff" in flags

    def test_empty_store_body_uses_default(self, library, runtime_config, clearance_record, store_factory):
        """测试空正文视同缺失"""
        store = store_factory(sections=[Section(key="inspectionDetails", body="   ")])
        sections = SectionResolver(store, library, runtime_config).resolve(clearance_record)
        assert sections["inspectionDetails"].source == "default"

    def test_generic_fallback(self, runtime_config):
        """测试内容库与默认值都缺失时使用通用措辞"""
        library = ContentLibrary(
            schema_version="test",
            generic_fallback_body="Not configured.",
            report_types={
                "asbestosClearanceNonFriable": ReportTypeContent(
                    kind="Clearance",
                    title="T",
                    sections={"inspectionDetails": SectionDefault(title="DETAILS")},
                )
            },
        )
        flags: list[str] = []
        sections = SectionResolver(None, library, runtime_config).resolve(JobRecord(), flags)

        assert sections["inspectionDetails"].body == "Not configured."
        assert sections["inspectionDetails"].source == "fallback"
        assert "章节缺省:inspectionDetails" in flags

    def test_unknown_subtype_falls_back_by_kind(self, library, runtime_config):
        """测试未知子类型按种类兜底"""
        record = JobRecord(kind=ReportKind.ASSESSMENT, subtype="Mould")
        flags: list[str] = []
        sections = SectionResolver(None, library, runtime_config).resolve(record, flags)

        assert "introduction" in sections
        assert "未知子类型:Mould" in flags


class TestConditionalSections:
    """条件章节测试"""

    def test_present_flag(self, library, runtime_config, clearance_record):
        """测试标记置位时使用条件正文"""
        sections = SectionResolver(None, library, runtime_config).resolve(clearance_record)
        assert "{AIR_MONITORING_APPENDIX}" in sections["airMonitoringResults"].body
        assert sections["airMonitoringResults"].source == "conditional"

    def test_conditional_section_empty(self, library, runtime_config, clearance_record):
        """测试标记未置位时为空串（槽位保留）"""
        sections = SectionResolver(None, library, runtime_config).resolve(clearance_record)
        assert "sitePlanReference" in sections
        assert sections["sitePlanReference"].body == ""

    def test_store_overrides_conditional(self, library, runtime_config, clearance_record, store_factory):
        """测试内容库可覆盖条件正文"""
        store = store_factory(sections=[Section(key="airMonitoringResults", body="Stored AM text")])
        sections = SectionResolver(store, library, runtime_config).resolve(clearance_record)
        assert sections["airMonitoringResults"].body == "Stored AM text"

    def test_store_cannot_force_absent_conditional(
        self, library, runtime_config, clearance_record, store_factory
    ):
        """测试标记未置位时内容库正文也不生效"""
        store = store_factory(sections=[Section(key="sitePlanReference", body="Stored plan text")])
        sections = SectionResolver(store, library, runtime_config).resolve(clearance_record)
        assert sections["sitePlanReference"].body == ""


class TestAppends:
    """自由文本追加测试"""

    def test_exclusions_appended(self, library, runtime_config, clearance_record):
        """测试排除说明追加在标准正文之后"""
        sections = SectionResolver(None, library, runtime_config).resolve(clearance_record)
        body = sections["inspectionExclusions"].body
        assert body.startswith("This clearance certificate is specific")
        assert body.endswith("Roof cavity was not accessible at the time of inspection.")

    def test_append_escaped(self, library, runtime_config):
        """测试追加文本HTML转义"""
        record = JobRecord(exclusions="<b>not</b> inspected")
        sections = SectionResolver(None, library, runtime_config).resolve(record)
        assert "&lt;b&gt;not&lt;/b&gt; inspected" in sections["inspectionExclusions"].body

    def test_discussion_appended(self, library, runtime_config, assessment_record):
        """测试评估讨论追加"""
        sections = SectionResolver(None, library, runtime_config).resolve(assessment_record)
        assert sections["discussion"].body.endswith("chrysotile asbestos.")

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank_append_ignored(self, library, runtime_config, text):
        """测试空白追加文本不改变正文"""
        record = JobRecord(exclusions=text)
        sections = SectionResolver(None, library, runtime_config).resolve(record)
        assert sections["inspectionExclusions"].body == (
            library.report_types["asbestosClearanceNonFriable"].sections["inspectionExclusions"].body
        )
