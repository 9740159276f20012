"""
PDF渲染引擎单元测试

每个模块完成后必须运行：pytest tests/unit/test_pdf_engine.py -v
"""

import json

import httpx
import pytest

from report_engine.config import RendererConfig, RuntimeConfig
from report_engine.doc_gen import (
    CallableRenderer,
    ChromiumPDFRenderer,
    HttpPDFRenderer,
    PDFExporter,
    count_pdf_pages,
)
from report_engine.interfaces import IRenderer, RenderError


class StaticRenderer(IRenderer):
    def __init__(self, data: bytes | None = None, error: Exception | None = None):
        self.data = data
        self.error = error
        self.calls = 0

    def render(self, html: str) -> bytes:
        self.calls += 1
        if self.error:
            raise self.error
        return self.data


class TestCountPages:
    """页数计算测试"""

    def test_count_pdf_pages(self, pdf_factory):
        assert count_pdf_pages(pdf_factory(3)) == 3


class TestCallableRenderer:
    """函数式渲染器测试"""

    def test_passthrough(self, pdf_factory):
        pdf = pdf_factory(1)
        assert CallableRenderer(lambda html: pdf).render("<div></div>") == pdf

    def test_callable_renderer_wraps_errors(self):
        """测试渲染异常转为 RenderError"""

        def broken(html):
            raise OSError("socket closed")

        with pytest.raises(RenderError) as exc_info:
            CallableRenderer(broken).render("<div></div>")
        assert exc_info.value.stage == "RENDER"

    def test_empty_output(self):
        """测试空输出视为失败"""
        with pytest.raises(RenderError):
            CallableRenderer(lambda html: b"").render("<div></div>")


class TestHttpRenderer:
    """HTTP渲染服务测试"""

    @pytest.fixture
    def renderer_config(self) -> RendererConfig:
        return RendererConfig(endpoint="https://render.example.com/pdf", api_key="secret")

    def test_request_payload(self, renderer_config, pdf_factory):
        """测试请求体与令牌参数"""
        seen = {}
        pdf = pdf_factory(2)

        def handler(request: httpx.Request) -> httpx.Response:
            seen["token"] = request.url.params.get("token")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=pdf)

        renderer = HttpPDFRenderer(renderer_config, transport=httpx.MockTransport(handler))
        assert renderer.render("<div>x</div>") == pdf
        assert seen["token"] == "secret"
        assert seen["body"]["html"] == "<div>x</div>"
        assert seen["body"]["options"]["format"] == "A4"
        assert seen["body"]["options"]["printBackground"] is True

    def test_http_error_status(self, renderer_config):
        """测试非2xx响应"""
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(RenderError) as exc_info:
            HttpPDFRenderer(renderer_config, transport=transport).render("<div></div>")
        assert "502" in str(exc_info.value)

    def test_timeout(self, renderer_config):
        """测试超时"""

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(RenderError):
            HttpPDFRenderer(renderer_config, transport=httpx.MockTransport(handler)).render("<div></div>")

    def test_not_pdf(self, renderer_config):
        """测试响应不是PDF"""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(RenderError):
            HttpPDFRenderer(renderer_config, transport=transport).render("<div></div>")

    def test_endpoint_required(self):
        """测试未配置地址"""
        with pytest.raises(RenderError):
            HttpPDFRenderer(RendererConfig())


class TestPDFExporter:
    """首选/兜底渲染器测试"""

    def test_preferred(self, pdf_factory):
        pdf = pdf_factory(1)
        fallback = StaticRenderer(pdf_factory(2))
        exporter = PDFExporter(StaticRenderer(pdf), fallback, RuntimeConfig())
        assert exporter.render("<div></div>") == pdf
        assert fallback.calls == 0

    def test_exporter_fallback(self, pdf_factory):
        """测试首选失败时降级"""
        pdf = pdf_factory(2)
        preferred = StaticRenderer(error=RenderError("down", stage="RENDER"))
        exporter = PDFExporter(preferred, StaticRenderer(pdf), RuntimeConfig())
        assert exporter.render("<div></div>") == pdf
        assert preferred.calls == 1

    def test_no_fallback_raises(self):
        """测试无兜底时抛出"""
        preferred = StaticRenderer(error=RenderError("down", stage="RENDER"))
        with pytest.raises(RenderError):
            PDFExporter(preferred, None, RuntimeConfig()).render("<div></div>")

    def test_build_from_config(self):
        """测试按配置构建：未配置地址时跳过http，使用chromium"""
        exporter = PDFExporter(config=RuntimeConfig())
        assert exporter.preferred is None
        assert isinstance(exporter.fallback, ChromiumPDFRenderer)

    def test_missing_chromium(self):
        """测试找不到Chromium"""
        renderer = ChromiumPDFRenderer("definitely-not-a-browser-binary", timeout=5)
        with pytest.raises(RenderError):
            renderer.render("<div></div>")
