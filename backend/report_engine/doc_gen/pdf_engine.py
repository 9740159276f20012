"""
PDF渲染引擎 - 最终HTML转PDF（外部渲染后端适配器）

职责：
1. 调用外部渲染服务（HTTP，Browserless 风格接口）
2. 本地 headless Chromium 兜底
3. 首选/兜底引擎切换；失败统一抛出 RenderError
4. PDF页数计算

依赖：
- httpx: HTTP渲染服务
- chromium: 本地兜底方案
- PyPDF2: 页数计算

测试要点：
- test_callable_renderer_wraps_errors: 渲染异常转为 RenderError
- test_exporter_fallback: 首选失败时降级
- test_count_pdf_pages: PDF页数计算
"""

from __future__ import annotations

import io
import logging
import subprocess
import tempfile
from collections.abc import Callable
from pathlib import Path

import httpx
from PyPDF2 import PdfReader

from ..config import RendererConfig, RuntimeConfig, get_config
from ..interfaces import IRenderer, RenderError

logger = logging.getLogger(__name__)

RENDER_STAGE = "RENDER"


def count_pdf_pages(data: bytes) -> int:
    """计算PDF页数"""
    reader = PdfReader(io.BytesIO(data))
    return len(reader.pages)


class CallableRenderer(IRenderer):
    """把普通函数 (html) -> bytes 包装为渲染器"""

    def __init__(self, func: Callable[[str], bytes]):
        self.func = func

    def render(self, html: str) -> bytes:
        try:
            data = self.func(html)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"渲染失败: {e}", stage=RENDER_STAGE) from e
        if not data:
            raise RenderError("渲染器返回空内容", stage=RENDER_STAGE)
        return data


class HttpPDFRenderer(IRenderer):
    """HTTP渲染服务（POST html，返回PDF字节）"""

    def __init__(
        self,
        config: RendererConfig,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not config.endpoint:
            raise RenderError("未配置渲染服务地址", stage=RENDER_STAGE)
        self.endpoint = config.endpoint
        self.api_key = config.api_key
        self.timeout = timeout
        self.transport = transport

    def render(self, html: str) -> bytes:
        payload = {
            "html": html,
            "options": {
                "format": "A4",
                "printBackground": True,
                "displayHeaderFooter": False,
                "margin": {"top": "0", "bottom": "0", "left": "0", "right": "0"},
            },
        }
        params = {"token": self.api_key} if self.api_key else None
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(
                    self.endpoint,
                    params=params,
                    json=payload,
                    headers={"Cache-Control": "no-cache"},
                )
                resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise RenderError(f"渲染服务超时({self.timeout}s)", stage=RENDER_STAGE) from e
        except httpx.HTTPStatusError as e:
            raise RenderError(
                f"渲染服务返回 {e.response.status_code}: {e.response.text[:200]}",
                stage=RENDER_STAGE,
            ) from e
        except httpx.HTTPError as e:
            raise RenderError(f"渲染服务请求失败: {e}", stage=RENDER_STAGE) from e

        if not resp.content.startswith(b"%PDF"):
            raise RenderError("渲染服务未返回PDF", stage=RENDER_STAGE)
        return resp.content


class ChromiumPDFRenderer(IRenderer):
    """本地 headless Chromium 渲染"""

    def __init__(self, executable: str = "chromium", timeout: int = 30):
        self.executable = executable
        self.timeout = timeout

    def render(self, html: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="report_engine_") as tmp:
            html_path = Path(tmp) / "report.html"
            pdf_path = Path(tmp) / "report.pdf"
            html_path.write_text(html, encoding="utf-8")

            cmd = [
                self.executable,
                "--headless",
                "--disable-gpu",
                "--no-sandbox",
                "--no-pdf-header-footer",
                f"--print-to-pdf={pdf_path}",
                html_path.as_uri(),
            ]
            try:
                subprocess.run(cmd, capture_output=True, timeout=self.timeout, check=True)
            except FileNotFoundError as e:
                raise RenderError(f"未找到 Chromium: {self.executable}", stage=RENDER_STAGE) from e
            except subprocess.TimeoutExpired as e:
                raise RenderError(f"Chromium 渲染超时({self.timeout}s)", stage=RENDER_STAGE) from e
            except subprocess.CalledProcessError as e:
                raise RenderError(f"Chromium 渲染失败: {e.stderr!r}", stage=RENDER_STAGE) from e

            if not pdf_path.exists():
                raise RenderError("Chromium 未生成PDF", stage=RENDER_STAGE)
            return pdf_path.read_bytes()


class PDFExporter(IRenderer):
    """首选 + 兜底渲染器"""

    def __init__(
        self,
        preferred: IRenderer | None = None,
        fallback: IRenderer | None = None,
        config: RuntimeConfig | None = None,
    ):
        self.config = config or get_config()
        self.preferred = preferred or self._build(self.config.renderer.preferred)
        if fallback is not None:
            self.fallback = fallback
        elif preferred is None and self.config.renderer.fallback:
            self.fallback = self._build(self.config.renderer.fallback)
        else:
            self.fallback = None

    def render(self, html: str) -> bytes:
        if self.preferred is not None:
            try:
                return self.preferred.render(html)
            except RenderError as e:
                if self.fallback is None:
                    raise
                logger.warning(f"首选渲染器失败，降级: {e}")

        if self.fallback is None:
            raise RenderError("无可用的PDF渲染引擎", stage=RENDER_STAGE)
        return self.fallback.render(html)

    def _build(self, name: str) -> IRenderer | None:
        renderer_cfg = self.config.renderer
        timeout = self.config.timeouts.render_sec
        if name == "http":
            if not renderer_cfg.endpoint:
                logger.warning("未配置渲染服务地址，跳过 http 渲染器")
                return None
            return HttpPDFRenderer(renderer_cfg, timeout=timeout)
        if name == "chromium":
            return ChromiumPDFRenderer(renderer_cfg.chromium_path, timeout=timeout)
        raise RenderError(f"未知渲染引擎: {name}", stage=RENDER_STAGE)
