"""
运行期配置 - 读取 config/runtime.yaml

职责：
- 加载分页常量/超时/渲染后端/并发等运行参数
- 提供环境变量覆盖机制（REPORTGEN_ 前缀）
- 类型安全的配置访问

说明：
- 分页高度常量为经验值，均可通过YAML或环境变量调整
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class PaginationConfig(BaseModel):
    """分页配置（单位：px，与模板 .page 高度同一量纲）"""

    page_capacity: int = 1000
    table_base_height: int = 60
    table_row_height: int = 35
    # 固定块高度，合计 650（含表头基高）
    block_heights: dict[str, int] = Field(
        default_factory=lambda: {
            "InspectionDetails": 220,
            "InspectionExclusions": 120,
            "ClearanceCertification": 150,
            "SignOff": 100,
            "Introduction": 200,
            "SurveyFindings": 180,
        }
    )
    default_block_height: int = 120

    def height_of(self, block_name: str) -> int:
        return self.block_heights.get(block_name, self.default_block_height)


class PhotoConfig(BaseModel):
    """照片附录配置"""

    photos_per_page: int = 2


class TimeoutConfig(BaseModel):
    """超时配置"""

    content_fetch_sec: float = 10.0
    render_sec: int = 30


class RendererConfig(BaseModel):
    """渲染后端配置"""

    preferred: str = "http"
    fallback: str | None = "chromium"
    endpoint: str = ""
    api_key: str = ""
    chromium_path: str = "chromium"


class ConcurrencyConfig(BaseModel):
    """并发配置"""

    max_workers: int = 2


class DefaultsConfig(BaseModel):
    """缺省值（人员目录未命中等）"""

    licence_number: str = "AA00031"
    licence_state: str = "ACT"
    company_name: str = "Lancaster and Dickenson Consulting"


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "report_engine.log"


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    # 基础路径
    storage_dir: Path = Path("storage")
    content_path: Path | None = None
    template_dir: Path | None = None

    # 各子配置
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    photos: PhotoConfig = Field(default_factory=PhotoConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    renderer: RendererConfig = Field(default_factory=RendererConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "REPORTGEN_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        config = cls(
            pagination=PaginationConfig(**cls._extract(runtime_opts, "pagination")),
            photos=PhotoConfig(**cls._extract(runtime_opts, "photos")),
            timeouts=TimeoutConfig(**cls._extract(runtime_opts, "timeouts")),
            renderer=RendererConfig(**cls._extract(runtime_opts, "renderer")),
            concurrency=ConcurrencyConfig(**cls._extract(runtime_opts, "concurrency")),
            defaults=DefaultsConfig(**cls._extract(runtime_opts, "defaults")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
        )

        paths = data.get("paths", {})
        if paths.get("content_path"):
            config.content_path = cls._resolve(path.parent, paths["content_path"])
        if paths.get("template_dir"):
            config.template_dir = cls._resolve(path.parent, paths["template_dir"])
        if paths.get("storage_dir"):
            config.storage_dir = cls._resolve(path.parent, paths["storage_dir"])
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置（叶子可为标量或 {default: ...}）"""
        section = data.get(key, {}) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            else:
                result[k] = v
        return result

    @staticmethod
    def _resolve(base_dir: Path, value: str) -> Path:
        """相对路径基于配置文件所在目录解析"""
        p = Path(value)
        return p if p.is_absolute() else (base_dir / p).resolve()

    def get_job_dir(self, job_id: str) -> Path:
        """获取渲染任务目录"""
        return self.storage_dir / "jobs" / job_id


# 全局配置实例
_config: RuntimeConfig | None = None

DEFAULT_CONFIG_PATH = Path("config/runtime.yaml")


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    _config = RuntimeConfig.from_yaml(yaml_path or DEFAULT_CONFIG_PATH)
    return _config


def setup_logging(config: RuntimeConfig | None = None) -> None:
    """按 LoggingConfig 初始化根日志"""
    config = config or get_config()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.logging.log_to_file:
        config.storage_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(config.storage_dir / config.logging.log_file, encoding="utf-8")
        )
    logging.basicConfig(
        level=getattr(logging, config.logging.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=handlers,
        force=True,
    )
