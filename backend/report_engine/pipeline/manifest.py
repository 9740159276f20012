"""
Manifest - 渲染结果的结构化页面计划描述

职责：
1. 生成可JSON序列化的页面计划（页面角色/附录字母/主体块/照片编号）
2. 写出 manifest.json

测试要点：
- test_manifest_structure: manifest结构
- test_manifest_json_serializable: 可序列化
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..models import RenderJob
    from .executor import RenderResult

SCHEMA_VERSION = "1.0"


def build_manifest(job: RenderJob, result: RenderResult) -> dict[str, Any]:
    """生成manifest"""
    plan = result.plan
    return {
        "schema_version": SCHEMA_VERSION,
        "job_id": job.job_id,
        "template_type": job.template_type,
        "job_reference": job.job_reference,
        "status": job.status.value,

        "appendices": {kind.value: letter for kind, letter in result.appendices.ordered},

        "main_content": {
            "capacity": plan.capacity if plan else None,
            "forced_split": plan.forced_split if plan else False,
            "pages": [
                {
                    "index": page.index,
                    "used_height": page.used_height,
                    "blocks": [
                        {
                            "name": b.name,
                            "height": b.height,
                            "rows": [b.row_start, b.row_end] if b.is_table else None,
                        }
                        for b in page.blocks
                    ],
                }
                for page in (plan.pages if plan else [])
            ],
        },

        "pages": result.describe_pages(),
        "page_count": result.page_count,

        "flags": job.flags,
        "errors": job.errors,

        "timestamps": {
            "created_at": job.created_at.isoformat() if job.created_at else None,
            "started_at": job.started_at.isoformat() if job.started_at else None,
            "finished_at": job.finished_at.isoformat() if job.finished_at else None,
        },
    }


def write_manifest(job: RenderJob, result: RenderResult, output_dir: Path) -> Path:
    """写出manifest.json"""
    output_dir.mkdir(parents=True, exist_ok=True)
    manifest_path = output_dir / "manifest.json"
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(build_manifest(job, result), f, ensure_ascii=False, indent=2)
    return manifest_path
