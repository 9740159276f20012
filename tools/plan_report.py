"""
由任务记录JSON生成页面计划（可选：调用渲染服务输出PDF与manifest）。

任务记录JSON字段与 JobRecord 一致，例如：
  {"kind": "Clearance", "subtype": "Friable", "has_air_monitoring": true,
   "items": [{"item_number": "1", "location_description": "Kitchen"}],
   "project": {"name": "12 Example Street", "client_name": "Acme"}}

示例：
  python tools/plan_report.py --record job.json
  python tools/plan_report.py --record job.json --render --out out/ --attach am_report.pdf
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from report_engine.config import RuntimeConfig, setup_logging
from report_engine.models import JobRecord, RenderJob
from report_engine.pipeline import PipelineExecutor, write_manifest


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--record", required=True, help="任务记录JSON")
    ap.add_argument("--config", default=None, help="runtime.yaml 路径")
    ap.add_argument("--force_split", action="store_true")
    ap.add_argument("--render", action="store_true", help="调用渲染服务输出PDF")
    ap.add_argument("--out", default="out")
    ap.add_argument("--attach", action="append", default=[], help="追加的外部PDF（可多次）")
    ap.add_argument("--site_plan", default=None, help="平面图PDF（插入平面图分隔页之后）")
    args = ap.parse_args()

    config = RuntimeConfig.from_yaml(Path(args.config)) if args.config else RuntimeConfig()
    setup_logging(config)

    record = JobRecord.model_validate_json(Path(args.record).read_text(encoding="utf-8"))
    executor = PipelineExecutor(config=config)

    if not args.render:
        result = executor.plan(record, force_split=args.force_split)
        print(json.dumps(result.describe_pages(), ensure_ascii=False, indent=2))
        if result.flags:
            print("flags:", ", ".join(result.flags))
        return

    job = RenderJob(job_id=Path(args.record).stem, template_type=record.template_type)
    result = executor.execute(
        record,
        attachments=[Path(p).read_bytes() for p in args.attach],
        force_split=args.force_split,
        site_plan_pdf=Path(args.site_plan).read_bytes() if args.site_plan else None,
        job=job,
    )
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "report.pdf").write_bytes(result.pdf)
    write_manifest(job, result, out_dir)
    print(f"{out_dir / 'report.pdf'}: {result.page_count} pages")


if __name__ == "__main__":
    main()
