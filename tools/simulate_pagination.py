"""
主体内容分页模拟：按条目数列出主体页数与各页块分布，用于校验高度常量。

示例：
  python tools/simulate_pagination.py --template_type asbestosClearanceNonFriable --max_items 40
  python tools/simulate_pagination.py --template_type asbestosAssessment --items 12 --force_split
"""

from __future__ import annotations

import argparse
from pathlib import Path

from report_engine.config import RuntimeConfig, load_content
from report_engine.doc_gen import BlockPlanner


def _describe(plan) -> str:
    parts = []
    for page in plan.pages:
        names = []
        for b in page.blocks:
            names.append(f"{b.name}[{b.row_start}:{b.row_end}]" if b.is_table else b.name)
        parts.append(f"p{page.index + 1}({page.used_height}): " + ", ".join(names))
    return " | ".join(parts)


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--template_type", default="asbestosClearanceNonFriable")
    ap.add_argument("--items", type=int, default=None, help="只模拟指定条目数")
    ap.add_argument("--max_items", type=int, default=30)
    ap.add_argument("--force_split", action="store_true")
    ap.add_argument("--config", default=None, help="runtime.yaml 路径")
    args = ap.parse_args()

    config = RuntimeConfig.from_yaml(Path(args.config)) if args.config else RuntimeConfig()
    report_type = load_content(config.content_path).get_report_type(args.template_type)
    planner = BlockPlanner(config.pagination)

    counts = [args.items] if args.items is not None else range(args.max_items + 1)
    for n in counts:
        plan = planner.plan_for(report_type, n, force_split=args.force_split)
        print(f"items={n:3d} pages={plan.page_count}  {_describe(plan)}")


if __name__ == "__main__":
    main()
