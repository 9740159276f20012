"""
分页规划器 - 把可变长度的主体内容拆分为1..N张物理页

职责：
1. 按报告类型的规范块顺序构建内容块（固定块用常量高度，表格块 = 基高 + 行高 × 条目数）
2. 逐块贪心放置：放不下的块开启新页，之后的块只会落在新页或更后的页（单调）
3. 超过整页容量的表格按行拆分为多段，每段以续表形式放置
4. 强制分页：全部内容可放一页时，仍把最后一个块移到单独一页

说明：
- 高度常量为经验值，来自 PaginationConfig，可配置

测试要点：
- test_fits_single_page: 合计不超过容量时恰好一页
- test_monotonic_assignment: 页序单调
- test_oversize_table_split: 超长表格拆分且不丢行
- test_force_split: 强制分页
"""

from __future__ import annotations

from ..config import PaginationConfig, ReportTypeContent
from ..models import ContentBlock, PaginationPlan, PlannedPage


def block_section_key(block_name: str) -> str:
    """块名 -> 章节键（InspectionDetails -> inspectionDetails）"""
    return block_name[:1].lower() + block_name[1:]


class BlockPlanner:
    """主体内容分页规划器"""

    def __init__(self, config: PaginationConfig | None = None):
        self.config = config or PaginationConfig()

    @property
    def capacity(self) -> int:
        return self.config.page_capacity

    def table_height(self, rows: int) -> int:
        return self.config.table_base_height + self.config.table_row_height * rows

    def build_blocks(self, report_type: ReportTypeContent, item_count: int) -> list[ContentBlock]:
        """按规范顺序构建内容块"""
        blocks = []
        for order, name in enumerate(report_type.main_blocks):
            if name == report_type.table_block:
                blocks.append(
                    ContentBlock(
                        name=name,
                        height=self.table_height(item_count),
                        order=order,
                        is_table=True,
                        row_start=0,
                        row_end=item_count,
                    )
                )
            else:
                blocks.append(
                    ContentBlock(
                        name=name,
                        height=self.config.height_of(name),
                        order=order,
                        section_key=block_section_key(name),
                    )
                )
        return blocks

    def plan(self, blocks: list[ContentBlock], force_split: bool = False) -> PaginationPlan:
        """贪心分页"""
        pages = [PlannedPage(index=0)]

        for block in blocks:
            if block.is_table and block.height > self.capacity:
                self._place_table(pages, block)
                continue
            page = pages[-1]
            if page.blocks and page.used_height + block.height > self.capacity:
                page = self._new_page(pages)
            page.blocks.append(block)
            page.used_height += block.height

        forced = False
        if force_split and len(pages) == 1 and len(pages[0].blocks) > 1:
            last = pages[0].blocks.pop()
            pages[0].used_height -= last.height
            moved = self._new_page(pages)
            moved.blocks.append(last)
            moved.used_height = last.height
            forced = True

        return PaginationPlan(capacity=self.capacity, pages=pages, forced_split=forced)

    def plan_for(
        self,
        report_type: ReportTypeContent,
        item_count: int,
        force_split: bool = False,
    ) -> PaginationPlan:
        return self.plan(self.build_blocks(report_type, item_count), force_split=force_split)

    def _place_table(self, pages: list[PlannedPage], block: ContentBlock) -> None:
        """超长表格按行拆分：先填满当前页剩余空间，再逐页续表"""
        start = block.row_start or 0
        end = block.row_end or 0
        row_height = self.config.table_row_height

        while start < end:
            page = pages[-1]
            remaining = self.capacity - page.used_height
            fit_rows = max(0, (remaining - self.config.table_base_height) // row_height)
            if fit_rows == 0 and not page.blocks:
                # 空页也放不下一行时至少放一行，保证前进
                fit_rows = 1
            if fit_rows == 0:
                self._new_page(pages)
                continue

            rows = min(fit_rows, end - start)
            segment = block.model_copy(
                update={
                    "row_start": start,
                    "row_end": start + rows,
                    "height": self.table_height(rows),
                }
            )
            page.blocks.append(segment)
            page.used_height += segment.height
            start += rows
            if start < end:
                self._new_page(pages)

    @staticmethod
    def _new_page(pages: list[PlannedPage]) -> PlannedPage:
        page = PlannedPage(index=len(pages))
        pages.append(page)
        return page
