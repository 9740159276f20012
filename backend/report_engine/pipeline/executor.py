"""
流水线执行器 - 编排单次报告渲染

职责：
1. 按顺序执行各阶段（章节解析 → 替换 → 分页 → 装配 → 序列化 → 渲染 → 合并）
2. 每次渲染创建独立会话（人员缓存），结束时在 finally 中清空
3. 更新任务进度；可恢复缺口记为 flags，结构性失败向调用方抛出
4. 仅生成页面计划（不调用渲染器），便于测试分页与装配

测试要点：
- test_execute_end_to_end: 完整渲染与页数
- test_plan_without_render: 页面计划
- test_session_cache_cleared: 渲染结束后缓存清空
- test_render_failure_propagates: 渲染失败向上抛出
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from ..config import ContentLibrary, RuntimeConfig, get_config, load_content
from ..doc_gen import (
    Attachment,
    BlockPlanner,
    CallableRenderer,
    DerivationEngine,
    DocumentAssembler,
    HtmlDocumentWriter,
    PDFExporter,
    PDFMerger,
    PersonLookupCache,
    PlaceholderEngine,
    SectionResolver,
    TemplateLoader,
    count_pdf_pages,
    placeholder_name,
)
from ..interfaces import IContentStore, IPersonDirectory, IPDFMerger, IRenderer
from ..models import (
    AppendixAssignment,
    AppendixKind,
    JobRecord,
    Page,
    PaginationPlan,
    RenderContext,
    RenderJob,
)
from .stages import PLAN_STAGES, RENDER_STAGES, PipelineStage, StageEnum

logger = logging.getLogger(__name__)


class RenderResult(BaseModel):
    """渲染结果"""
    pdf: bytes | None = None
    html: str = ""
    pages: list[Page] = Field(default_factory=list)
    plan: PaginationPlan | None = None
    appendices: AppendixAssignment = Field(default_factory=AppendixAssignment)
    flags: list[str] = Field(default_factory=list)
    page_count: int = 0

    def describe_pages(self) -> list[dict]:
        """结构化页面计划"""
        return [page.describe() for page in self.pages]


@dataclass
class RenderSession:
    """单次渲染会话（独立的人员缓存，渲染间不共享）"""
    engine: PlaceholderEngine
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    site_plan_pdf: bytes | str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    pdf: bytes | None = None

    def close(self) -> None:
        self.engine.reset_cache()


class PipelineExecutor:
    """流水线执行器"""

    def __init__(
        self,
        content_store: IContentStore | None = None,
        person_directory: IPersonDirectory | None = None,
        renderer: IRenderer | Callable[[str], bytes] | None = None,
        merger: IPDFMerger | None = None,
        config: RuntimeConfig | None = None,
        library: ContentLibrary | None = None,
        templates: TemplateLoader | None = None,
        progress_callback: Callable[[RenderJob], None] | None = None,
    ):
        self.config = config or get_config()
        self.library = library or load_content(self.config.content_path)
        templates = templates or TemplateLoader(self.config.template_dir)

        self.person_directory = person_directory
        self.resolver = SectionResolver(content_store, self.library, self.config)
        self.derivation = DerivationEngine(self.config)
        self.planner = BlockPlanner(self.config.pagination)
        self.assembler = DocumentAssembler(templates, self.library, self.config)
        self.writer = HtmlDocumentWriter(templates, self.library, self.config)
        self.merger = merger or PDFMerger()
        self.progress_callback = progress_callback

        if renderer is not None and not isinstance(renderer, IRenderer):
            renderer = CallableRenderer(renderer)
        self._renderer = renderer

    @property
    def renderer(self) -> IRenderer:
        # 仅在真正渲染时构建默认渲染器
        if self._renderer is None:
            self._renderer = PDFExporter(config=self.config)
        return self._renderer

    def shutdown(self) -> None:
        """释放内容库读取线程池"""
        self.resolver.shutdown()

    def open_session(self) -> RenderSession:
        return RenderSession(engine=PlaceholderEngine(PersonLookupCache(self.person_directory)))

    def execute(
        self,
        record: JobRecord,
        attachments: list[Attachment | bytes | str] | None = None,
        force_split: bool = False,
        site_plan_pdf: bytes | str | None = None,
        job: RenderJob | None = None,
    ) -> RenderResult:
        """执行完整渲染，返回最终PDF与页面计划"""
        context = self._new_context(record, force_split)
        job = job or self._new_job(context)
        session = self.open_session()
        session.site_plan_pdf = site_plan_pdf if record.has_site_plan else None
        session.attachments = [
            a if isinstance(a, Attachment) else Attachment(data=a) for a in attachments or []
        ]
        return self._run(job, context, session, RENDER_STAGES)

    def plan(self, record: JobRecord, force_split: bool = False) -> RenderResult:
        """只生成页面计划（不渲染、不合并）"""
        context = self._new_context(record, force_split)
        job = self._new_job(context)
        return self._run(job, context, self.open_session(), PLAN_STAGES)

    def _run(
        self,
        job: RenderJob,
        context: RenderContext,
        session: RenderSession,
        stages: list[PipelineStage],
    ) -> RenderResult:
        job.mark_running(stages[0].name)
        self._update_progress(job, message="渲染开始")
        logger.info(f"[{job.job_id}] 渲染开始: {context.template_type} (会话 {session.session_id})")

        try:
            for stage in stages:
                self._execute_stage(job, stage, context, session)

            for flag in context.flags:
                job.add_flag(flag)
            result = RenderResult(
                pdf=session.pdf,
                html=context.html,
                pages=context.pages,
                plan=context.plan,
                appendices=context.appendices,
                flags=list(job.flags),
                page_count=count_pdf_pages(session.pdf) if session.pdf else len(context.pages),
            )
            job.page_count = result.page_count
            job.mark_succeeded()
            self._update_progress(job, message="渲染完成")
            return result

        except Exception as e:
            logger.exception(f"渲染失败: {job.job_id}")
            job.mark_failed(str(e))
            self._update_progress(job, message=f"渲染失败: {e}")
            raise

        finally:
            # 人员缓存不跨渲染保留
            session.close()

    def _execute_stage(
        self,
        job: RenderJob,
        stage: PipelineStage,
        context: RenderContext,
        session: RenderSession,
    ) -> None:
        """执行单个阶段"""
        job.progress.stage = stage.name
        job.progress.percent = stage.progress_start
        logger.info(f"[{job.job_id}] 开始阶段: {stage.name}")

        try:
            if stage.name == StageEnum.RESOLVE_SECTIONS.value:
                self._stage_resolve(context)

            elif stage.name == StageEnum.SUBSTITUTE.value:
                self._stage_substitute(context, session)

            elif stage.name == StageEnum.PLAN_MAIN_CONTENT.value:
                self._stage_plan(context)

            elif stage.name == StageEnum.ASSEMBLE.value:
                self._stage_assemble(context, session)

            elif stage.name == StageEnum.SERIALIZE.value:
                context.html = self.writer.write(context)

            elif stage.name == StageEnum.RENDER.value:
                self._stage_render(job, context, session)

            elif stage.name == StageEnum.MERGE.value:
                self._stage_merge(context, session)

        except Exception as e:
            logger.error(f"[{job.job_id}] 阶段失败 {stage.name}: {e}")
            job.add_flag(f"阶段失败:{stage.name}")
            raise

        job.progress.percent = stage.progress_end
        self._update_progress(job, message=f"完成阶段: {stage.name}")

    def _stage_resolve(self, context: RenderContext) -> None:
        """章节解析"""
        context.sections = self.resolver.resolve(context.record, flags=context.flags)

    def _stage_substitute(self, context: RenderContext, session: RenderSession) -> None:
        """派生字段与占位符替换"""
        record = context.record
        engine = session.engine

        person = engine.resolve_person(record.responsible_person)
        if record.responsible_person and person is None:
            context.add_flag("负责人未找到")

        context.appendices = self.derivation.compute_appendices(record)
        context.derived = self.derivation.compute(record, context.appendices, person)

        values = context.derived.as_placeholders()
        # 条件章节先替换，再作为占位符值注入标准章节
        for key, section in context.sections.items():
            if section.source == "conditional":
                values[placeholder_name(key)] = engine.substitute(section.body, values)

        rendered = {}
        for key, section in context.sections.items():
            missing = engine.unresolved(section.body, values)
            if missing:
                logger.warning(f"章节 {key} 存在未解析占位符: {missing}")
                context.add_flag(f"未解析占位符:{key}")
            rendered[key] = section.model_copy(
                update={
                    "title": engine.substitute(section.title, values),
                    "body": engine.render(section.body, values),
                }
            )
        context.rendered = rendered

    def _stage_plan(self, context: RenderContext) -> None:
        """主体内容分页"""
        report_type = self.resolver.report_type_for(context.record)
        context.plan = self.planner.plan_for(
            report_type, len(context.record.items), force_split=context.force_split
        )
        logger.info(f"主体内容 {context.plan.page_count} 页 (强制分页={context.plan.forced_split})")

    def _stage_assemble(self, context: RenderContext, session: RenderSession) -> None:
        """页面装配"""
        context.pages = self.assembler.assemble(
            context, site_plan_attached=session.site_plan_pdf is not None
        )

    def _stage_render(self, job: RenderJob, context: RenderContext, session: RenderSession) -> None:
        """外部渲染"""
        self._update_progress(job, message="调用渲染器")
        session.pdf = self.renderer.render(context.html)

    def _stage_merge(self, context: RenderContext, session: RenderSession) -> None:
        """合并外部PDF"""
        attachments = list(session.attachments)
        if session.site_plan_pdf is not None:
            divider = self.assembler.divider_positions(context.pages).get(AppendixKind.SITE_PLAN)
            attachments.insert(
                0,
                Attachment(data=session.site_plan_pdf, insert_after_page=divider, label="site_plan"),
            )
        if not attachments or session.pdf is None:
            return

        merged = self.merger.merge(session.pdf, attachments)
        if merged is session.pdf:
            context.add_flag("附件合并失败")
        session.pdf = merged

    def _new_context(self, record: JobRecord, force_split: bool) -> RenderContext:
        template_type = record.template_type or self.library.fallback_types.get(record.kind.value, "")
        return RenderContext(record=record, template_type=template_type, force_split=force_split)

    @staticmethod
    def _new_job(context: RenderContext) -> RenderJob:
        return RenderJob(
            job_id=str(uuid.uuid4()),
            template_type=context.template_type,
            job_reference=context.record.job_reference,
            force_split=context.force_split,
        )

    def _update_progress(self, job: RenderJob, *, message: str | None = None) -> None:
        if message is not None:
            job.progress.message = message
        if self.progress_callback is not None:
            self.progress_callback(job)
