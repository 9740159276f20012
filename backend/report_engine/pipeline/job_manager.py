"""
任务管理器 - 渲染任务创建/查询/等待/取消

职责：
1. 创建任务并分配ID，提交到线程池并发渲染（每个渲染独立会话）
2. 任务状态持久化（job.json），产物落盘（report.pdf / manifest.json）
3. 任务查询

测试要点：
- test_create_job: 创建并完成任务
- test_concurrent_renders_isolated: 并发渲染互不影响
- test_cancel_job: 取消排队任务
- test_list_jobs: 列出任务
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor

from ..config import RuntimeConfig, get_config
from ..doc_gen import Attachment
from ..models import JobRecord, JobStatus, RenderJob
from .executor import PipelineExecutor, RenderResult
from .manifest import write_manifest

logger = logging.getLogger(__name__)


class JobManager:
    """渲染任务管理器"""

    def __init__(
        self,
        executor: PipelineExecutor | None = None,
        config: RuntimeConfig | None = None,
        max_workers: int | None = None,
        persist: bool = True,
    ):
        self.config = config or get_config()
        self.executor = executor or PipelineExecutor(config=self.config)
        self.persist = persist
        if self.persist and self.executor.progress_callback is None:
            self.executor.progress_callback = self._persist_job

        self._pool = ThreadPoolExecutor(
            max_workers=max_workers or self.config.concurrency.max_workers,
            thread_name_prefix="report-render",
        )
        self._jobs: dict[str, RenderJob] = {}  # 内存缓存
        self._futures: dict[str, Future] = {}
        self._lock = threading.Lock()

    def create_job(
        self,
        record: JobRecord,
        attachments: list[Attachment | bytes | str] | None = None,
        force_split: bool = False,
        site_plan_pdf: bytes | str | None = None,
    ) -> RenderJob:
        """创建任务并提交渲染"""
        job = RenderJob(
            job_id=str(uuid.uuid4()),
            template_type=record.template_type,
            job_reference=record.job_reference,
            force_split=force_split,
        )
        with self._lock:
            self._jobs[job.job_id] = job
        self._persist_job(job)

        future = self._pool.submit(self._run, job, record, attachments, force_split, site_plan_pdf)
        with self._lock:
            self._futures[job.job_id] = future
        return job

    def get_job(self, job_id: str) -> RenderJob | None:
        """获取任务"""
        with self._lock:
            if job_id in self._jobs:
                return self._jobs[job_id]

        # 尝试从磁盘加载
        job = self._load_job(job_id)
        if job:
            with self._lock:
                self._jobs[job_id] = job
        return job

    def wait(self, job_id: str, timeout: float | None = None) -> RenderResult | None:
        """等待任务完成；渲染失败时抛出原异常，已取消返回 None"""
        with self._lock:
            future = self._futures.get(job_id)
        if future is None:
            return None
        if future.cancelled():
            return None
        return future.result(timeout=timeout)

    def cancel_job(self, job_id: str) -> bool:
        """取消任务（仅排队中的任务可取消）"""
        job = self.get_job(job_id)
        if not job:
            return False

        with self._lock:
            future = self._futures.get(job_id)
        if job.status == JobStatus.QUEUED and (future is None or future.cancel()):
            job.status = JobStatus.CANCELLED
            self._persist_job(job)
            return True
        return False

    def list_jobs(self, status: JobStatus | None = None, limit: int = 100) -> list[RenderJob]:
        """列出任务"""
        with self._lock:
            jobs = list(self._jobs.values())

        if status:
            jobs = [j for j in jobs if j.status == status]

        # 按创建时间降序
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs[:limit]

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
        self.executor.shutdown()

    def _run(
        self,
        job: RenderJob,
        record: JobRecord,
        attachments: list[Attachment | bytes | str] | None,
        force_split: bool,
        site_plan_pdf: bytes | str | None,
    ) -> RenderResult:
        result = self.executor.execute(
            record,
            attachments=attachments,
            force_split=force_split,
            site_plan_pdf=site_plan_pdf,
            job=job,
        )
        if self.persist and result.pdf:
            job_dir = self.config.get_job_dir(job.job_id)
            job_dir.mkdir(parents=True, exist_ok=True)
            job.output_pdf = job_dir / "report.pdf"
            job.output_pdf.write_bytes(result.pdf)
            write_manifest(job, result, job_dir)
            self._persist_job(job)
        logger.info(f"[{job.job_id}] 任务完成: {result.page_count} 页, 标记 {job.flags}")
        return result

    def _persist_job(self, job: RenderJob) -> None:
        """持久化任务"""
        if not self.persist:
            return
        job_dir = self.config.get_job_dir(job.job_id)
        job_dir.mkdir(parents=True, exist_ok=True)

        job_file = job_dir / "job.json"
        with open(job_file, "w", encoding="utf-8") as f:
            json.dump(job.model_dump(mode="json"), f, ensure_ascii=False, indent=2, default=str)

    def _load_job(self, job_id: str) -> RenderJob | None:
        """从磁盘加载任务"""
        job_file = self.config.get_job_dir(job_id) / "job.json"

        if not job_file.exists():
            return None

        try:
            with open(job_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return RenderJob(**data)
        except (OSError, ValueError) as e:
            logger.warning(f"任务文件读取失败: {job_file}: {e}")
            return None
