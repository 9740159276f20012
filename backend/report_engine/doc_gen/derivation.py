"""
派生字段引擎 - 由任务记录计算占位符取值

职责：
1. 根据任务记录与负责人记录计算派生字段（客户/现场/日期/执照/签名）
2. 根据附录字母分配生成附录引用语句（同一次渲染内所有引用一致）
   评估报告的检查范围与识别结果生成为项目符号行
3. 字段缺失时使用 "Unknown ..." 兜底措辞，不抛出

依赖：
- RuntimeConfig.defaults: 默认执照号/州/公司名

测试要点：
- test_inspection_time_12h: 24小时制转12小时制
- test_unknown_fallbacks: 缺失字段兜底
- test_appendix_references: 附录引用与字母一致
- test_identified_asbestos: 识别结果排除未检出条目，无结果时兜底
"""

from __future__ import annotations

import html
import re
from datetime import date

from ..config import RuntimeConfig, get_config
from ..models import AppendixAssignment, AppendixKind, DerivedFields, JobRecord, PersonRecord

TIME_24H_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

APPENDIX_LABELS: dict[AppendixKind, str] = {
    AppendixKind.PHOTOS: "Photographs of the Asbestos Removal Area",
    AppendixKind.SITE_PLAN: "Site Plan",
    AppendixKind.AIR_MONITORING: "Air Monitoring Report",
}

ASSESSMENT_PHOTO_LABEL = "Photographs of the assessed materials"

NO_ASBESTOS_RESULT = "no asbestos detected"
NO_ASBESTOS_IDENTIFIED = "No asbestos identified during this assessment"


def format_time_12h(value: str | None) -> str | None:
    """'14:30' -> '2:30 PM'；格式不符原样返回"""
    if not value:
        return None
    m = TIME_24H_RE.match(value.strip())
    if not m:
        return value
    hours, minutes = int(m.group(1)), m.group(2)
    suffix = "PM" if hours >= 12 else "AM"
    if hours == 0:
        hours = 12
    elif hours > 12:
        hours -= 12
    return f"{hours}:{minutes} {suffix}"


def format_date(value: date | None) -> str | None:
    """en-GB 日期 dd/mm/yyyy"""
    return value.strftime("%d/%m/%Y") if value else None


def _join(parts: list[str]) -> str:
    if len(parts) <= 2:
        return " and ".join(parts)
    return ", ".join(parts[:-1]) + ", and " + parts[-1]


def appendix_reference_sentence(
    appendices: AppendixAssignment,
    labels: dict[AppendixKind, str] | None = None,
) -> str:
    """生成附录引用语句，字母取自本次渲染的分配结果"""
    labels = labels or APPENDIX_LABELS
    ordered = appendices.ordered
    if not ordered:
        return ""
    names = [labels[kind] for kind, _ in ordered]
    refs = [f"Appendix {letter}" for _, letter in ordered]
    if len(ordered) == 1:
        verb = "are" if ordered[0][0] == AppendixKind.PHOTOS else "is"
        return f"{names[0]} {verb} presented in {refs[0]}."
    return f"{_join(names)} are presented in {_join(refs)} respectively."


class DerivationEngine:
    """派生字段计算引擎"""

    def __init__(self, config: RuntimeConfig | None = None):
        self.config = config or get_config()

    def compute(
        self,
        record: JobRecord,
        appendices: AppendixAssignment,
        person: PersonRecord | None = None,
        today: date | None = None,
    ) -> DerivedFields:
        """计算所有派生字段"""
        defaults = self.config.defaults
        project = record.project

        derived = DerivedFields(
            client_name=_esc(project.client_name, "Unknown Client"),
            company_name=_esc(defaults.company_name),
            site_name=_esc(project.name, "Unknown Site"),
            site_address=_esc(project.address or project.name, "Unknown Address"),
            project_id=_esc(project.project_id),
            job_reference=_esc(record.job_reference or project.project_id),
            revision=str(record.revision),
            report_type=_esc(record.subtype, "Non-friable"),
            asbestos_type=_esc(record.subtype.lower() if record.subtype else None, "non-friable"),
            asbestos_removalist=_esc(record.asbestos_removalist, "Unknown Removalist"),
            item_count=str(len(record.items)),
            inspection_time=_esc(format_time_12h(record.inspection_time), "Unknown Time"),
            inspection_date=format_date(record.inspection_date) or "Unknown Date",
            report_date=format_date(today or date.today()),
        )

        # === 负责人 ===
        if person is not None:
            derived.laa_name = _esc(person.name, "Unknown LAA")
            derived.laa_license = _esc(person.licence_number, defaults.licence_number)
            derived.laa_licence_state = _esc(person.licence_state, defaults.licence_state)
            if person.signature_image:
                src = html.escape(person.signature_image, quote=True)
                derived.signature_image = f'<img class="signature" src="{src}" alt="Signature" />'
        else:
            derived.laa_name = _esc(record.responsible_person, "Unknown LAA")
            derived.laa_license = _esc(defaults.licence_number)
            derived.laa_licence_state = _esc(defaults.licence_state)

        # === 附录 ===
        derived.photos_appendix = appendices.letter_for(AppendixKind.PHOTOS) or ""
        derived.site_plan_appendix = appendices.letter_for(AppendixKind.SITE_PLAN) or ""
        derived.air_monitoring_appendix = appendices.letter_for(AppendixKind.AIR_MONITORING) or ""

        labels = dict(APPENDIX_LABELS)
        if not record.is_clearance:
            labels[AppendixKind.PHOTOS] = ASSESSMENT_PHOTO_LABEL
        derived.appendix_references = appendix_reference_sentence(appendices, labels)

        # === 评估范围/识别结果 ===
        derived.assessment_scope = _bullets(
            item.location_description for item in record.items if item.location_description.strip()
        )
        derived.identified_asbestos = _bullets(
            f"{item.location_description} - {item.material_description} ({item.asbestos_content})"
            for item in record.items
            if (item.asbestos_content or "").strip()
            and item.asbestos_content.strip().lower() != NO_ASBESTOS_RESULT
        ) or _bullets([NO_ASBESTOS_IDENTIFIED])

        return derived

    def compute_appendices(self, record: JobRecord) -> AppendixAssignment:
        """按存在标记分配附录字母（清理报告始终含照片附录）"""
        photos = record.is_clearance or bool(record.items_with_photos())
        return AppendixAssignment.compute(
            photos=photos,
            site_plan=record.has_site_plan,
            air_monitoring=record.has_air_monitoring,
        )


def _bullets(lines) -> str:
    """每行一个项目符号（转义后）"""
    return "\n".join(f"[BULLET]{html.escape(line.strip())}" for line in lines)


def _esc(value: str | None, fallback: str = "") -> str:
    value = (value or "").strip()
    return html.escape(value) if value else fallback
