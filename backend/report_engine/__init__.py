"""
石棉报告生成引擎 - 报告组版与分页核心

模块结构：
- config/     运行期配置与默认报告内容
- models/     数据模型定义
- doc_gen/    文档生成（章节/替换/分页/装配/渲染/合并）
- pipeline/   流水线编排与任务管理
- templates/  页面HTML模板
"""

__version__ = "0.1.0"
