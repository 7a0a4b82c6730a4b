from .audit import (
    Analysis,
    AuditItem,
    AuditRun,
    AuditStatus,
    SearchResult,
    Sentiment,
)
from .base import PipelineRun
from .comparative import (
    ComparativeMetrics,
    ComparativeResult,
    ComparativeRun,
    ComparativeStatus,
    RecommendedFix,
    ScrapedPage,
)
from .fact_check import (
    FactCheckQuestion,
    FactCheckRun,
    FactCheckStatus,
    ItemStatus,
    Remediation,
    Verification,
)

__all__ = [
    "Analysis",
    "AuditItem",
    "AuditRun",
    "AuditStatus",
    "SearchResult",
    "Sentiment",
    "PipelineRun",
    "ComparativeMetrics",
    "ComparativeResult",
    "ComparativeRun",
    "ComparativeStatus",
    "RecommendedFix",
    "ScrapedPage",
    "FactCheckQuestion",
    "FactCheckRun",
    "FactCheckStatus",
    "ItemStatus",
    "Remediation",
    "Verification",
]
