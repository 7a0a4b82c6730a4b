from .audit_agent import AuditAgent, dedupe_results
from .comparative_agent import ComparativeAgent
from .fact_check_agent import FactCheckAgent
from .run_state import RunChannel

__all__ = [
    "AuditAgent",
    "dedupe_results",
    "ComparativeAgent",
    "FactCheckAgent",
    "RunChannel",
]
