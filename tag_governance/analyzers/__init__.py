from .tag_matcher import TagMatch, match_tags
from .aggregator import AuditResult, collect_findings

__all__ = [
    "TagMatch",
    "match_tags",
    "AuditResult",
    "collect_findings",
]
