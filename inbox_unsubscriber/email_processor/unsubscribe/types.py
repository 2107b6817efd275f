"""
Immutable result types for unsubscribe analysis and execution.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class UnsubscribeMethod(Enum):
    LIST_HEADER = 'list-header'
    LIST_HEADER_MAILTO = 'list-header-mailto'
    BODY_LINK = 'body-link'
    NONE = 'none'


class Complexity(Enum):
    SIMPLE = 'simple'
    MEDIUM = 'medium'
    COMPLEX = 'complex'


class ResolutionState(Enum):
    UNANALYZED = 'unanalyzed'
    ANALYZED = 'analyzed'
    RESOLVED_SUCCESS = 'resolved-success'
    RESOLVED_FAIL = 'resolved-fail'


@dataclass(frozen=True)
class UnsubscribeInfo:
    """Unsubscribe options found in one message.

    ``links`` holds body links only, deduplicated and ranked; the header
    target is kept separately in ``header_url`` / ``header_mailto``.
    """

    has_link: bool
    links: Tuple[str, ...] = ()
    method: UnsubscribeMethod = UnsubscribeMethod.NONE
    complexity: Complexity = Complexity.COMPLEX
    confidence: float = 0.3
    header_url: Optional[str] = None
    header_mailto: Optional[str] = None
    list_unsubscribe_post: Optional[str] = None
    is_marketing: bool = False

    @property
    def best_link(self) -> Optional[str]:
        """Most useful user-facing link: header URL, else top body link."""
        if self.header_url:
            return self.header_url
        return self.links[0] if self.links else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'has_link': self.has_link,
            'links': list(self.links),
            'method': self.method.value,
            'complexity': self.complexity.value,
            'confidence': self.confidence,
            'header_url': self.header_url,
            'header_mailto': self.header_mailto,
            'list_unsubscribe_post': self.list_unsubscribe_post,
            'is_marketing': self.is_marketing,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UnsubscribeInfo':
        return cls(
            has_link=bool(data.get('has_link', False)),
            links=tuple(data.get('links', [])),
            method=UnsubscribeMethod(data.get('method', 'none')),
            complexity=Complexity(data.get('complexity', 'complex')),
            confidence=float(data.get('confidence', 0.3)),
            header_url=data.get('header_url'),
            header_mailto=data.get('header_mailto'),
            list_unsubscribe_post=data.get('list_unsubscribe_post'),
            is_marketing=bool(data.get('is_marketing', False)),
        )


@dataclass(frozen=True)
class UnsubscribeResult:
    """Outcome of one strategy execution."""

    success: bool
    method: str
    message: str
    url: Optional[str] = None
    error: Optional[str] = None
    steps: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        result = {'success': self.success, 'method': self.method, 'message': self.message}
        if self.url:
            result['url'] = self.url
        if self.error:
            result['error'] = self.error
        if self.steps:
            result['steps'] = list(self.steps)
        return result


@dataclass(frozen=True)
class BulkUnsubscribeResult:
    """Outcome of unsubscribing from a sender and archiving its messages.

    ``success`` is true when either the unsubscribe or the archival worked.
    A dry run archives nothing and lists the ids in ``would_archive``.
    """

    domain: str
    success: bool
    method: str
    details: str
    archived: bool
    email_count: int
    archived_count: int = 0
    results: List[UnsubscribeResult] = field(default_factory=list)
    dry_run: bool = False
    would_archive: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'domain': self.domain,
            'success': self.success,
            'method': self.method,
            'details': self.details,
            'archived': self.archived,
            'email_count': self.email_count,
            'archived_count': self.archived_count,
            'results': [r.to_dict() for r in self.results],
            'dry_run': self.dry_run,
            'would_archive': list(self.would_archive),
        }
