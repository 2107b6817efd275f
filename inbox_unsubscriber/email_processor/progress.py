"""
Scan progress as an explicit context object.

The scanner mutates its own ``ScanProgress`` and publishes copies to a
``ScanProgressTracker``; pollers only ever see published snapshots.
"""

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional


class ScanStatus(Enum):
    IDLE = 'idle'
    STARTING = 'starting'
    PREPROCESSING = 'preprocessing'
    AI_ANALYSIS = 'ai-analysis'
    EXPANDING = 'expanding'
    COMPLETE = 'complete'
    ERROR = 'error'


@dataclass
class ScanProgress:
    status: ScanStatus = ScanStatus.IDLE
    processed: int = 0
    total: int = 0
    current_batch: int = 0
    total_batches: int = 0
    ai_calls: int = 0
    preprocessed: int = 0
    expanding_domains: int = 0
    total_domains: int = 0
    expanded_messages: int = 0
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    error: Optional[str] = None

    def snapshot(self) -> 'ScanProgress':
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


class ScanProgressTracker:
    """Holds the latest published snapshot for progress polling."""

    def __init__(self):
        self._latest = ScanProgress()

    def publish(self, progress: ScanProgress) -> None:
        self._latest = progress.snapshot()

    def latest(self) -> ScanProgress:
        return self._latest.snapshot()
