"""
Unsubscribe resolver: analyze a message, then walk the strategy chain.

The first successful strategy wins. When none succeeds the manual
fallback result is returned, so callers always get a user-facing message.
"""

import logging
from typing import Dict, List, Optional

from ..message import MessageRecord
from .extractors import UnsubscribeLinkExtractor
from .strategies import MANUAL_FALLBACK, UnsubscribeStrategy, manual_fallback_strategy
from .types import ResolutionState, UnsubscribeInfo, UnsubscribeResult

logger = logging.getLogger(__name__)


class UnsubscribeResolver:
    """Runs the priority-ordered strategy chain for one message at a time.

    Args:
        strategies: Strategy descriptors; sorted by priority on construction
        extractor: Link analysis, defaults to ``UnsubscribeLinkExtractor``
    """

    def __init__(
        self,
        strategies: List[UnsubscribeStrategy],
        extractor: Optional[UnsubscribeLinkExtractor] = None,
    ):
        self.extractor = extractor or UnsubscribeLinkExtractor()
        self.strategies = sorted(strategies, key=lambda s: s.priority, reverse=True)
        if not any(s.name == MANUAL_FALLBACK for s in self.strategies):
            self.strategies.append(manual_fallback_strategy())
        self.states: Dict[str, ResolutionState] = {}
        self.attempts: Dict[str, List[UnsubscribeResult]] = {}

    def state_of(self, message_id: str) -> ResolutionState:
        return self.states.get(message_id, ResolutionState.UNANALYZED)

    def analyze(self, message: MessageRecord) -> UnsubscribeInfo:
        info = self.extractor.analyze(message)
        self.states[message.id] = ResolutionState.ANALYZED
        return info

    async def resolve(self, message: MessageRecord, info: Optional[UnsubscribeInfo] = None) -> UnsubscribeResult:
        """Try each applicable strategy until one succeeds."""
        if info is None:
            info = self.analyze(message)
        else:
            self.states[message.id] = ResolutionState.ANALYZED

        attempts: List[UnsubscribeResult] = []
        fallback: Optional[UnsubscribeResult] = None

        for strategy in self.strategies:
            if not strategy.can_handle(message, info):
                continue
            try:
                result = await strategy.execute(message, info)
            except Exception as e:
                logger.error(f"Strategy {strategy.name} raised for {message.id}: {e}")
                result = UnsubscribeResult(
                    success=False, method=strategy.name,
                    message='Strategy execution error', error=str(e),
                )
            attempts.append(result)

            if strategy.name == MANUAL_FALLBACK:
                fallback = result
                continue
            if result.success:
                logger.info(f"Unsubscribed {message.id} via {strategy.name}")
                self.states[message.id] = ResolutionState.RESOLVED_SUCCESS
                self.attempts[message.id] = attempts
                return result
            logger.info(f"Strategy {strategy.name} failed for {message.id}: {result.error}")

        self.states[message.id] = ResolutionState.RESOLVED_FAIL
        self.attempts[message.id] = attempts
        return fallback
