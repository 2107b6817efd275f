"""
Unsubscribe strategies as plain descriptors.

Each strategy is a name, a priority, a ``can_handle(message, info)``
predicate and an async ``execute(message, info)``. The resolver evaluates
them in descending priority.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from ...unsubscribe_executor.browser_executor import BrowserAutomationExecutor
from ...unsubscribe_executor.http_executor import HttpUnsubscribeExecutor
from ..message import MessageRecord
from .types import Complexity, UnsubscribeInfo, UnsubscribeResult

logger = logging.getLogger(__name__)

LIST_HEADER = 'list-unsubscribe-header'
SIMPLE_LINK = 'simple-link'
BROWSER_AUTOMATION = 'browser-automation'
MANUAL_FALLBACK = 'manual-fallback'


@dataclass(frozen=True)
class UnsubscribeStrategy:
    name: str
    priority: int
    can_handle: Callable[[MessageRecord, UnsubscribeInfo], bool]
    execute: Callable[[MessageRecord, UnsubscribeInfo], Awaitable[UnsubscribeResult]]


def _result_from_http(name: str, execution, success_message: str) -> UnsubscribeResult:
    if execution.success:
        message = execution.message if execution.dry_run else success_message
        return UnsubscribeResult(success=True, method=name, message=message, url=execution.url)
    return UnsubscribeResult(
        success=False,
        method=name,
        message=execution.message,
        url=execution.url,
        error=execution.error_message,
    )


def list_header_strategy(http: HttpUnsubscribeExecutor) -> UnsubscribeStrategy:
    """GET the List-Unsubscribe URL, or POST when List-Unsubscribe-Post is present."""

    def can_handle(message: MessageRecord, info: UnsubscribeInfo) -> bool:
        return bool(message.get_header('List-Unsubscribe'))

    async def execute(message: MessageRecord, info: UnsubscribeInfo) -> UnsubscribeResult:
        url = info.header_url
        if not url:
            return UnsubscribeResult(
                success=False,
                method=LIST_HEADER,
                message='No valid URL found in List-Unsubscribe header',
                error='Invalid header format',
            )
        if info.list_unsubscribe_post:
            execution = await asyncio.to_thread(http.post, url, info.list_unsubscribe_post)
        else:
            execution = await asyncio.to_thread(http.get, url)
        return _result_from_http(LIST_HEADER, execution,
                                 'Successfully unsubscribed via List-Unsubscribe header')

    return UnsubscribeStrategy(LIST_HEADER, 100, can_handle, execute)


def simple_link_strategy(http: HttpUnsubscribeExecutor) -> UnsubscribeStrategy:
    """GET the single body link.

    Applies only to simple messages with exactly one body link. A message
    with a header is rated simple too, so this also runs as the follow-up
    when the header strategy fails.
    """

    def can_handle(message: MessageRecord, info: UnsubscribeInfo) -> bool:
        return info.complexity is Complexity.SIMPLE and len(info.links) == 1

    async def execute(message: MessageRecord, info: UnsubscribeInfo) -> UnsubscribeResult:
        url = info.links[0]
        if url.lower().startswith('mailto:'):
            return UnsubscribeResult(
                success=False,
                method=SIMPLE_LINK,
                message='Body link is a mailto address',
                url=url,
                error='Unsupported link scheme',
            )
        execution = await asyncio.to_thread(http.get, url)
        return _result_from_http(SIMPLE_LINK, execution, 'Successfully accessed unsubscribe link')

    return UnsubscribeStrategy(SIMPLE_LINK, 80, can_handle, execute)


def browser_automation_strategy(executor: BrowserAutomationExecutor) -> UnsubscribeStrategy:
    """Hand the best http link to the browser automation collaborators."""

    def target(info: UnsubscribeInfo) -> Optional[str]:
        for link in ((info.header_url,) if info.header_url else ()) + info.links:
            if link.lower().startswith('http'):
                return link
        return None

    def can_handle(message: MessageRecord, info: UnsubscribeInfo) -> bool:
        return target(info) is not None

    async def execute(message: MessageRecord, info: UnsubscribeInfo) -> UnsubscribeResult:
        url = target(info)
        run = await executor.run(url)
        return UnsubscribeResult(
            success=run.success,
            method=BROWSER_AUTOMATION,
            message='Unsubscribe page completed by browser automation' if run.success
            else (run.reasoning or 'Browser automation could not complete the page'),
            url=url,
            error=run.error,
            steps=tuple(run.steps),
        )

    return UnsubscribeStrategy(BROWSER_AUTOMATION, 50, can_handle, execute)


def manual_fallback_strategy() -> UnsubscribeStrategy:
    """Always applicable, never succeeds; points the user at the best link."""

    def can_handle(message: MessageRecord, info: UnsubscribeInfo) -> bool:
        return True

    async def execute(message: MessageRecord, info: UnsubscribeInfo) -> UnsubscribeResult:
        link = info.best_link
        if link:
            return UnsubscribeResult(
                success=False,
                method=MANUAL_FALLBACK,
                message=f'Manual unsubscribe required. Visit: {link}',
                url=link,
                error='Automated unsubscribe not available',
            )
        if info.header_mailto:
            return UnsubscribeResult(
                success=False,
                method=MANUAL_FALLBACK,
                message=f'Manual unsubscribe required. Email: {info.header_mailto}',
                url=f'mailto:{info.header_mailto}',
                error='Automated unsubscribe not available',
            )
        return UnsubscribeResult(
            success=False,
            method=MANUAL_FALLBACK,
            message=f'No unsubscribe method found for emails from {message.sender}',
            error='No unsubscribe options detected',
        )

    return UnsubscribeStrategy(MANUAL_FALLBACK, 0, can_handle, execute)


def default_strategies(
    http: HttpUnsubscribeExecutor,
    browser: Optional[BrowserAutomationExecutor] = None,
) -> List[UnsubscribeStrategy]:
    strategies = [
        list_header_strategy(http),
        simple_link_strategy(http),
        manual_fallback_strategy(),
    ]
    if browser is not None:
        strategies.append(browser_automation_strategy(browser))
    return sorted(strategies, key=lambda s: s.priority, reverse=True)
