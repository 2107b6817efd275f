"""
Browser automation executor for unsubscribe pages that need interaction.

The browser engine and the vision model are external collaborators. This
executor only sequences them: navigate, screenshot, ask the vision model
for an action plan, run the actions, screenshot again. It relays the
outcome and step log; it never interprets screenshots itself.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrowserAction:
    """One instruction for the browser collaborator."""

    action: str
    target: Optional[str] = None
    coordinates: Optional[Tuple[int, int]] = None
    text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BrowserAction':
        coordinates = data.get('coordinates')
        return cls(
            action=str(data.get('action', '')),
            target=data.get('target'),
            coordinates=tuple(coordinates) if coordinates else None,
            text=data.get('text'),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'action': self.action}
        if self.target is not None:
            result['target'] = self.target
        if self.coordinates is not None:
            result['coordinates'] = list(self.coordinates)
        if self.text is not None:
            result['text'] = self.text
        return result


@dataclass(frozen=True)
class VisionPlan:
    """Action plan returned by the vision collaborator."""

    can_process: bool
    steps: Tuple[BrowserAction, ...] = ()
    reasoning: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VisionPlan':
        return cls(
            can_process=bool(data.get('canProcess', data.get('can_process', False))),
            steps=tuple(BrowserAction.from_dict(s) for s in data.get('steps', []) or []),
            reasoning=data.get('reasoning', ''),
        )


class BrowserAutomation(Protocol):
    async def navigate(self, url: str) -> None: ...

    async def screenshot(self) -> str: ...

    async def execute_actions(self, actions: List[Dict[str, Any]]) -> List[str]: ...

    async def close(self) -> None: ...


class VisionAnalyzer(Protocol):
    async def analyze(self, screenshot: str, url: str) -> Dict[str, Any]: ...


@dataclass
class BrowserRunResult:
    success: bool
    steps: List[str] = field(default_factory=list)
    reasoning: str = ''
    error: Optional[str] = None


class BrowserAutomationExecutor:
    """Drive the browser and vision collaborators through one unsubscribe attempt."""

    def __init__(self, browser: BrowserAutomation, vision: VisionAnalyzer):
        self.browser = browser
        self.vision = vision

    async def run(self, url: str) -> BrowserRunResult:
        steps: List[str] = [f"Navigating to {url}"]
        try:
            await self.browser.navigate(url)
            first_screenshot = await self.browser.screenshot()
            steps.append("Captured initial screenshot")

            raw_plan = await self.vision.analyze(first_screenshot, url)
            plan = raw_plan if isinstance(raw_plan, VisionPlan) else VisionPlan.from_dict(raw_plan)
            if not plan.can_process:
                steps.append("Page cannot be processed automatically")
                return BrowserRunResult(success=False, steps=steps, reasoning=plan.reasoning,
                                        error=plan.reasoning or 'Page cannot be processed')

            steps.extend(await self.browser.execute_actions([a.to_dict() for a in plan.steps]))
            await self.browser.screenshot()
            steps.append("Captured final screenshot")
            return BrowserRunResult(success=True, steps=steps, reasoning=plan.reasoning)
        except Exception as e:
            logger.error(f"Browser automation failed for {url}: {e}")
            steps.append(f"Error: {e}")
            return BrowserRunResult(success=False, steps=steps, error=str(e))
        finally:
            try:
                await self.browser.close()
            except Exception as e:
                logger.warning(f"Failed to close browser: {e}")
