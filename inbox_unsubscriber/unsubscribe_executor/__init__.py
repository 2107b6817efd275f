"""
Unsubscribe execution: HTTP requests and browser automation.
"""

from .http_executor import HttpUnsubscribeExecutor, ExecutionResult
from .browser_executor import (
    BrowserAutomationExecutor, BrowserAutomation, VisionAnalyzer,
    BrowserAction, VisionPlan, BrowserRunResult
)

__all__ = [
    'HttpUnsubscribeExecutor', 'ExecutionResult',
    'BrowserAutomationExecutor', 'BrowserAutomation', 'VisionAnalyzer',
    'BrowserAction', 'VisionPlan', 'BrowserRunResult'
]
