"""
HTTP Unsubscribe Executor

Issues the GET or POST request behind an unsubscribe link. Any 2xx
response counts as success; timeouts and connection errors are reported
as failed results rather than raised.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one HTTP unsubscribe request."""

    success: bool
    url: str
    http_method: str
    status_code: Optional[int] = None
    message: str = ''
    error_message: Optional[str] = None
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'success': self.success,
            'url': self.url,
            'http_method': self.http_method,
            'message': self.message,
        }
        if self.status_code is not None:
            result['status_code'] = self.status_code
        if self.error_message:
            result['error_message'] = self.error_message
        if self.dry_run:
            result['dry_run'] = True
        return result


class HttpUnsubscribeExecutor:
    """Execute HTTP GET/POST unsubscribe requests."""

    def __init__(
        self,
        timeout: int = 30,
        user_agent: str = 'Inbox Unsubscriber/1.0',
        dry_run: bool = False,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize HTTP executor.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header for requests
            dry_run: If True, report success without sending anything
            session: Optional requests session for connection reuse
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.dry_run = dry_run
        self.http = session or requests

    def get(self, url: str) -> ExecutionResult:
        return self._send('GET', url)

    def post(self, url: str, body: str) -> ExecutionResult:
        """POST ``body`` as a form-encoded payload (RFC 8058 one-click)."""
        return self._send('POST', url, body)

    def _send(self, http_method: str, url: str, body: Optional[str] = None) -> ExecutionResult:
        if self.dry_run:
            return ExecutionResult(
                success=True,
                url=url,
                http_method=http_method,
                message=f'DRY RUN: Would {http_method} {url}',
                dry_run=True,
            )

        headers = {'User-Agent': self.user_agent}
        try:
            if http_method == 'POST':
                headers['Content-Type'] = FORM_CONTENT_TYPE
                response = self.http.post(url, data=body, headers=headers,
                                          timeout=self.timeout, allow_redirects=True)
            else:
                response = self.http.get(url, headers=headers,
                                         timeout=self.timeout, allow_redirects=True)
        except requests.exceptions.Timeout:
            logger.warning(f"{http_method} {url} timed out")
            return ExecutionResult(
                success=False, url=url, http_method=http_method,
                message='Error executing unsubscribe request',
                error_message=f'Request timed out after {self.timeout} seconds',
            )
        except requests.exceptions.ConnectionError as e:
            logger.warning(f"{http_method} {url} connection error: {e}")
            return ExecutionResult(
                success=False, url=url, http_method=http_method,
                message='Error executing unsubscribe request',
                error_message=f'Connection error: {e}',
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"{http_method} {url} failed: {e}")
            return ExecutionResult(
                success=False, url=url, http_method=http_method,
                message='Error executing unsubscribe request',
                error_message=f'Request error: {e}',
            )

        # Consider 2xx status codes as success
        success = 200 <= response.status_code < 300
        return ExecutionResult(
            success=success,
            url=url,
            http_method=http_method,
            status_code=response.status_code,
            message='Request accepted' if success else f'Failed with status: {response.status_code}',
            error_message=None if success else f'HTTP {response.status_code}',
        )
