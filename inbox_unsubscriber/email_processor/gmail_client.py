"""
Message provider backed by the Gmail API.

The Gmail client library is blocking; every call is pushed onto a worker
thread so the scan's event loop keeps running. Fetched messages and search
results go through the shared cache.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ..exceptions import NotAuthenticatedError, ProviderError
from ..services.cache import CacheService, MISS
from .message import MessageRecord

logger = logging.getLogger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]
ARCHIVE_BATCH_SIZE = 100
PAGE_SIZE = 100


class MessageProvider(Protocol):
    """Inbox access consumed by the pipeline."""

    async def search(self, query: str, max_results: int) -> List[MessageRecord]: ...

    async def get(self, message_id: str) -> MessageRecord: ...

    async def archive(self, message_ids: Sequence[str]) -> List[str]: ...

    def is_authenticated(self) -> bool: ...


def _is_retryable_http_error(exc: BaseException) -> bool:
    return isinstance(exc, HttpError) and exc.resp.status in (429, 500, 503)


@retry(
    retry=retry_if_exception(_is_retryable_http_error),
    wait=wait_exponential(multiplier=1, min=1, max=30),
    stop=stop_after_attempt(4),
    reraise=True,
)
def _execute(request):
    return request.execute()


def load_credentials(token_path: Path) -> Optional[Credentials]:
    """Load stored OAuth credentials, refreshing them if expired.

    Returns:
        Valid credentials, or None when the token is missing or unusable
    """
    if not token_path.exists():
        return None
    try:
        creds = Credentials.from_authorized_user_file(str(token_path), GMAIL_SCOPES)
        if creds.expired and creds.refresh_token:
            creds.refresh(Request())
            token_path.write_text(creds.to_json())
    except (RefreshError, ValueError) as e:
        logger.warning(f"Stored Gmail token is not usable: {e}")
        return None
    return creds if creds.valid else None


class GmailProvider:
    """Async message provider over a Gmail API service resource.

    Args:
        cache: Shared cache for messages and search results
        service: Pre-built Gmail service resource; built from ``token_path`` when omitted
        token_path: Stored OAuth token file
    """

    def __init__(self, cache: CacheService, service=None, token_path: Optional[Path] = None):
        self.cache = cache
        self.token_path = token_path
        self._service = service

    def is_authenticated(self) -> bool:
        if self._service is not None:
            return True
        if self.token_path is None:
            return False
        return load_credentials(self.token_path) is not None

    def _get_service(self):
        if self._service is None:
            creds = load_credentials(self.token_path) if self.token_path else None
            if creds is None:
                raise NotAuthenticatedError("Not authenticated", {'token_path': self.token_path})
            self._service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        return self._service

    def _list_ids(self, query: str, max_results: int) -> List[str]:
        service = self._get_service()
        ids: List[str] = []
        page_token = None
        while len(ids) < max_results:
            kwargs = {"userId": "me", "q": query, "maxResults": min(PAGE_SIZE, max_results - len(ids))}
            if page_token:
                kwargs["pageToken"] = page_token
            resp = _execute(service.users().messages().list(**kwargs))
            ids.extend(m["id"] for m in resp.get("messages", []))
            page_token = resp.get("nextPageToken")
            if not page_token:
                break
        return ids[:max_results]

    def _fetch(self, message_id: str) -> MessageRecord:
        service = self._get_service()
        raw = _execute(service.users().messages().get(userId="me", id=message_id, format="full"))
        return MessageRecord.from_gmail(raw)

    async def get(self, message_id: str) -> MessageRecord:
        cached = self.cache.get_cached_message(message_id)
        if cached is not MISS:
            return cached
        try:
            message = await asyncio.to_thread(self._fetch, message_id)
        except HttpError as e:
            raise ProviderError(f"Failed to fetch message: {e}", {'message_id': message_id}) from e
        self.cache.cache_message(message)
        return message

    async def search(self, query: str, max_results: int) -> List[MessageRecord]:
        """Search the inbox and fetch every hit.

        Individual fetch failures are logged and skipped.
        """
        cached = self.cache.get_cached_search_results(query, max_results)
        if cached is not MISS:
            return cached
        try:
            ids = await asyncio.to_thread(self._list_ids, query, max_results)
        except HttpError as e:
            raise ProviderError(f"Search failed: {e}", {'query': query}) from e

        messages = []
        for message_id in ids:
            try:
                messages.append(await self.get(message_id))
            except ProviderError as e:
                logger.warning(f"Skipping message during search '{query}': {e}")
        self.cache.cache_search_results(query, max_results, messages)
        logger.info(f"Search '{query}' returned {len(messages)} messages")
        return messages

    def _archive_sync(self, message_ids: List[str]) -> List[str]:
        service = self._get_service()
        archived: List[str] = []
        for start in range(0, len(message_ids), ARCHIVE_BATCH_SIZE):
            chunk = message_ids[start:start + ARCHIVE_BATCH_SIZE]
            try:
                _execute(service.users().messages().batchModify(
                    userId="me", body={"ids": chunk, "removeLabelIds": ["INBOX"]}
                ))
                archived.extend(chunk)
                continue
            except HttpError as e:
                logger.warning(f"Batch archive failed, retrying per message: {e}")
            for message_id in chunk:
                try:
                    _execute(service.users().messages().modify(
                        userId="me", id=message_id, body={"removeLabelIds": ["INBOX"]}
                    ))
                    archived.append(message_id)
                except HttpError as e:
                    logger.error(f"Failed to archive {message_id}: {e}")
        return archived

    async def archive(self, message_ids: Sequence[str]) -> List[str]:
        """Remove the INBOX label from each id, best effort.

        Returns:
            Ids that were archived
        """
        ids = list(message_ids)
        if not ids:
            return []
        archived = await asyncio.to_thread(self._archive_sync, ids)
        for message_id in archived:
            self.cache.delete('message', message_id)
        logger.info(f"Archived {len(archived)}/{len(ids)} messages")
        return archived
