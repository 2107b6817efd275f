"""
Immutable message records built from provider payloads.

Body decoding handles Gmail's URL-safe base64 and nested multipart trees.
"""

import base64
import binascii
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

ADDRESS_IN_BRACKETS = re.compile(r'<([^>]+)>')
BARE_ADDRESS = re.compile(r'([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+)')


def decode_base64(data: str) -> str:
    """Decode URL-safe base64 data, repairing missing padding.

    Args:
        data: Base64url encoded string

    Returns:
        Decoded UTF-8 string; undecodable input yields an empty string
    """
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    try:
        return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return ""


def extract_address(from_header: str) -> Optional[str]:
    """Pull the bare address out of a From header value."""
    match = ADDRESS_IN_BRACKETS.search(from_header or '')
    if match and '@' in match.group(1):
        return match.group(1).strip().lower()
    match = BARE_ADDRESS.search(from_header or '')
    if match:
        return match.group(1).lower()
    return None


def extract_domain(from_header: str) -> str:
    """Sender domain from a From header, or "unknown"."""
    address = extract_address(from_header)
    if not address:
        return 'unknown'
    return address.split('@', 1)[1] or 'unknown'


def extract_sender_name(from_header: str) -> str:
    """Display name from a From header.

    Uses the text before ``<`` when present, otherwise the title-cased
    local part of the address.
    """
    value = (from_header or '').strip()
    if '<' in value:
        name = value.split('<', 1)[0].strip().strip('"').strip()
        if name:
            return name
    address = extract_address(value)
    if address:
        local = address.split('@', 1)[0]
        return re.sub(r'[._-]+', ' ', local).title()
    return 'Unknown Sender'


@dataclass(frozen=True)
class MessagePart:
    """A node in a MIME body tree."""

    mime_type: str = 'text/plain'
    data: Optional[str] = None
    parts: Tuple['MessagePart', ...] = ()

    @classmethod
    def from_gmail(cls, payload: Dict[str, Any]) -> 'MessagePart':
        return cls(
            mime_type=payload.get('mimeType', 'text/plain'),
            data=(payload.get('body') or {}).get('data'),
            parts=tuple(cls.from_gmail(p) for p in payload.get('parts', []) or []),
        )

    def decode_body(self) -> Tuple[str, Optional[str]]:
        """Return ``(plain_text, html)`` for this tree.

        The first text/plain and text/html leaves win; multipart nodes
        are walked recursively.
        """
        plain_text = ""
        html_body = None

        def walk(part: 'MessagePart') -> None:
            nonlocal plain_text, html_body
            if part.data:
                if part.mime_type == 'text/html':
                    if html_body is None:
                        html_body = decode_base64(part.data)
                elif part.mime_type.startswith('text/') and not plain_text:
                    plain_text = decode_base64(part.data)
            for child in part.parts:
                walk(child)

        walk(self)
        return plain_text, html_body


@dataclass(frozen=True)
class MessageRecord:
    """A fetched inbox message. Never mutated once built."""

    id: str
    thread_id: str = ''
    headers: Tuple[Tuple[str, str], ...] = ()
    snippet: str = ''
    payload: MessagePart = field(default_factory=MessagePart)
    internal_date: Optional[int] = None

    @classmethod
    def from_gmail(cls, message: Dict[str, Any]) -> 'MessageRecord':
        """Build a record from a Gmail ``users.messages.get`` response."""
        payload = message.get('payload') or {}
        headers = tuple(
            (h.get('name', ''), h.get('value', ''))
            for h in payload.get('headers', []) or []
        )
        internal_date = message.get('internalDate')
        return cls(
            id=message['id'],
            thread_id=message.get('threadId', ''),
            headers=headers,
            snippet=message.get('snippet', ''),
            payload=MessagePart.from_gmail(payload),
            internal_date=int(internal_date) if internal_date is not None else None,
        )

    def get_header(self, name: str, default: str = '') -> str:
        """Case-insensitive header lookup returning the first match."""
        wanted = name.lower()
        for header_name, value in self.headers:
            if header_name.lower() == wanted:
                return value
        return default

    @property
    def sender(self) -> str:
        return self.get_header('From')

    @property
    def subject(self) -> str:
        return self.get_header('Subject')

    @property
    def date(self) -> str:
        return self.get_header('Date')

    @property
    def sender_domain(self) -> str:
        return extract_domain(self.sender)

    @property
    def sender_name(self) -> str:
        return extract_sender_name(self.sender)

    def decode_body(self) -> Tuple[str, Optional[str]]:
        return self.payload.decode_body()
