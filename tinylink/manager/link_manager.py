"""
LinkManager module for TinyLink.

Responsibilities:
    - Validate destination URLs and custom codes
    - Allocate a random short code when no custom code is given
    - Insert through the store, which alone decides uniqueness
    - Redirect: look up the link, count the click atomically, return the destination
    - Read, list and delete links

Design notes:
    - Storage is an injected dependency; the manager keeps no link state of its own
      and re-reads the store on every call.
    - Conflict comes only from the store's insert. There is no "exists?" pre-check,
      which would race with concurrent creates.
    - A generated code that happens to collide is NOT retried: the create call fails
      with Conflict, exactly as a taken custom code does.
    - Errors propagate unchanged (InvalidInput / Conflict / NotFound / Unavailable);
      the manager never retries on Unavailable.
"""

import ipaddress
import logging
import re
from typing import Callable, List, Optional
from urllib.parse import urlparse

from ..errors import InvalidInput
from ..models import Link
from ..storage.base import BaseStorage
from .codes import RandomCodeGenerator, is_valid_code

log = logging.getLogger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https", "ftp"})

INVALID_URL_MESSAGE = "Invalid URL. Please include http:// or https://"
INVALID_CODE_MESSAGE = "Custom code must be 6-8 characters and contain only letters and numbers"

CodeGenerator = Callable[[], str]

_HOST_LABEL = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?")
_FORBIDDEN_CHARS = frozenset("<>\x7f")


def _is_valid_host(host: str) -> bool:
    """Dot-separated DNS labels, or an IPv4/IPv6 literal."""
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    if len(host) > 253:
        return False
    return all(_HOST_LABEL.fullmatch(label) for label in host.rstrip(".").split("."))


def is_valid_destination(url: str) -> bool:
    """
    True if `url` is an absolute URL with an explicit allowed scheme and a
    syntactically valid host.

    Whitespace, control characters and angle brackets anywhere in the URL are rejected.
    """
    if not isinstance(url, str) or not url:
        return False
    if any(ch.isspace() or ord(ch) < 0x20 or ch in _FORBIDDEN_CHARS for ch in url):
        return False
    try:
        parsed = urlparse(url)
        # .port raises ValueError on a malformed port
        parsed.port
    except ValueError:
        return False
    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.hostname:
        return False
    return _is_valid_host(parsed.hostname)


class LinkManager:
    """
    Coordinates creation, redirect and lookup rules for short links.

    LLM Prompt Example:
        "Show how injecting the storage backend and code generator into a service
        class keeps the business rules testable with an in-memory store."
    """

    def __init__(self, storage: BaseStorage, code_generator: Optional[CodeGenerator] = None):
        """
        Args:
            storage (BaseStorage): Backend storage instance.
            code_generator (Optional[CodeGenerator]): Zero-arg callable returning a
                candidate code. Defaults to RandomCodeGenerator().
        """
        self.storage = storage
        self.code_generator = code_generator or RandomCodeGenerator()

    # ---------------------------------------------------------------------
    # Validation Helpers
    # ---------------------------------------------------------------------
    def _validate_url(self, url: str) -> None:
        if not is_valid_destination(url):
            raise InvalidInput(INVALID_URL_MESSAGE)

    def _validate_code(self, code: str) -> None:
        if not is_valid_code(code):
            raise InvalidInput(INVALID_CODE_MESSAGE)

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def create_link(self, destination: str, custom_code: Optional[str] = None) -> Link:
        """
        Create a short link for `destination`.

        Rules:
            - destination must be absolute with an explicit scheme and a host.
            - custom_code, when given (non-empty), must be 6-8 chars of [A-Za-z0-9].
            - otherwise one random code is generated (no retry on collision).
            - the store's insert is the only uniqueness check.

        Returns:
            Link: The stored link (clicks=0, last_clicked_at=None).

        Raises:
            InvalidInput: Malformed URL or custom code.
            Conflict: Code already taken.
            Unavailable: Storage failure.
        """
        self._validate_url(destination)

        if custom_code:
            self._validate_code(custom_code)
            code = custom_code
        else:
            code = self.code_generator()

        link = self.storage.insert(code, destination)
        log.info("Created link %s -> %s", link.code, link.destination)
        return link

    def redirect(self, code: str) -> str:
        """
        Resolve `code` to its destination and count exactly one click.

        Raises:
            NotFound: No such code (including one deleted between lookup and count).
            Unavailable: Storage failure.
        """
        self.storage.find_by_code(code)
        link = self.storage.increment_clicks(code)
        log.debug("Redirect %s -> %s (clicks=%d)", code, link.destination, link.clicks)
        return link.destination

    def get_link(self, code: str) -> Link:
        return self.storage.find_by_code(code)

    def list_links(self) -> List[Link]:
        return self.storage.list_all()

    def delete_link(self, code: str) -> None:
        """Hard-delete the link; its code becomes available to future creates."""
        self.storage.delete(code)
        log.info("Deleted link %s", code)
