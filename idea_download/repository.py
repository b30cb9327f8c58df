"""
Remote repository index.

The publisher exposes no structured API: build identifiers are scraped from the
repository listing page, where each build appears as a link of the form
``<build_url>/<identifier>/...``. Identifiers are returned in the order the
server presents them, which is expected to be most-recent-first.
"""

from __future__ import annotations

import logging
import re
import urllib.request
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator

from .errors import NetworkError, NoMatchFound
from .patterns import VersionPattern

logger = logging.getLogger(__name__)

USER_AGENT = "idea-download/1.0"


def http_get(url: str, timeout: int = 30, headers: dict[str, str] | None = None) -> bytes:
    """Perform HTTP GET request.

    Args:
        url: URL to fetch
        timeout: Timeout in seconds
        headers: Optional HTTP headers

    Returns:
        Response body as bytes

    Raises:
        NetworkError: If request fails
    """
    try:
        default_headers = {"User-Agent": USER_AGENT}
        if headers:
            default_headers.update(headers)

        req = urllib.request.Request(url, headers=default_headers)
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return response.read()
    except Exception as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e


def identifier_shape(identifier: str) -> int:
    """Width of the leading number: 4 for ``2016.3.4``, 3 for build ``163.10154``, 0 for none."""
    match = re.search(r"\d+", identifier)
    return len(match.group(0)) if match else 0


def version_key(identifier: str) -> tuple[int, ...]:
    """
    Ordering key comparable across release versions and build numbers.

    A build branch encodes its release (``171`` is 2017.1), so ``171.3780.107``
    orders with release ``2017.1``. Within one release, build numbers order
    after release versions. Two-digit releases (``15.0.6``) map to ``2015``.

    Examples:
        ``"2016.3.4"`` -> ``(2016, 3, 0, 4)``
        ``"163.123"`` -> ``(2016, 3, 1, 123)``
        ``"LATEST-EAP-SNAPSHOT"`` -> ``()``
    """
    numbers = re.findall(r"\d+", identifier)
    if not numbers:
        return ()
    head = numbers[0]
    rest = [int(n) for n in numbers[1:]]
    if len(head) == 3:
        branch = int(head)
        return (2000 + branch // 10, branch % 10, 1, *rest)
    year = 2000 + int(head) if len(head) == 2 else int(head)
    minor = rest[0] if rest else 0
    return (year, minor, 0, *rest[1:])


def extract_identifiers(text: str, build_url: str) -> Iterator[str]:
    """Yield build identifiers found between ``build_url/`` and the next ``/``.

    Duplicates (the same build linked several times) are yielded once, at the
    position of their first occurrence.
    """
    anchor = re.compile(re.escape(build_url.rstrip("/")) + r"/([^/\s\"'<>]+)/")
    seen: set[str] = set()
    for match in anchor.finditer(text):
        identifier = match.group(1)
        if identifier not in seen:
            seen.add(identifier)
            yield identifier


class RepositoryIndex(ABC):
    """Ordered source of published version identifiers."""

    @abstractmethod
    def iter_identifiers(self) -> Iterator[str]:
        """Yield every published identifier, most-recent-first."""

    def list_candidates(
        self,
        max_count: int | None = None,
        pattern: VersionPattern | None = None,
    ) -> list[str]:
        """
        List published identifiers, most-recent-first.

        Args:
            max_count: Stop after this many matching identifiers (None for all)
            pattern: Only include identifiers matching this pattern

        Returns:
            Matching identifiers in repository order
        """
        candidates: list[str] = []
        if max_count is not None and max_count <= 0:
            return candidates

        # Release versions and build numbers are interleaved in the listing;
        # order is only checked among identifiers of the same shape.
        previous: dict[int, str] = {}
        warned = False
        for identifier in self.iter_identifiers():
            shape = identifier_shape(identifier)
            earlier = previous.get(shape)
            out_of_order = earlier is not None and version_key(identifier) > version_key(earlier)
            if shape and out_of_order and not warned:
                logger.warning(
                    "Repository listing is not ordered most-recent-first "
                    f"({identifier} listed after {earlier}); results may be stale."
                )
                warned = True
            previous[shape] = identifier

            if pattern is not None and not pattern.matches(identifier):
                continue
            candidates.append(identifier)
            if max_count is not None and len(candidates) >= max_count:
                break
        return candidates

    def resolve_best(self, pattern: VersionPattern) -> str:
        """
        Resolve the most recent identifier matching the pattern.

        Raises:
            NoMatchFound: If nothing matches, or the listing is empty
        """
        matches = self.list_candidates(1, pattern)
        if not matches:
            raise NoMatchFound(pattern.describe())
        logger.debug(f"Resolved {pattern.describe()} to {matches[0]}")
        return matches[0]


class ScrapingRepositoryIndex(RepositoryIndex):
    """
    Index backed by the publisher's HTML listing page.

    The page is fetched at most once per instance.

    Args:
        listing_url: Page to fetch
        build_url: URL prefix preceding each identifier
        timeout: Fetch timeout in seconds
        sort_candidates: Sort identifiers most-recent-first instead of trusting server order
        fetch: Callable ``(url, timeout) -> bytes``; defaults to ``http_get``
    """

    def __init__(
        self,
        listing_url: str,
        build_url: str,
        timeout: int = 30,
        sort_candidates: bool = False,
        fetch: Callable[..., bytes] | None = None,
    ):
        self.listing_url = listing_url
        self.build_url = build_url
        self.timeout = timeout
        self.sort_candidates = sort_candidates
        self._fetch = fetch or http_get
        self._text: str | None = None

    @classmethod
    def from_settings(cls, settings, fetch: Callable[..., bytes] | None = None) -> "ScrapingRepositoryIndex":
        """Build an index from ``RepositorySettings``."""
        return cls(
            listing_url=settings.listing_url,
            build_url=settings.build_url,
            timeout=settings.timeout_seconds,
            sort_candidates=settings.sort_candidates,
            fetch=fetch,
        )

    def listing(self) -> str:
        if self._text is None:
            logger.debug(f"Fetching repository listing {self.listing_url}")
            body = self._fetch(self.listing_url, timeout=self.timeout)
            self._text = body.decode("utf-8", errors="replace")
        return self._text

    def iter_identifiers(self) -> Iterator[str]:
        identifiers = extract_identifiers(self.listing(), self.build_url)
        if self.sort_candidates:
            return iter(sorted(identifiers, key=version_key, reverse=True))
        return identifiers


class StaticRepositoryIndex(RepositoryIndex):
    """Index over a fixed list of identifiers, e.g. a recorded listing."""

    def __init__(self, identifiers: Iterable[str]):
        self.identifiers = list(identifiers)

    def iter_identifiers(self) -> Iterator[str]:
        return iter(self.identifiers)
