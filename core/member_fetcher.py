"""
Member Fetcher — Cursor pagination over enterprise.members.

GitHub returns enterprise members in pages of at most 100 nodes. The fetcher
keeps a single cursor (None for the first page), requests one page at a time,
and follows pageInfo.endCursor until pageInfo.hasNextPage is false:

    fetch_total()  ->  1 call, batchSize=1, gives totalCount + enterprise name
    iter_pages()   ->  ceil(totalCount / page_size) calls, one list of nodes each

Between pages it waits page_delay seconds as a courtesy to the API; the delay
is not a substitute for quota handling.

Failure policy (per page, same cursor):
    RateLimitedError  sleep until reset_at (+1s), or exponential backoff when
                      the server gave no reset time, then retry
    TransientError    exponential backoff, then retry
    anything else     propagates unchanged

Both retry paths are bounded by max_retries; when exhausted the last error
propagates. Pages already yielded are never fetched again.
"""

import time
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from config.settings import MAX_PAGE_SIZE
from .errors import RateLimitedError, TransientError, NotFoundError, MalformedResponseError
from .graphql_queries import BASIC_MEMBERS_QUERY

MAX_BACKOFF_SECONDS = 60


class MemberFetcher:
    """Fetches all members of an enterprise, one page at a time.

    Attributes:
        client: A GitHubGraphQLClient (or anything with execute_graphql()).
        query: The member page query to use (basic or full field set).
        page_size: Members per page, clamped to 1..100.
        page_delay: Seconds to wait between pages.
        max_retries: Retries per page for rate limits and transient errors.
        max_pages: Stop after this many pages (0 = no cap).
        processed: Members yielded so far.
        total: totalCount from the preliminary call (0 until fetched).
    """

    def __init__(self, client, query: str = BASIC_MEMBERS_QUERY, page_size: int = MAX_PAGE_SIZE,
                 page_delay: float = 0.2, max_retries: int = 3, max_pages: int = 0,
                 backoff_base: float = 1.0, debug: bool = False,
                 progress: Optional[Callable[[int, int], None]] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.time):
        self.client = client
        self.query = query
        self.page_size = max(1, min(int(page_size), MAX_PAGE_SIZE))
        self.page_delay = page_delay
        self.max_retries = max_retries
        self.max_pages = max_pages
        self.backoff_base = backoff_base
        self.debug = debug
        self.progress = progress
        self._sleep = sleep
        self._clock = clock
        self.processed = 0
        self.total = 0
        self.pages_fetched = 0

    def fetch_total(self, enterprise_slug: str) -> Tuple[int, str]:
        """Get the member count and display name with a single 1-node request.

        Returns:
            Tuple of (total_count, enterprise_name).
        """
        enterprise = self._fetch_page(enterprise_slug, cursor=None, batch_size=1)
        members = enterprise.get("members") or {}
        self.total = members.get("totalCount") or 0
        return self.total, enterprise.get("name") or enterprise_slug

    def iter_pages(self, enterprise_slug: str) -> Iterator[List[Dict[str, Any]]]:
        """Yield member nodes page by page until the server reports no more pages."""
        cursor = None
        has_next_page = True

        while has_next_page:
            if self.max_pages and self.pages_fetched >= self.max_pages:
                print(f"  Warning: stopping after MAX_PAGES={self.max_pages} pages "
                      f"({self.processed}/{self.total} users fetched)")
                return

            if self.debug:
                where = f"cursor: {cursor[:10]}..." if cursor else "first batch"
                print(f"  Fetching batch of {self.page_size} users ({where})")

            enterprise = self._fetch_page(enterprise_slug, cursor, self.page_size)
            members = enterprise.get("members") or {}
            nodes = [n for n in (members.get("nodes") or []) if n]
            page_info = members.get("pageInfo") or {}

            self.pages_fetched += 1
            self.processed += len(nodes)
            if not self.total:
                self.total = members.get("totalCount") or 0

            has_next_page = bool(page_info.get("hasNextPage"))
            cursor = page_info.get("endCursor")
            if has_next_page and not cursor:
                raise MalformedResponseError("hasNextPage is true but endCursor is missing")

            self._report_progress()
            yield nodes

            if has_next_page and self.page_delay > 0:
                self._sleep(self.page_delay)

    def _report_progress(self):
        percentage = round(self.processed / self.total * 100) if self.total > 0 else 0
        print(f"  Progress: {self.processed}/{self.total} users ({percentage}%)")
        if self.progress:
            self.progress(self.processed, self.total)

    def _fetch_page(self, enterprise_slug: str, cursor: Optional[str], batch_size: int) -> Dict:
        variables = {
            "enterpriseSlug": enterprise_slug,
            "cursor": cursor,
            "batchSize": batch_size,
        }
        data = self._execute_with_retry(variables)

        enterprise = data.get("enterprise")
        if enterprise is None:
            raise NotFoundError(f"Enterprise '{enterprise_slug}' not found or not accessible")
        if "members" not in enterprise:
            raise MalformedResponseError("Response is missing enterprise.members")
        return enterprise

    def _execute_with_retry(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        attempt = 0
        while True:
            try:
                return self.client.execute_graphql(self.query, variables)
            except RateLimitedError as e:
                if attempt >= self.max_retries:
                    raise
                wait = self._rate_limit_wait(e, attempt)
                print(f"  Rate limit hit, waiting {wait:.0f}s before retrying "
                      f"(attempt {attempt + 1}/{self.max_retries})")
            except TransientError as e:
                if attempt >= self.max_retries:
                    raise
                wait = self._backoff(attempt)
                print(f"  Warning: {e}")
                print(f"  Retrying in {wait:.0f}s (attempt {attempt + 1}/{self.max_retries})")
            self._sleep(wait)
            attempt += 1

    def _rate_limit_wait(self, error: RateLimitedError, attempt: int) -> float:
        if error.reset_at is not None:
            return max(0.0, error.reset_at - self._clock()) + 1
        return self._backoff(attempt)

    def _backoff(self, attempt: int) -> float:
        return float(min(self.backoff_base * (2 ** attempt), MAX_BACKOFF_SECONDS))
