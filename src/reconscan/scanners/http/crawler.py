"""Breadth-first web crawler."""

import re
import time
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlsplit

import httpx

from reconscan.core.exceptions import ConfigurationError
from reconscan.infrastructure.concurrency import WorkerPool
from reconscan.infrastructure.http import HTTPClient
from reconscan.infrastructure.ratelimit import PerHostRateLimiter
from reconscan.infrastructure.seen import URLSeenSet
from reconscan.models.http import CrawlResult, CrawlType
from reconscan.models.options import CrawlOptions, ProbeOptions
from reconscan.scanners.base import BaseScanner
from reconscan.scanners.http.prober import HTTPProber

BODY_LIMIT = 1024 * 1024
CRAWL_MAX_REDIRECTS = 3

SKIPPED_PREFIXES = ("#", "javascript:", "mailto:", "data:")

HREF_PATTERN = re.compile(r"""href=["']([^"']+)["']""")
SRC_PATTERN = re.compile(r"""src=["']([^"']+)["']""")
FORM_PATTERN = re.compile(r"""<form[^>]*action=["']([^"']+)["'][^>]*>(.*?)</form>""", re.DOTALL)
INPUT_NAME_PATTERN = re.compile(r"""name=["']([^"']+)["']""")

JS_ENDPOINT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"""["'](/api/[^"']+)["']"""),
    re.compile(r"""["'](/v[0-9]+/[^"']+)["']"""),
    re.compile(r"""["'](/graphql[^"']*)["']"""),
    re.compile(r"""fetch\(["']([^"']+)["']"""),
    re.compile(r"""axios\.[a-z]+\(["']([^"']+)["']"""),
    re.compile(r"""url:\s*["']([^"']+)["']"""),
)


@dataclass(frozen=True)
class CrawlJob:
    url: str
    depth: int
    seed_host: str


@dataclass(frozen=True)
class DiscoveredForm:
    url: str
    params: list[str] = field(default_factory=list)


def resolve_url(href: str, base: str) -> str | None:
    """Absolute http(s) URL for an href, or None when it is not followable."""
    href = href.strip()
    if not href or href.lower().startswith(SKIPPED_PREFIXES):
        return None
    try:
        resolved = urljoin(base, href)
        scheme = urlsplit(resolved).scheme
    except ValueError:
        return None
    if scheme not in ("http", "https"):
        return None
    return resolved


def _unique_resolved(matches: list[str], base: str) -> list[str]:
    found: list[str] = []
    for match in matches:
        url = resolve_url(match, base)
        if url and url not in found:
            found.append(url)
    return found


def extract_links(body: str, base: str) -> list[str]:
    """href and src targets, resolved against the base URL."""
    return _unique_resolved(HREF_PATTERN.findall(body) + SRC_PATTERN.findall(body), base)


def extract_js_endpoints(body: str, base: str) -> list[str]:
    """API endpoints referenced from inline scripts."""
    matches: list[str] = []
    for pattern in JS_ENDPOINT_PATTERNS:
        matches.extend(pattern.findall(body))
    return _unique_resolved(matches, base)


def extract_forms(body: str, base: str) -> list[DiscoveredForm]:
    """Form actions with their input names."""
    forms = []
    for action, content in FORM_PATTERN.findall(body):
        url = resolve_url(action, base) or base
        forms.append(DiscoveredForm(url=url, params=INPUT_NAME_PATTERN.findall(content)))
    return forms


def host_of(url: str) -> str:
    """Lowercased hostname, without userinfo or port."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def is_same_host(url: str, host: str) -> bool:
    """True for the host itself and any of its subdomains."""
    candidate = host_of(url)
    host = host.lower()
    return bool(candidate) and (candidate == host or candidate.endswith("." + host))


def classify_url(url: str, content_type: str = "") -> CrawlType:
    lower = url.lower()
    if "/api/" in lower or "/graphql" in lower:
        return "api"
    if lower.endswith(".js"):
        return "js"
    if lower.endswith(".css"):
        return "css"
    if "json" in content_type:
        return "api"
    if "javascript" in content_type:
        return "js"
    return "page"


def discover_links(body: str, base: str, seed_host: str, same_host: bool = True) -> list[str]:
    """Links of a page that the crawler may follow."""
    links = extract_links(body, base)
    if not same_host:
        return links
    return [link for link in links if is_same_host(link, seed_host)]


def normalize_seed(url: str) -> str:
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    return url


class WebCrawler(BaseScanner[CrawlResult]):
    """Crawls from seed URLs, reporting pages, forms, and script endpoints."""

    def __init__(
        self,
        options: CrawlOptions,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self.options = options
        self.prober = HTTPProber(
            ProbeOptions(
                workers=options.workers,
                timeout=options.timeout,
                follow_redirects=True,
                max_redirects=CRAWL_MAX_REDIRECTS,
                tls_verify=False,
                retries=0,
                rate_limit=options.rate_limit,
                user_agent=options.user_agent,
                deadline_minutes=options.deadline_minutes,
            ),
            transport=transport,
        )
        # Global bucket shared with the prober, plus one bucket per host
        self.limiter = self.prober.limiter
        self.host_limiter = PerHostRateLimiter(options.per_host_rate)

    @property
    def name(self) -> str:
        return "crawler"

    @property
    def description(self) -> str:
        return "Breadth-first crawling with link, form and API endpoint discovery"

    def get_capabilities(self) -> list[str]:
        return [
            "Depth and URL count limits",
            "Same-host filtering",
            "Inline script endpoint extraction",
            "Form discovery",
            "Per-host rate limiting",
        ]

    async def crawl(self) -> list[CrawlResult]:
        """Crawl breadth-first until the frontier is empty or a limit is hit."""
        seeds = [normalize_seed(url) for url in self.options.start_urls if url.strip()]
        if not seeds:
            raise ConfigurationError("At least one start URL is required")

        start_time = time.monotonic()
        seen = URLSeenSet()
        results: list[CrawlResult] = []

        self.logger.info(
            "crawl_started",
            seeds=len(seeds),
            max_depth=self.options.max_depth,
            max_urls=self.options.max_urls,
        )

        async def body() -> None:
            pool: WorkerPool[CrawlJob, None] = WorkerPool(
                self.options.workers, buffer_size=self.options.max_urls
            )
            async with self.prober.client() as http, pool:

                async def worker(worker_id: int, job: CrawlJob) -> None:
                    # Seeds always run; later jobs stop once the cap is reached
                    if job.depth > 0 and self._at_cap(seen):
                        return None
                    await self.host_limiter.wait(host_of(job.url))
                    await self._crawl_url(http, job, seen, results, pool)
                    return None

                pool.start(worker)
                for url in seeds:
                    if seen.mark(url):
                        await pool.submit(CrawlJob(url=url, depth=0, seed_host=host_of(url)))
                await pool.join()

        await self._run_with_deadline(body, self.options.deadline_seconds)

        self.logger.info(
            "crawl_completed",
            results=len(results),
            urls_seen=len(seen),
            duration=time.monotonic() - start_time,
        )
        return results

    def _at_cap(self, seen: URLSeenSet) -> bool:
        return len(seen) >= self.options.max_urls

    def _claim(self, seen: URLSeenSet, url: str) -> bool:
        """Mark a URL as seen unless it is a duplicate or the cap is reached."""
        return not self._at_cap(seen) and seen.mark(url)

    async def _crawl_url(
        self,
        http: HTTPClient,
        job: CrawlJob,
        seen: URLSeenSet,
        results: list[CrawlResult],
        pool: WorkerPool[CrawlJob, None],
    ) -> None:
        probe = await self.prober.probe_url(job.url, http)
        if not probe.success:
            return

        content_type = probe.content_type or ""
        results.append(CrawlResult(
            url=job.url,
            source="crawl",
            depth=job.depth,
            type=classify_url(job.url, content_type),
        ))

        if job.depth >= self.options.max_depth or "text/html" not in content_type:
            return

        body = await self.prober.fetch_body(job.url, BODY_LIMIT, http)
        if not body:
            return
        base = probe.final_url or job.url

        for link in discover_links(body, base, job.seed_host, self.options.same_host):
            if self._at_cap(seen):
                break
            if seen.mark(link):
                next_job = CrawlJob(url=link, depth=job.depth + 1, seed_host=job.seed_host)
                if not pool.try_submit(next_job):
                    self.logger.debug("crawl_queue_full", url=link)

        if self.options.js_parse:
            for endpoint in extract_js_endpoints(body, base):
                if self._claim(seen, endpoint):
                    results.append(CrawlResult(
                        url=endpoint, source="js-parse", depth=job.depth, type="api",
                    ))

        for form in extract_forms(body, base):
            if self._claim(seen, form.url):
                results.append(CrawlResult(
                    url=form.url,
                    source="form",
                    depth=job.depth,
                    type="form",
                    params=form.params or None,
                ))
