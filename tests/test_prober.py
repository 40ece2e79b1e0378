"""
tests/test_prober.py
HTTP probing against httpx.MockTransport.
"""

import httpx
import pytest

from reconscan.core.exceptions import ConfigurationError
from reconscan.infrastructure.ratelimit import AdaptiveRateLimiter
from reconscan.models import ProbeOptions
from reconscan.scanners.http import HTTPProber, candidate_urls, detect_technologies, extract_title

PAGE = """<html><head><title> Example Domain </title>
<script src="/static/jquery.min.js"></script></head>
<body><div id="wp-content">hi</div></body></html>"""


class Recorder:
    """MockTransport handler that refuses HTTPS and serves a page over HTTP."""

    def __init__(self, https: bool = False, http: bool = True) -> None:
        self.https = https
        self.http = http
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/old":
            return httpx.Response(301, headers={"Location": "/new"})
        allowed = self.https if request.url.scheme == "https" else self.http
        if not allowed:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(
            200,
            headers={
                "Content-Type": "text/html; charset=utf-8",
                "Server": "nginx/1.24.0",
                "X-Powered-By": "PHP/8.2",
            },
            text=PAGE,
        )

    @property
    def schemes(self) -> list[str]:
        return [r.url.scheme for r in self.requests]


def make_prober(handler, targets=None, **overrides) -> HTTPProber:
    options = ProbeOptions(
        targets=targets or [],
        workers=4,
        timeout=2.0,
        retries=overrides.pop("retries", 0),
        rate_limit=1000,
        **overrides,
    )
    return HTTPProber(options, transport=httpx.MockTransport(handler))


class TestHelpers:

    def test_candidate_urls(self):
        assert candidate_urls("example.com") == ["https://example.com", "http://example.com"]
        assert candidate_urls("http://example.com:8080") == ["http://example.com:8080"]

    def test_extract_title(self):
        assert extract_title("<TITLE lang='en'>  Hi  </TITLE>") == "Hi"
        assert extract_title("<p>no title</p>") == ""

    def test_long_title_is_truncated(self):
        title = extract_title(f"<title>{'x' * 150}</title>")
        assert title == "x" * 100 + "..."

    def test_detect_technologies(self):
        headers = {"server": "cloudflare", "X-Powered-By": "Express"}
        body = '<script id="__NEXT_DATA__"></script><script src="jquery.js">'
        assert detect_technologies(headers, body) == ["Cloudflare", "Express.js", "React", "jQuery"]


class TestHTTPProber:

    @pytest.mark.asyncio
    async def test_https_is_tried_before_http(self):
        handler = Recorder(https=False, http=True)
        result = await make_prober(handler).probe_target("example.com")

        assert handler.schemes == ["https", "http"]
        assert result.url == "http://example.com"
        assert result.status_code == 200

    @pytest.mark.asyncio
    async def test_https_success_skips_http(self):
        handler = Recorder(https=True)
        result = await make_prober(handler).probe_target("example.com")

        assert handler.schemes == ["https"]
        assert result.url == "https://example.com"

    @pytest.mark.asyncio
    async def test_result_fields(self):
        result = await make_prober(Recorder(https=True)).probe_url("https://example.com")

        assert result.title == "Example Domain"
        assert result.server == "nginx/1.24.0"
        assert result.content_type == "text/html; charset=utf-8"
        assert result.technologies == ["Nginx", "PHP", "jQuery", "WordPress"]
        assert result.headers["Server"] == "nginx/1.24.0"
        assert result.redirected is None
        assert result.final_url is None
        assert result.response_time_ms >= 0

    @pytest.mark.asyncio
    async def test_redirect_is_reported(self):
        result = await make_prober(Recorder(https=True)).probe_url("https://example.com/old")

        assert result.status_code == 200
        assert result.redirected is True
        assert result.final_url == "https://example.com/new"

    @pytest.mark.asyncio
    async def test_redirects_not_followed(self):
        prober = make_prober(Recorder(https=True), follow_redirects=False)
        result = await prober.probe_url("https://example.com/old")

        assert result.status_code == 301
        assert result.redirected is None

    @pytest.mark.asyncio
    async def test_unreachable_target_has_status_zero(self):
        handler = Recorder(https=False, http=False)
        result = await make_prober(handler).probe_target("example.com")

        assert result.status_code == 0
        assert not result.success

    @pytest.mark.asyncio
    async def test_retries_apply_per_url(self, monkeypatch):
        monkeypatch.setattr("reconscan.scanners.http.prober.RETRY_BASE_DELAY", 0.001)
        handler = Recorder(https=False, http=False)
        prober = make_prober(handler, retries=1)
        await prober.probe_target("example.com")

        assert handler.schemes == ["https", "https", "http", "http"]

    @pytest.mark.asyncio
    async def test_probe_returns_only_responsive_targets(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "down.example.com":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, text="<title>up</title>")

        prober = make_prober(handler, targets=["up.example.com", "down.example.com"])
        results = await prober.probe()

        assert [r.url for r in results] == ["https://up.example.com"]
        assert results[0].title == "up"

    @pytest.mark.asyncio
    async def test_probe_without_targets_fails(self):
        with pytest.raises(ConfigurationError):
            await make_prober(Recorder()).probe()

    @pytest.mark.asyncio
    async def test_fetch_page_caps_the_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="a" * 5000)

        page = await make_prober(handler).fetch_page("https://example.com", 1000)
        assert len(page.body) == 1000
        assert page.truncated

    @pytest.mark.asyncio
    async def test_adaptive_limiter_records_latency(self):
        prober = make_prober(Recorder(https=True), adaptive_rate=True)
        assert isinstance(prober.limiter, AdaptiveRateLimiter)
        assert prober.limiter.min_rate == 100
        assert prober.limiter.max_rate == 2000

        await prober.probe_url("https://example.com")
        assert prober.limiter.sample_count == 1
