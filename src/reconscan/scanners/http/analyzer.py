"""Stateless deep analysis of a single HTTP response."""

import hashlib
import re
from collections.abc import Mapping
from itertools import islice

from reconscan.models.http import AnalysisResult, FormDetails, SecurityHeaders
from reconscan.scanners.http.fingerprints import ANALYZER_FINGERPRINTS, detect_technologies
from reconscan.scanners.http.prober import extract_title

MAX_HTML_COMMENTS = 20
MAX_JS_COMMENTS = 10
MAX_EMAILS = 20
MAX_INTERESTING_PER_CATEGORY = 3
MAX_INTERESTING_LENGTH = 200

DESCRIPTION_PATTERNS = (
    re.compile(r"""<meta[^>]*name=["']description["'][^>]*content=["']([^"']+)["']""", re.I),
    re.compile(r"""<meta[^>]*content=["']([^"']+)["'][^>]*name=["']description["']""", re.I),
)

ENDPOINT_PATTERNS = (
    re.compile(r"""["'](/api/v?[0-9]*/[a-zA-Z0-9/_-]+)["']"""),
    re.compile(r"""["'](/graphql[^"']*)["']"""),
    re.compile(r"""["'](/rest/[a-zA-Z0-9/_-]+)["']"""),
    re.compile(r"""["'](https?://[^"']+/api/[^"']+)["']"""),
    re.compile(r"""endpoint:\s*["']([^"']+)["']"""),
    re.compile(r"""baseURL:\s*["']([^"']+)["']"""),
)

PARAMETER_PATTERNS = (
    re.compile(r"""name=["']([a-zA-Z0-9_-]+)["']"""),
    re.compile(r"[?&]([a-zA-Z0-9_]+)="),
)

FORM_PATTERN = re.compile(r"<form([^>]*)>(.*?)</form>", re.I | re.S)
ACTION_PATTERN = re.compile(r"""action=["']([^"']+)["']""")
METHOD_PATTERN = re.compile(r"""method=["']([^"']+)["']""", re.I)
NAME_PATTERN = re.compile(r"""name=["']([^"']+)["']""")

HTML_COMMENT_PATTERN = re.compile(r"<!--([\s\S]*?)-->")
JS_COMMENT_PATTERN = re.compile(
    r"//\s*(?:TODO|FIXME|BUG|HACK|XXX|DEBUG|PASSWORD|SECRET|KEY|TOKEN)[^\n]+"
)

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

INTERESTING_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("AWS Key", re.compile(r"AKIA[0-9A-Z]{16}")),
    ("Private Key", re.compile(r"-----BEGIN (?:RSA |EC )?PRIVATE KEY-----")),
    ("API Key", re.compile(r"""api[_-]?key["']\s*[:=]\s*["'][a-zA-Z0-9_-]{20,}["']""", re.I)),
    ("Password Field", re.compile(r"""password["']\s*[:=]\s*["'][^"']+["']""", re.I)),
    (
        "Internal IP",
        re.compile(
            r"(?:10\.[0-9]{1,3}\.|172\.(?:1[6-9]|2[0-9]|3[01])\.|192\.168\.)"
            r"[0-9]{1,3}\.[0-9]{1,3}"
        ),
    ),
    ("Debug Enabled", re.compile(r"debug\s*[:=]\s*true", re.I)),
    ("Admin Path", re.compile(r"""["'](?:/admin[^"']*|/dashboard[^"']*)["']""")),
    ("File Path", re.compile(r"""(?:/etc/|/var/|C:\\\\|/home/)[^\s"'<>]+""")),
    ("SQL Query", re.compile(r"(?:SELECT|INSERT|UPDATE|DELETE|DROP|CREATE)\s+.+FROM", re.I)),
    ("Backup File", re.compile(r"""["'][^"']+\.(?:bak|backup|old|sql|tar|zip)["']""", re.I)),
)


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def hash_body(body: str) -> str:
    """MD5 of the body, for change detection between runs."""
    return hashlib.md5(body.encode("utf-8", errors="replace")).hexdigest()


def extract_description(body: str) -> str:
    for pattern in DESCRIPTION_PATTERNS:
        match = pattern.search(body)
        if match:
            return match.group(1).strip()
    return ""


def extract_endpoints(body: str) -> list[str]:
    found: list[str] = []
    for pattern in ENDPOINT_PATTERNS:
        found.extend(pattern.findall(body))
    return _unique(found)


def extract_parameters(body: str) -> list[str]:
    found: list[str] = []
    for pattern in PARAMETER_PATTERNS:
        found.extend(pattern.findall(body))
    return _unique(found)


def extract_form_details(body: str) -> list[FormDetails]:
    forms = []
    for attrs, content in FORM_PATTERN.findall(body):
        action = ACTION_PATTERN.search(attrs)
        method = METHOD_PATTERN.search(attrs)
        forms.append(FormDetails(
            action=action.group(1) if action else "",
            method=method.group(1).upper() if method else "GET",
            fields=NAME_PATTERN.findall(content),
        ))
    return forms


def extract_comments(body: str) -> list[str]:
    """HTML comments of plausible length, plus keyword-tagged JS comments."""
    comments = []
    for match in islice(HTML_COMMENT_PATTERN.finditer(body), MAX_HTML_COMMENTS):
        comment = match.group(1).strip()
        if 5 < len(comment) < 500:
            comments.append(comment)

    for match in islice(JS_COMMENT_PATTERN.finditer(body), MAX_JS_COMMENTS):
        comments.append(match.group(0))
    return comments


def extract_emails(body: str) -> list[str]:
    emails: list[str] = []
    for match in EMAIL_PATTERN.finditer(body):
        email = match.group(0)
        if email not in emails:
            emails.append(email)
            if len(emails) >= MAX_EMAILS:
                break
    return emails


def analyze_security_headers(headers: Mapping[str, str]) -> SecurityHeaders:
    """Security header values; missing_count covers CSP, HSTS, XFO and XCTO."""
    lowered = {name.lower(): value for name, value in headers.items()}

    protective = {
        "csp": lowered.get("content-security-policy"),
        "hsts": lowered.get("strict-transport-security"),
        "x_frame_options": lowered.get("x-frame-options"),
        "x_content_type_options": lowered.get("x-content-type-options"),
    }
    missing = sum(1 for value in protective.values() if value is None)

    return SecurityHeaders(
        **protective,
        x_xss_protection=lowered.get("x-xss-protection"),
        cors=lowered.get("access-control-allow-origin"),
        missing_count=missing,
    )


def find_interesting(body: str) -> list[str]:
    """Category-labelled matches of leak and misconfiguration patterns."""
    interesting = []
    for category, pattern in INTERESTING_PATTERNS:
        for match in islice(pattern.finditer(body), MAX_INTERESTING_PER_CATEGORY):
            text = match.group(0)
            if len(text) < MAX_INTERESTING_LENGTH:
                interesting.append(f"{category}: {text}")
    return interesting


def analyze(url: str, headers: Mapping[str, str], body: str) -> AnalysisResult:
    """Analyze a fetched page. Pure: no I/O, same input gives the same output."""
    return AnalysisResult(
        url=url,
        title=extract_title(body) or None,
        description=extract_description(body) or None,
        technologies=detect_technologies(headers, body, ANALYZER_FINGERPRINTS),
        endpoints=extract_endpoints(body),
        parameters=extract_parameters(body),
        forms=extract_form_details(body),
        comments=extract_comments(body),
        emails=extract_emails(body),
        security_headers=analyze_security_headers(headers),
        interesting=find_interesting(body),
        hash=hash_body(body),
    )
