"""Technology fingerprints matched against response headers and bodies."""

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class Fingerprint:
    """A technology and the evidence that reveals it.

    Any single rule matching is enough. Header rules are (header, substring)
    pairs compared case-insensitively; an empty substring means the header
    only has to be present.
    """

    name: str
    headers: tuple[tuple[str, str], ...] = ()
    body: tuple[str, ...] = ()  # case-insensitive substrings
    body_exact: tuple[str, ...] = ()  # case-sensitive substrings

    def matches(self, headers: Mapping[str, str], body: str, body_lower: str) -> bool:
        for header, needle in self.headers:
            value = headers.get(header.lower())
            if value is not None and needle.lower() in value.lower():
                return True
        if any(needle in body_lower for needle in self.body):
            return True
        return any(needle in body for needle in self.body_exact)


# Quick heuristics used by the prober on every response
PROBE_FINGERPRINTS: tuple[Fingerprint, ...] = (
    Fingerprint("Nginx", headers=(("Server", "nginx"),)),
    Fingerprint("Apache", headers=(("Server", "apache"),)),
    Fingerprint("Cloudflare", headers=(("Server", "cloudflare"), ("CF-Ray", ""))),
    Fingerprint("IIS", headers=(("Server", "iis"),)),
    Fingerprint("PHP", headers=(("X-Powered-By", "php"),)),
    Fingerprint("ASP.NET", headers=(("X-Powered-By", "asp.net"),)),
    Fingerprint("Express.js", headers=(("X-Powered-By", "express"),)),
    Fingerprint("React", body=("react",), body_exact=("__NEXT_DATA__",)),
    Fingerprint("Angular", body=("angular",), body_exact=("ng-",)),
    Fingerprint("Vue.js", body=("vue",)),
    Fingerprint("jQuery", body=("jquery",)),
    Fingerprint("WordPress", body=("wordpress",), body_exact=("wp-content",)),
    Fingerprint("Drupal", body=("drupal",)),
    Fingerprint("Joomla", body=("joomla",)),
    Fingerprint("Laravel", body=("laravel",)),
    Fingerprint("Django", body=("django",)),
    Fingerprint("Ruby on Rails", body=("rails",), body_exact=("csrf-token",)),
    Fingerprint("CloudFront", headers=(("Via", "cloudfront"),)),
)

# Broader rule set used by the response analyzer
ANALYZER_FINGERPRINTS: tuple[Fingerprint, ...] = (
    Fingerprint("Nginx", headers=(("Server", "nginx"),)),
    Fingerprint("Apache", headers=(("Server", "apache"),)),
    Fingerprint("IIS", headers=(("Server", "iis"),)),
    Fingerprint("Gunicorn", headers=(("Server", "gunicorn"),)),
    Fingerprint("OpenResty", headers=(("Server", "openresty"),)),
    Fingerprint("PHP", headers=(("X-Powered-By", "php"),)),
    Fingerprint("ASP.NET", headers=(("X-Powered-By", "asp.net"),)),
    Fingerprint("Express.js", headers=(("X-Powered-By", "express"),)),
    Fingerprint(
        "Next.js",
        headers=(("X-Powered-By", "next"),),
        body_exact=("__NEXT_DATA__", "_next/static"),
    ),
    Fingerprint("Nuxt.js", body_exact=("__NUXT__",)),
    Fingerprint("React", body=("react",), body_exact=("data-reactroot",)),
    Fingerprint("AngularJS", body_exact=("ng-app", "ng-controller")),
    Fingerprint("Angular", body_exact=("_angular",)),
    Fingerprint("Vue.js", body_exact=("Vue.", "v-bind")),
    Fingerprint("Svelte", body=("svelte",)),
    Fingerprint("WordPress", body_exact=("wp-content", "wp-includes")),
    Fingerprint("Drupal", body_exact=("Drupal.",)),
    Fingerprint("Joomla", body=("joomla",)),
    Fingerprint("Shopify", body_exact=("shopify",)),
    Fingerprint("Wix", body_exact=("wix.com",)),
    Fingerprint("Bootstrap", body=("bootstrap",)),
    Fingerprint("Tailwind CSS", body=("tailwind",)),
    Fingerprint("Cloudflare", headers=(("CF-Ray", ""),)),
    Fingerprint("CloudFront", headers=(("Via", "cloudfront"),)),
    Fingerprint("Amazon S3", headers=(("Server", "AmazonS3"),)),
)


def detect_technologies(
    headers: Mapping[str, str],
    body: str,
    fingerprints: tuple[Fingerprint, ...] = PROBE_FINGERPRINTS,
) -> list[str]:
    """Names of matching technologies, in table order, without duplicates."""
    lowered_headers = {name.lower(): value for name, value in headers.items()}
    body_lower = body.lower()

    found: list[str] = []
    for fingerprint in fingerprints:
        if fingerprint.name in found:
            continue
        if fingerprint.matches(lowered_headers, body, body_lower):
            found.append(fingerprint.name)
    return found
