"""Main CLI application using Typer."""

import asyncio
from collections.abc import Coroutine, Sequence
from pathlib import Path
from typing import Annotated, Any, Optional, TypeVar

import pydantic
import typer
from rich.console import Console

from reconscan.cli.formatters import OutputFormat, render
from reconscan.core.exceptions import ReconError
from reconscan.core.logging import setup_logging
from reconscan.infrastructure.targets import parse_targets
from reconscan.models.base import ResultRecord
from reconscan.models.options import (
    CrawlOptions,
    PortScanOptions,
    ProbeOptions,
    ResolverOptions,
    SubdomainOptions,
)
from reconscan.version import __version__

app = typer.Typer(
    name="reconscan",
    help="reconscan - concurrent reconnaissance scanner",
    no_args_is_help=True,
)

# Scan output goes to stdout; status and errors go here
console = Console(stderr=True)

T = TypeVar("T")
M = TypeVar("M", bound=pydantic.BaseModel)

OutputOption = Annotated[
    Optional[Path],
    typer.Option("--output", "-o", help="Output file (default: stdout)"),
]
FormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", help="Output format: json or txt"),
]
WorkersOption = Annotated[
    Optional[int],
    typer.Option("--concurrency", "-c", min=1, help="Number of concurrent workers"),
]
DeadlineOption = Annotated[
    Optional[float],
    typer.Option("--deadline", help="Scan-wide deadline in minutes"),
]


def version_callback(value: bool) -> None:
    if value:
        console.print(f"reconscan version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    ] = None,
) -> None:
    """reconscan - subdomains, ports, and web services at scale."""
    setup_logging(level=log_level)


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]{message}[/red]")
    return typer.Exit(1)


def _options(model: type[M], **values: Any) -> M:
    """Build an options model; unset values fall back to the settings."""
    try:
        return model(**{k: v for k, v in values.items() if v is not None})
    except pydantic.ValidationError as e:
        errors = "; ".join(err["msg"] for err in e.errors())
        raise _fail(f"Invalid options: {errors}") from None


def _targets(value: str) -> list[str]:
    try:
        return parse_targets(value)
    except ReconError as e:
        raise _fail(e.message) from None


def _run(coro: Coroutine[Any, Any, T], label: str) -> T:
    with console.status(f"[bold green]{label}...[/bold green]"):
        try:
            return asyncio.run(coro)
        except ReconError as e:
            raise _fail(f"Scan failed: {e.message}") from None


def _emit(records: Sequence[ResultRecord], output: Optional[Path], output_format: OutputFormat) -> None:
    text = render(records, output_format)
    if output:
        output.write_text(text + "\n", encoding="utf-8")
        console.print(f"[green]{len(records)} result(s) saved to {output}[/green]")
    else:
        typer.echo(text)


@app.command()
def subdomain(
    domain: Annotated[str, typer.Option("--domain", "-d", help="Target domain")],
    wordlist: Annotated[
        Optional[Path],
        typer.Option("--wordlist", "-w", help="Wordlist for bruteforce"),
    ] = None,
    workers: WorkersOption = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", "-t", help="Passive source timeout in seconds"),
    ] = None,
    passive: Annotated[
        bool,
        typer.Option("--passive/--no-passive", help="Query passive sources"),
    ] = True,
    bruteforce: Annotated[
        bool,
        typer.Option("--bruteforce", help="Bruteforce with the wordlist"),
    ] = False,
    sources: Annotated[
        Optional[str],
        typer.Option("--sources", help="Comma-separated passive sources"),
    ] = None,
    deadline: DeadlineOption = None,
    output: OutputOption = None,
    output_format: FormatOption = OutputFormat.json,
) -> None:
    """
    Enumerate subdomains of a domain.

    Examples:
        reconscan subdomain -d example.com
        reconscan subdomain -d example.com -w words.txt --bruteforce
    """
    from reconscan.scanners.subdomain import SubdomainScanner

    options = _options(
        SubdomainOptions,
        domain=domain,
        wordlist=str(wordlist) if wordlist else None,
        workers=workers,
        http_timeout=timeout,
        passive=passive,
        bruteforce=bruteforce,
        sources=[s.strip() for s in sources.split(",") if s.strip()] if sources else None,
        deadline_minutes=deadline,
    )
    scanner = SubdomainScanner(options)
    results = _run(scanner.enumerate(), f"Enumerating {options.domain}")
    _emit(results, output, output_format)


@app.command()
def resolve(
    target: Annotated[str, typer.Option("--list", "-l", help="Name or file with names")],
    workers: WorkersOption = None,
    resolvers: Annotated[
        Optional[str],
        typer.Option("--resolvers", "-r", help="Comma-separated DNS servers"),
    ] = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", "-t", help="Per-attempt timeout in seconds"),
    ] = None,
    retries: Annotated[Optional[int], typer.Option("--retries", min=0)] = None,
    deadline: DeadlineOption = None,
    output: OutputOption = None,
    output_format: FormatOption = OutputFormat.json,
) -> None:
    """Resolve names and keep the ones that have addresses."""
    from reconscan.scanners.dns import DNSResolver

    names = _targets(target)
    options = _options(
        ResolverOptions,
        resolvers=[r.strip() for r in resolvers.split(",") if r.strip()] if resolvers else None,
        workers=workers,
        timeout=timeout,
        retries=retries,
        deadline_minutes=deadline,
    )
    results = _run(DNSResolver(options).resolve(names), f"Resolving {len(names)} name(s)")
    _emit(results, output, output_format)


@app.command()
def portscan(
    target: Annotated[str, typer.Option("--target", "-t", help="Host or file with hosts")],
    ports: Annotated[
        str,
        typer.Option("--ports", "-p", help="Port range or comma-separated ports"),
    ] = "1-1000",
    workers: WorkersOption = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Timeout per port in seconds"),
    ] = None,
    rate: Annotated[
        Optional[int],
        typer.Option("--rate", min=1, help="Connection attempts per second"),
    ] = None,
    service_detect: Annotated[
        bool,
        typer.Option("--sV", "--service-detect", help="Detect services on open ports"),
    ] = False,
    deadline: DeadlineOption = None,
    output: OutputOption = None,
    output_format: FormatOption = OutputFormat.json,
) -> None:
    """
    Scan TCP ports on target hosts.

    Examples:
        reconscan portscan -t 10.0.0.1 -p 22,80,443
        reconscan portscan -t hosts.txt -p 1-1000 -c 300 --sV
    """
    from reconscan.scanners.ports import PortScanner, parse_ports

    hosts = _targets(target)
    try:
        port_list = parse_ports(ports)
    except ReconError as e:
        raise _fail(e.message) from None

    options = _options(
        PortScanOptions,
        targets=hosts,
        ports=port_list,
        workers=workers,
        timeout=timeout,
        rate_limit=rate,
        service_detect=service_detect,
        deadline_minutes=deadline,
    )
    results = _run(
        PortScanner(options).scan(),
        f"Scanning {len(port_list)} port(s) on {len(hosts)} host(s)",
    )
    _emit(results, output, output_format)


@app.command()
def probe(
    target: Annotated[str, typer.Option("--list", "-l", help="Target or file with targets")],
    workers: WorkersOption = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", "-t", help="Request timeout in seconds"),
    ] = None,
    follow_redirects: Annotated[
        bool,
        typer.Option("--fr/--no-fr", help="Follow redirects"),
    ] = True,
    max_redirects: Annotated[
        Optional[int],
        typer.Option("--maxr", min=0, help="Maximum redirects to follow"),
    ] = None,
    tls_verify: Annotated[
        bool,
        typer.Option("--tls", help="Verify TLS certificates"),
    ] = False,
    retries: Annotated[Optional[int], typer.Option("--retries", min=0)] = None,
    rate: Annotated[
        Optional[int],
        typer.Option("--rate", min=1, help="Requests per second"),
    ] = None,
    adaptive: Annotated[
        bool,
        typer.Option("--adaptive", help="Adapt the request rate to response latency"),
    ] = False,
    headers: Annotated[
        Optional[list[str]],
        typer.Option("--header", "-H", help="Extra request header 'Name: value'"),
    ] = None,
    deadline: DeadlineOption = None,
    output: OutputOption = None,
    output_format: FormatOption = OutputFormat.json,
) -> None:
    """
    Probe targets for live HTTP/HTTPS services.

    Examples:
        reconscan probe -l example.com
        reconscan probe -l urls.txt -c 100 -o alive.json
    """
    from reconscan.scanners.http import HTTPProber

    extra_headers: dict[str, str] = {}
    for header in headers or []:
        name, sep, value = header.partition(":")
        if not sep or not name.strip():
            raise _fail(f"Invalid header: {header!r}")
        extra_headers[name.strip()] = value.strip()

    targets = _targets(target)
    options = _options(
        ProbeOptions,
        targets=targets,
        workers=workers,
        timeout=timeout,
        follow_redirects=follow_redirects,
        max_redirects=max_redirects,
        tls_verify=tls_verify,
        retries=retries,
        rate_limit=rate,
        adaptive_rate=adaptive,
        headers=extra_headers,
        deadline_minutes=deadline,
    )
    results = _run(HTTPProber(options).probe(), f"Probing {len(targets)} target(s)")
    _emit(results, output, output_format)


@app.command()
def crawl(
    target: Annotated[str, typer.Option("--url", "-u", help="Start URL or file with URLs")],
    depth: Annotated[Optional[int], typer.Option("--depth", min=0)] = None,
    max_urls: Annotated[Optional[int], typer.Option("--max-urls", min=1)] = None,
    workers: WorkersOption = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", "-t", help="Request timeout in seconds"),
    ] = None,
    rate: Annotated[Optional[int], typer.Option("--rate", min=1)] = None,
    per_host_rate: Annotated[Optional[int], typer.Option("--per-host-rate", min=1)] = None,
    same_host: Annotated[
        bool,
        typer.Option("--same-host/--any-host", help="Stay on the seed host and its subdomains"),
    ] = True,
    js_parse: Annotated[
        bool,
        typer.Option("--js/--no-js", help="Extract API endpoints from inline scripts"),
    ] = True,
    deadline: DeadlineOption = None,
    output: OutputOption = None,
    output_format: FormatOption = OutputFormat.json,
) -> None:
    """Crawl web pages breadth-first from one or more start URLs."""
    from reconscan.scanners.http import WebCrawler

    options = _options(
        CrawlOptions,
        start_urls=_targets(target),
        max_depth=depth,
        max_urls=max_urls,
        workers=workers,
        timeout=timeout,
        rate_limit=rate,
        per_host_rate=per_host_rate,
        same_host=same_host,
        js_parse=js_parse,
        deadline_minutes=deadline,
    )
    results = _run(WebCrawler(options).crawl(), "Crawling")
    _emit(results, output, output_format)


@app.command()
def analyze(
    url: Annotated[str, typer.Option("--url", "-u", help="Page to analyze")],
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", "-t", help="Request timeout in seconds"),
    ] = None,
    output: OutputOption = None,
    output_format: FormatOption = OutputFormat.json,
) -> None:
    """Fetch one page and report technologies, endpoints, leaks, and headers."""
    from reconscan.scanners.http import HTTPProber, analyze as analyze_page
    from reconscan.scanners.http.crawler import BODY_LIMIT, normalize_seed

    page_url = normalize_seed(url)
    prober = HTTPProber(_options(ProbeOptions, timeout=timeout))

    response = _run(prober.fetch_page(page_url, BODY_LIMIT), f"Fetching {page_url}")
    if response is None:
        raise _fail(f"No response from {page_url}")

    result = analyze_page(page_url, response.headers, response.body)
    _emit([result], output, output_format)


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"reconscan version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
