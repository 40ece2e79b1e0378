"""
tests/test_models.py
Result records, option validation and output formatting.
"""

import json
from datetime import datetime, timezone

import pydantic
import pytest

import reconscan.core as core
from reconscan.cli.formatters import OutputFormat, render
from reconscan.models import (
    CrawlOptions,
    PortResult,
    PortScanOptions,
    ProbeResult,
    ResolutionResult,
    ResolverOptions,
    ResultRecord,
    SubdomainOptions,
    SubdomainResult,
)

FIXED = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


class TestResultRecords:

    def test_records_are_immutable(self):
        record = SubdomainResult(subdomain="www.example.com", source="crtsh")
        with pytest.raises(pydantic.ValidationError):
            record.subdomain = "other.example.com"

    def test_timestamp_is_utc_second_precision(self):
        record = SubdomainResult(subdomain="www.example.com", source="crtsh")
        assert record.timestamp.tzinfo is not None
        assert record.timestamp.microsecond == 0

    def test_json_dict_omits_unset_optionals(self):
        record = SubdomainResult(subdomain="www.example.com", source="crtsh", timestamp=FIXED)
        data = record.to_json_dict()
        assert data == {
            "subdomain": "www.example.com",
            "source": "crtsh",
            "timestamp": "2024-01-02T03:04:05Z",
        }

    def test_success_flags(self):
        assert ProbeResult(url="https://example.com", status_code=200).success
        assert not ProbeResult(url="https://example.com").success
        assert PortResult(host="10.0.0.1", port=22, open=True).success
        assert not ResolutionResult(subdomain="x.example.com").success

    def test_default_text_joins_set_fields(self):
        class Note(ResultRecord):
            host: str
            note: str | None = None

        assert Note(host="example.com", note="staging").to_text() == "example.com staging"
        assert Note(host="example.com").to_text() == "example.com"

    def test_port_text_includes_service(self):
        assert PortResult(host="10.0.0.1", port=22, open=True, service="ssh").to_text() == "10.0.0.1:22 ssh"
        assert PortResult(host="10.0.0.1", port=8, open=True).to_text() == "10.0.0.1:8"


class TestOptions:

    def test_domain_is_normalized(self):
        options = SubdomainOptions(domain="Example.COM.")
        assert options.domain == "example.com"

    @pytest.mark.parametrize("domain", ["", "not a domain", "-bad.com", "localhost"])
    def test_invalid_domains_are_rejected(self, domain):
        with pytest.raises(pydantic.ValidationError):
            SubdomainOptions(domain=domain)

    def test_ports_must_be_in_range(self):
        with pytest.raises(pydantic.ValidationError):
            PortScanOptions(targets=["10.0.0.1"], ports=[0, 80])

    def test_resolvers_cannot_be_empty(self):
        with pytest.raises(pydantic.ValidationError):
            ResolverOptions(resolvers=[])

    def test_defaults_come_from_settings(self, monkeypatch):
        monkeypatch.setenv("CRAWL_MAX_DEPTH", "7")
        monkeypatch.setenv("SCAN_DEADLINE_MINUTES", "2")
        options = CrawlOptions(start_urls=["https://example.com"])
        assert options.max_depth == 7
        assert options.deadline_seconds == 120

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            CrawlOptions(start_urls=["https://example.com"], depth=3)


class TestFormatters:

    def _records(self) -> list[SubdomainResult]:
        return [
            SubdomainResult(subdomain="a.example.com", source="crtsh", timestamp=FIXED),
            SubdomainResult(
                subdomain="b.example.com", source="bruteforce", ips=["1.2.3.4"], timestamp=FIXED
            ),
        ]

    def test_json_is_an_array(self):
        data = json.loads(render(self._records(), OutputFormat.json))
        assert [d["subdomain"] for d in data] == ["a.example.com", "b.example.com"]
        assert "ips" not in data[0]
        assert data[1]["ips"] == ["1.2.3.4"]

    def test_empty_json_is_an_empty_array(self):
        assert json.loads(render([], OutputFormat.json)) == []

    def test_text_is_one_record_per_line(self):
        assert render(self._records(), OutputFormat.txt) == "a.example.com\nb.example.com"


class TestExceptions:

    def test_exported_errors_share_the_base(self):
        errors = {name for name in core.__all__ if name.endswith("Error")}
        assert errors == {
            "ReconError",
            "ConfigurationError",
            "RetryExhaustedError",
            "CircuitOpenError",
            "PoolClosedError",
            "AggregateError",
        }
        assert all(issubclass(getattr(core, name), core.ReconError) for name in errors)
