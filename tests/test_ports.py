"""
tests/test_ports.py
Port list parsing and TCP connect scanning against localhost.
"""

import asyncio

import pytest

from reconscan.core.exceptions import ConfigurationError
from reconscan.models import PortResult, PortScanOptions
from reconscan.scanners.ports import PortScanner, parse_ports


def make_scanner(ports: list[int], **overrides) -> PortScanner:
    options = PortScanOptions(
        targets=overrides.pop("targets", ["127.0.0.1"]),
        ports=ports,
        workers=4,
        timeout=1.0,
        rate_limit=1000,
        **overrides,
    )
    return PortScanner(options)


class TestParsePorts:

    def test_list(self):
        assert parse_ports("22,80,443") == [22, 80, 443]

    def test_range(self):
        assert parse_ports("1-5") == [1, 2, 3, 4, 5]

    def test_mixed_with_duplicates(self):
        assert parse_ports("80, 79-81 ,443,80") == [80, 79, 81, 443]

    def test_invalid_entries_are_skipped(self):
        assert parse_ports("abc,22,0,70000,x-y") == [22]

    def test_range_is_clipped_to_valid_ports(self):
        assert parse_ports("65534-70000") == [65534, 65535]

    def test_nothing_valid_is_an_error(self):
        with pytest.raises(ConfigurationError):
            parse_ports("abc,0")


class TestPortScanner:

    @pytest.mark.asyncio
    async def test_open_port_is_reported(self, open_port):
        result = await make_scanner([open_port]).scan_port("127.0.0.1", open_port)
        assert result.open
        assert result.address == f"127.0.0.1:{open_port}"

    @pytest.mark.asyncio
    async def test_closed_port_is_not_open(self, closed_port):
        result = await make_scanner([closed_port]).scan_port("127.0.0.1", closed_port)
        assert not result.open

    @pytest.mark.asyncio
    async def test_scan_returns_only_open_ports(self, open_port, closed_port):
        results = await make_scanner([open_port, closed_port]).scan()
        assert [(r.host, r.port, r.open) for r in results] == [("127.0.0.1", open_port, True)]

    @pytest.mark.asyncio
    async def test_every_host_port_pair_is_scanned(self, open_port):
        scanner = make_scanner([open_port], targets=["127.0.0.1", "localhost"])
        assert len(list(scanner._jobs())) == 2

    @pytest.mark.asyncio
    async def test_no_targets_is_a_configuration_error(self):
        scanner = make_scanner([80], targets=[])
        with pytest.raises(ConfigurationError):
            await scanner.scan()

    @pytest.mark.asyncio
    async def test_service_detection_on_well_known_port(self, monkeypatch):
        scanner = make_scanner([22], service_detect=True)

        async def always_open(host: str, port: int) -> PortResult:
            return PortResult(host=host, port=port, open=True)

        monkeypatch.setattr(scanner, "scan_port", always_open)
        results = await scanner.scan()
        assert len(results) == 1
        assert results[0].service == "ssh"
        assert results[0].banner is None

    @pytest.mark.asyncio
    async def test_expired_deadline_keeps_partial_results(self, monkeypatch, open_port):
        scanner = make_scanner([open_port], deadline_minutes=0.001)

        async def hang(host: str, port: int) -> PortResult:
            await asyncio.sleep(10)
            return PortResult(host=host, port=port, open=True)

        monkeypatch.setattr(scanner, "scan_port", hang)
        assert await scanner.scan() == []
