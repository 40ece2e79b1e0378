"""
tests/test_service.py
Banner cleaning, banner parsing and service detection.
"""

import asyncio

import pytest

from reconscan.scanners.ports.service import (
    MAX_BANNER_LENGTH,
    WELL_KNOWN_PORTS,
    ServiceDetector,
    clean_banner,
    identify_from_banner,
    parse_banner,
)


class TestCleanBanner:

    def test_drops_non_printable_bytes(self):
        assert clean_banner(b"\x00SSH-2.0\xff\r\n") == "SSH-2.0\r\n"

    def test_truncates(self):
        assert len(clean_banner("a" * 1000)) == MAX_BANNER_LENGTH

    def test_keeps_tabs(self):
        assert clean_banner("a\tb") == "a\tb"


class TestParseBanner:

    def test_ssh_version(self):
        info = parse_banner("SSH-2.0-OpenSSH_8.9p1 Ubuntu-3\r\n")
        assert info.name == "ssh"
        assert info.version == "2.0-OpenSSH_8.9p1 Ubuntu-3"

    def test_http_server_product(self):
        info = parse_banner("HTTP/1.1 200 OK\r\nServer: nginx/1.18.0\r\n\r\n")
        assert info.name == "http"
        assert info.product == "nginx/1.18.0"

    def test_mariadb(self):
        info = parse_banner("5.5.5-10.6.12-MariaDB-0ubuntu0.22.04.1")
        assert (info.name, info.product) == ("mysql", "MariaDB")

    def test_redis_error_reply(self):
        assert parse_banner("-ERR unknown command 'HELP'").name == "redis"

    def test_smtp_greeting_is_not_ftp(self):
        assert parse_banner("220 mail.example.com ESMTP Postfix").name == "smtp"

    def test_ftp_greeting(self):
        assert parse_banner("220 (vsFTPd 3.0.3)").name == "ftp"

    def test_unknown(self):
        assert parse_banner("hello there") is None
        assert parse_banner("") is None


class TestIdentifyFromBanner:

    def test_signature_order(self):
        assert identify_from_banner("Welcome to the SSH http gateway") == "ssh"

    def test_case_insensitive(self):
        assert identify_from_banner("MongoDB wire protocol") == "mongodb"

    def test_unknown(self):
        assert identify_from_banner("hello") == "unknown"


class TestServiceDetector:

    def test_well_known_table(self):
        assert WELL_KNOWN_PORTS[22] == "ssh"
        assert WELL_KNOWN_PORTS[443] == "https"
        assert WELL_KNOWN_PORTS[6379] == "redis"

    @pytest.mark.asyncio
    async def test_well_known_port_skips_the_banner(self):
        detector = ServiceDetector(timeout=0.1)
        info = await detector.detect("192.0.2.1", 3306)
        assert info.name == "mysql"
        assert info.banner is None

    @pytest.mark.asyncio
    async def test_greeting_banner_is_parsed(self, tcp_server):
        async def greet(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            writer.write(b"SSH-2.0-OpenSSH_8.9\r\n")
            await writer.drain()
            writer.close()

        port = await tcp_server(greet)
        info = await ServiceDetector(timeout=1.0).detect("127.0.0.1", port)
        assert info.name == "ssh"
        assert info.version == "2.0-OpenSSH_8.9"
        assert info.banner == "SSH-2.0-OpenSSH_8.9\r\n"

    @pytest.mark.asyncio
    async def test_silent_service_answers_a_probe(self, tcp_server):
        async def echo_pong(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            await reader.readline()
            writer.write(b"+PONG\r\n")
            await writer.drain()
            writer.close()

        port = await tcp_server(echo_pong)
        info = await ServiceDetector(timeout=0.2).detect("127.0.0.1", port)
        assert info.name == "redis"

    @pytest.mark.asyncio
    async def test_unparsed_banner_falls_back_to_signatures(self, tcp_server):
        async def greet(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            writer.write(b"Welcome, this box runs Apache things\n")
            await writer.drain()
            writer.close()

        port = await tcp_server(greet)
        info = await ServiceDetector(timeout=1.0).detect("127.0.0.1", port)
        assert info.name == "apache"
        assert info.banner is not None

    @pytest.mark.asyncio
    async def test_closed_port_is_unknown(self, closed_port):
        info = await ServiceDetector(timeout=0.5).detect("127.0.0.1", closed_port)
        assert info.name == "unknown"
        assert info.banner is None
