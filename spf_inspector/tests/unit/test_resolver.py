"""
Unit tests for the TXT/SPF resolvers
"""
import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import dns.exception
import dns.resolver
import httpx
import pytest
from pydantic import ValidationError

from spf_inspector.core.config import Settings, settings
from spf_inspector.core.exceptions import ResolutionError
from spf_inspector.services.dns.resolver import (
    DoHResolver,
    SystemResolver,
    get_resolver,
    parse_doh_answer,
    unquote_txt,
)
from spf_inspector.services.dns.spf import count_lookups

DOH_URL = "https://doh.test/resolve"


def doh_resolver(handler):
    """Build a DoH resolver answering through ``handler``"""
    return DoHResolver(url=DOH_URL, timeout=1, transport=httpx.MockTransport(handler))


class TestParseAnswer:
    """Test cases for DNS JSON answer parsing"""

    def test_filters_spf_txt_records(self):
        """Test that only TXT answers starting with v=spf1 are kept"""
        payload = {
            "Status": 0,
            "Answer": [
                {"type": 5, "data": "alias.example.com."},
                {"type": 16, "data": '"google-site-verification=abc"'},
                {"type": 16, "data": '"v=spf1 include:_spf.google.com ~all"'},
                {"type": 16, "data": '"v=spf1 -all"'},
            ],
        }

        assert parse_doh_answer(payload) == [
            "v=spf1 include:_spf.google.com ~all",
            "v=spf1 -all",
        ]

    def test_no_answer_is_empty(self):
        """Test that a domain without TXT answers is not an error"""
        assert parse_doh_answer({"Status": 0}) == []

    def test_failed_status(self):
        """Test that a non-zero Status is a query failure"""
        with pytest.raises(ResolutionError) as exc_info:
            parse_doh_answer({"Status": 3})

        assert exc_info.value.kind == ResolutionError.NXDOMAIN_OR_SERVFAIL

    @pytest.mark.parametrize("payload", [None, [], "v=spf1 -all", 0])
    def test_non_object_body(self, payload):
        """Test that a JSON body that is not an object is a transport failure"""
        with pytest.raises(ResolutionError) as exc_info:
            parse_doh_answer(payload)

        assert exc_info.value.kind == ResolutionError.TRANSPORT
        assert exc_info.value.detail == "DNS lookup failed: invalid response from resolver"

    def test_malformed_answers_are_skipped(self):
        """Test that answers which are not objects or lack data are ignored"""
        payload = {
            "Status": 0,
            "Answer": [
                None,
                "v=spf1 a -all",
                {"type": 16},
                {"type": 16, "data": None},
                {"type": 16, "data": '"v=spf1 -all"'},
            ],
        }

        assert parse_doh_answer(payload) == ["v=spf1 -all"]

    def test_answer_not_a_list(self):
        """Test that a non-list Answer is treated as no answers"""
        assert parse_doh_answer({"Status": 0, "Answer": {"type": 16}}) == []

    def test_unquote_joins_strings(self):
        """Test that split character-strings are joined"""
        assert unquote_txt('"v=spf1 ip4:1.2.3.4" " -all"') == "v=spf1 ip4:1.2.3.4 -all"
        assert unquote_txt('"v=spf1 -all"') == "v=spf1 -all"
        assert unquote_txt("v=spf1 -all") == "v=spf1 -all"


class TestDoHResolver:
    """Test cases for the DNS-over-HTTPS resolver"""

    def test_request_and_records(self):
        """Test the outgoing request and the parsed result"""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={
                "Status": 0,
                "Answer": [{"type": 16, "data": '"v=spf1 mx -all"'}],
            })

        records = asyncio.run(doh_resolver(handler).resolve_spf("example.com"))

        assert records == ["v=spf1 mx -all"]
        assert len(requests) == 1
        assert requests[0].url.params["name"] == "example.com"
        assert requests[0].url.params["type"] == "TXT"
        assert requests[0].headers["accept"] == "application/dns-json"

    def test_http_error(self):
        """Test that a non-success status is an http failure"""
        def handler(request):
            return httpx.Response(502)

        with pytest.raises(ResolutionError) as exc_info:
            asyncio.run(doh_resolver(handler).resolve_spf("example.com"))

        assert exc_info.value.kind == ResolutionError.HTTP
        assert exc_info.value.status == 502

    def test_transport_error(self):
        """Test that connection failures are transport failures"""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ResolutionError) as exc_info:
            asyncio.run(doh_resolver(handler).resolve_spf("example.com"))

        assert exc_info.value.kind == ResolutionError.TRANSPORT

    def test_invalid_json(self):
        """Test that an unreadable body is a transport failure"""
        def handler(request):
            return httpx.Response(200, content=b"<html>not json</html>")

        with pytest.raises(ResolutionError) as exc_info:
            asyncio.run(doh_resolver(handler).resolve_spf("example.com"))

        assert exc_info.value.kind == ResolutionError.TRANSPORT

    def test_nxdomain(self):
        """Test that resolver-reported failures surface as nxdomain"""
        def handler(request):
            return httpx.Response(200, json={"Status": 3})

        with pytest.raises(ResolutionError) as exc_info:
            asyncio.run(doh_resolver(handler).resolve_spf("nope.example"))

        assert exc_info.value.kind == ResolutionError.NXDOMAIN_OR_SERVFAIL
        assert exc_info.value.detail == "DNS query failed - domain may not exist"

    @pytest.mark.parametrize("body", [b"null", b"[]"])
    def test_non_object_json(self, body):
        """Test that valid JSON which is not an object is a transport failure"""
        def handler(request):
            return httpx.Response(200, content=body)

        with pytest.raises(ResolutionError) as exc_info:
            asyncio.run(doh_resolver(handler).resolve_spf("example.com"))

        assert exc_info.value.kind == ResolutionError.TRANSPORT

    def test_non_object_json_in_include_is_unresolved(self):
        """Test that a garbled include answer is counted as zero, not raised"""
        def handler(request):
            if request.url.params["name"] == "bad.com":
                return httpx.Response(200, content=b"[]")
            return httpx.Response(200, json={
                "Status": 0,
                "Answer": [{"type": 16, "data": '"v=spf1 a mx -all"'}],
            })

        failures = []
        record = "v=spf1 include:bad.com include:good.com -all"

        count = asyncio.run(count_lookups(record, doh_resolver(handler), failures=failures))

        assert count == 4
        assert [f.domain for f in failures] == ["bad.com"]


class TestSystemResolver:
    """Test cases for the dnspython-backed resolver"""

    def test_joins_txt_strings(self):
        """Test that multi-string TXT records are joined"""
        resolver = MagicMock()
        resolver.resolve.return_value = [
            SimpleNamespace(strings=(b"v=spf1 ", b"include:a.com -all")),
            SimpleNamespace(strings=(b"some-verification",)),
        ]

        records = asyncio.run(SystemResolver(resolver).resolve_spf("example.com"))

        assert records == ["v=spf1 include:a.com -all"]
        resolver.resolve.assert_called_once_with("example.com", "TXT")

    def test_no_answer_is_empty(self):
        """Test that NoAnswer yields no records"""
        resolver = MagicMock()
        resolver.resolve.side_effect = dns.resolver.NoAnswer()

        assert asyncio.run(SystemResolver(resolver).resolve_spf("example.com")) == []

    def test_nxdomain(self):
        """Test that NXDOMAIN is a query failure"""
        resolver = MagicMock()
        resolver.resolve.side_effect = dns.resolver.NXDOMAIN()

        with pytest.raises(ResolutionError) as exc_info:
            asyncio.run(SystemResolver(resolver).resolve_spf("nope.example"))

        assert exc_info.value.kind == ResolutionError.NXDOMAIN_OR_SERVFAIL

    def test_timeout(self):
        """Test that timeouts are transport failures"""
        resolver = MagicMock()
        resolver.resolve.side_effect = dns.exception.Timeout()

        with pytest.raises(ResolutionError) as exc_info:
            asyncio.run(SystemResolver(resolver).resolve_spf("example.com"))

        assert exc_info.value.kind == ResolutionError.TRANSPORT


class TestGetResolver:
    """Test cases for resolver backend selection"""

    def test_doh_backend(self, monkeypatch):
        """Test that the doh backend builds a DoH resolver"""
        monkeypatch.setattr(settings, "DNS_RESOLVER_BACKEND", "doh")

        assert isinstance(get_resolver(), DoHResolver)

    def test_system_backend(self, monkeypatch):
        """Test that the system backend builds a dnspython resolver"""
        monkeypatch.setattr(settings, "DNS_RESOLVER_BACKEND", "system")
        monkeypatch.setattr(dns.resolver, "Resolver", MagicMock)

        resolver = get_resolver()

        assert isinstance(resolver, SystemResolver)
        assert resolver.resolver.timeout == settings.DNS_RESOLVER_TIMEOUT

    def test_default_backend_is_doh(self):
        """Test the default backend setting"""
        assert Settings.model_fields["DNS_RESOLVER_BACKEND"].default == "doh"

    def test_backend_is_normalized(self):
        """Test that the backend name is trimmed and lowercased"""
        assert Settings(DNS_RESOLVER_BACKEND=" System ").DNS_RESOLVER_BACKEND == "system"

    def test_unknown_backend_is_rejected(self):
        """Test that an unsupported backend fails settings validation"""
        with pytest.raises(ValidationError):
            Settings(DNS_RESOLVER_BACKEND="bogus")
