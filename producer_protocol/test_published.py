#!/usr/bin/env python3
"""
Tests for resolving published contract descriptions
"""

import json
import os
from unittest.mock import MagicMock

import pytest
import requests

from producer_protocol.errors import PublishedContractError
from producer_protocol.published import PublishedContractResolver

GATEWAY = "https://gateway.example/ipfs/"
ABI = [{"type": "constructor", "inputs": [{"name": "initialOwner", "type": "address"}]}]


def make_response(text, status_error=None):
    response = MagicMock()
    response.text = text
    if status_error:
        response.raise_for_status.side_effect = status_error
    return response


def make_session(documents):
    """Session whose GET returns documents keyed by URL"""
    session = MagicMock()

    def get(url, headers=None, timeout=None):
        if url not in documents:
            return make_response("", requests.exceptions.HTTPError(f"404 for {url}"))
        body = documents[url]
        return make_response(body if isinstance(body, str) else json.dumps(body))

    session.get.side_effect = get
    return session


class TestGatewayUrl:
    """Test translating contract URIs into gateway URLs"""

    def setup_method(self):
        self.resolver = PublishedContractResolver(GATEWAY, cache_dir=None, session=MagicMock())

    def test_ipfs_uri(self):
        """Test ipfs:// URIs"""
        url = self.resolver.gateway_url("ipfs://QmbKnUmjdTrdBgRqofVKzgtwHaQBno93AQfg7mtQijtZbw/0")
        assert url == GATEWAY + "QmbKnUmjdTrdBgRqofVKzgtwHaQBno93AQfg7mtQijtZbw/0"

    def test_https_uri_passes_through(self):
        """Test https:// URIs"""
        assert self.resolver.gateway_url("https://host.example/c.json") == "https://host.example/c.json"

    def test_unsupported_scheme(self):
        """Test an unsupported scheme"""
        with pytest.raises(PublishedContractError, match="Unsupported"):
            self.resolver.gateway_url("ar://abc")

    def test_placeholder_uri_rejected(self):
        """Test placeholder URIs"""
        with pytest.raises(PublishedContractError, match="placeholder"):
            self.resolver.gateway_url("ipfs://QmYourMetadataHere")

    def test_gateway_without_slash(self):
        """Test a gateway without a trailing slash"""
        resolver = PublishedContractResolver("https://gateway.example/ipfs", cache_dir=None, session=MagicMock())
        assert resolver.gateway_url("ipfs://Qm1") == "https://gateway.example/ipfs/Qm1"


class TestResolve:
    """Test turning publish documents into artifacts"""

    def test_inline_abi_and_bytecode(self):
        """Test a document carrying its ABI and bytecode"""
        session = make_session({GATEWAY + "Qm1/0": {"name": "Mojo", "abi": ABI, "bytecode": "6080"}})
        resolver = PublishedContractResolver(GATEWAY, cache_dir=None, session=session)

        artifact = resolver.resolve("ipfs://Qm1/0", name="Mojo")

        assert artifact.name == "Mojo"
        assert artifact.abi == ABI
        assert artifact.bytecode == "0x6080"
        assert artifact.source == "ipfs://Qm1/0"

    def test_linked_metadata_and_bytecode(self):
        """Test a document linking to metadata and bytecode"""
        session = make_session({
            GATEWAY + "Qm1/0": {"name": "MojoSwap", "metadataUri": "ipfs://QmMeta",
                                "bytecodeUri": "ipfs://QmCode"},
            GATEWAY + "QmMeta": {"output": {"abi": ABI}},
            GATEWAY + "QmCode": "0x6080604052\n",
        })
        resolver = PublishedContractResolver(GATEWAY, cache_dir=None, session=session)

        artifact = resolver.resolve("ipfs://Qm1/0")

        assert artifact.name == "MojoSwap"
        assert artifact.abi == ABI
        assert artifact.bytecode == "0x6080604052"

    def test_secret_key_header(self):
        """Test that an operator-chosen gateway receives the secret key"""
        session = make_session({GATEWAY + "Qm1": {"abi": ABI, "bytecode": "0x60"}})
        resolver = PublishedContractResolver(GATEWAY, secret_key="s3cret", cache_dir=None, session=session)

        resolver.resolve("ipfs://Qm1", name="PJKBurner")

        _, kwargs = session.get.call_args
        assert kwargs["headers"] == {"x-secret-key": "s3cret"}
        assert kwargs["timeout"] == 30

    def test_name_falls_back_to_expected(self):
        """Test the expected name fallback"""
        session = make_session({GATEWAY + "Qm1": {"abi": ABI, "bytecode": "0x60"}})
        resolver = PublishedContractResolver(GATEWAY, cache_dir=None, session=session)
        assert resolver.resolve("ipfs://Qm1", name="PJKBurner").name == "PJKBurner"

    def test_missing_bytecode(self):
        """Test a document without bytecode"""
        session = make_session({GATEWAY + "Qm1": {"name": "Mojo", "abi": ABI}})
        resolver = PublishedContractResolver(GATEWAY, cache_dir=None, session=session)

        with pytest.raises(PublishedContractError, match="no bytecode"):
            resolver.resolve("ipfs://Qm1")

    def test_missing_abi(self):
        """Test a document without an ABI"""
        session = make_session({GATEWAY + "Qm1": {"name": "Mojo", "bytecode": "0x60"}})
        resolver = PublishedContractResolver(GATEWAY, cache_dir=None, session=session)

        with pytest.raises(PublishedContractError, match="no ABI"):
            resolver.resolve("ipfs://Qm1")

    def test_http_error(self):
        """Test an HTTP error"""
        resolver = PublishedContractResolver(GATEWAY, cache_dir=None, session=make_session({}))

        with pytest.raises(PublishedContractError, match="Error fetching"):
            resolver.resolve("ipfs://QmMissing")

    def test_invalid_json(self):
        """Test a non-JSON response"""
        session = make_session({GATEWAY + "Qm1": "<html>gateway error</html>"})
        resolver = PublishedContractResolver(GATEWAY, cache_dir=None, session=session)

        with pytest.raises(PublishedContractError, match="not valid JSON"):
            resolver.resolve("ipfs://Qm1")


class TestCache:
    """Test the on-disk document cache"""

    def test_ipfs_documents_are_cached(self, tmp_path):
        """Test that ipfs documents are fetched once"""
        session = make_session({GATEWAY + "Qm1": {"abi": ABI, "bytecode": "0x60"}})
        resolver = PublishedContractResolver(GATEWAY, cache_dir=str(tmp_path), session=session)

        resolver.resolve("ipfs://Qm1", name="Mojo")
        resolver.resolve("ipfs://Qm1", name="Mojo")

        assert session.get.call_count == 1
        assert len(os.listdir(tmp_path)) == 1

    def test_stale_http_documents_are_refetched(self, tmp_path):
        """Test cache expiry for HTTP documents"""
        url = "https://host.example/mojo.json"
        session = make_session({url: {"abi": ABI, "bytecode": "0x60"}})
        resolver = PublishedContractResolver(GATEWAY, cache_dir=str(tmp_path), session=session)

        resolver.fetch_text(url)
        cached = os.path.join(tmp_path, os.listdir(tmp_path)[0])
        os.utime(cached, (0, 0))
        resolver.fetch_text(url)

        assert session.get.call_count == 2


class TestSecretKeyHosts:
    """Test which hosts receive the x-secret-key header"""

    def test_foreign_https_uri_gets_no_key(self):
        """Test that a document on another host is fetched without the key"""
        url = "https://other.example/mojo.json"
        session = make_session({url: {"abi": ABI, "bytecode": "0x60"}})
        resolver = PublishedContractResolver(GATEWAY, secret_key="s3cret", cache_dir=None, session=session)

        resolver.fetch_text(url)

        assert session.get.call_args[1]["headers"] == {}

    def test_default_gateway_gets_no_key(self):
        """Test the public default gateway never sees the key"""
        resolver = PublishedContractResolver(secret_key="s3cret", cache_dir=None, session=MagicMock())
        assert resolver.headers_for("https://ipfs.io/ipfs/Qm1") == {}

    def test_listed_host_gets_key(self):
        """Test hosts named in secret_key_hosts"""
        resolver = PublishedContractResolver(secret_key="s3cret", cache_dir=None, session=MagicMock(),
                                             secret_key_hosts=["Storage.Thirdweb.example "])
        assert resolver.headers_for("https://storage.thirdweb.example/ipfs/Qm1") == {"x-secret-key": "s3cret"}
        assert resolver.headers_for("https://ipfs.io/ipfs/Qm1") == {}

    def test_lookalike_host_gets_no_key(self):
        """Test that a host merely containing the gateway name is not trusted"""
        resolver = PublishedContractResolver(GATEWAY, secret_key="s3cret", cache_dir=None, session=MagicMock())
        assert resolver.headers_for("https://gateway.example.attacker.example/x") == {}

    def test_linked_document_on_foreign_host_gets_no_key(self):
        """Test that metadata linked from a publish document does not carry the key off-host"""
        session = make_session({
            GATEWAY + "Qm1": {"name": "MojoSwap", "metadataUri": "https://other.example/meta.json",
                              "bytecode": "0x60"},
            "https://other.example/meta.json": {"output": {"abi": ABI}},
        })
        resolver = PublishedContractResolver(GATEWAY, secret_key="s3cret", cache_dir=None, session=session)

        resolver.resolve("ipfs://Qm1")

        headers = {call[0][0]: call[1]["headers"] for call in session.get.call_args_list}
        assert headers[GATEWAY + "Qm1"] == {"x-secret-key": "s3cret"}
        assert headers["https://other.example/meta.json"] == {}

    def test_no_key_configured(self):
        """Test that nothing is sent without a secret key"""
        resolver = PublishedContractResolver(GATEWAY, cache_dir=None, session=MagicMock())
        assert resolver.headers_for(GATEWAY + "Qm1") == {}
