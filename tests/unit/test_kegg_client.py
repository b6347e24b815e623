"""
Unit tests for the KEGG REST client.

All HTTP traffic goes through a mocked ``requests.Session``.
"""

from unittest.mock import patch

import pytest
import requests

from mgnify_pathways.clients.base import ResourceNotFound
from mgnify_pathways.clients.kegg_client import KEGGClient
from mgnify_pathways.core.config import Config
from mgnify_pathways.core.exceptions import KEGGLookupError, ServiceError
from mgnify_pathways.core.retry import RetryConfig


MODULE_LINKS = (
    "md:M00001\tpath:map00010\n"
    "md:M00001\tpath:map01100\n"
    "md:M00001\tpath:map01200\n"
)

PATHWAY_LINKS = (
    "path:map00010\tmd:M00001\n"
    "path:map00010\tmd:M00002\n"
    "path:map00010\tmd:M00307\n"
)


@pytest.fixture
def kegg(mock_session):
    return KEGGClient(
        session=mock_session,
        request_interval=0,
        retry_config=RetryConfig(max_attempts=1),
    )


@pytest.mark.unit
class TestLink:

    def test_link_parses_tab_separated_pairs(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(text=MODULE_LINKS)

        pairs = kegg.link("pathway", "M00001")

        assert pairs[0] == ("md:M00001", "path:map00010")
        assert len(pairs) == 3
        url = mock_session.get.call_args.args[0]
        assert url == "https://rest.kegg.jp/link/pathway/M00001"

    def test_blank_lines_are_ignored(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(text="\n" + MODULE_LINKS + "\n\n")
        assert len(kegg.link("pathway", "M00001")) == 3

    def test_empty_body_means_no_links(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(text="\n")
        assert kegg.get_pathways_for_module("M00001") == set()

    def test_malformed_line_raises_service_error(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(text="<html>maintenance</html>\n")
        with pytest.raises(ServiceError) as exc_info:
            kegg.link("pathway", "M00001")
        assert not isinstance(exc_info.value, KEGGLookupError)

    def test_unknown_identifier_becomes_lookup_error(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(status_code=404)
        with pytest.raises(KEGGLookupError) as exc_info:
            kegg.link("pathway", "M99999", kind="module")
        assert exc_info.value.identifier == "M99999"
        assert isinstance(exc_info.value, LookupError)

    def test_unreachable_service_becomes_lookup_error(self, kegg, mock_session):
        mock_session.get.side_effect = requests.ConnectionError("Name or service not known")
        with pytest.raises(KEGGLookupError):
            kegg.link("module", "map00010", kind="pathway")

    def test_server_error_propagates(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(status_code=500, text="Internal Server Error")
        with pytest.raises(ServiceError) as exc_info:
            kegg.link("pathway", "M00001")
        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, LookupError)


@pytest.mark.unit
class TestLookups:

    def test_pathways_for_module_are_bare_numbers(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(text=MODULE_LINKS)
        assert kegg.get_pathways_for_module("md:M00001") == {"00010", "01100", "01200"}
        assert mock_session.get.call_args.args[0].endswith("link/pathway/M00001")

    def test_modules_for_pathway_queries_reference_map(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(text=PATHWAY_LINKS)
        assert kegg.get_modules_for_pathway("00010") == {"M00001", "M00002", "M00307"}
        assert mock_session.get.call_args.args[0].endswith("link/module/map00010")

    def test_pathway_names(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(
            text="map00010\tGlycolysis / Gluconeogenesis\nmap00020\tCitrate cycle (TCA cycle)\n"
        )
        names = kegg.get_pathway_names()
        assert names["00010"] == "Glycolysis / Gluconeogenesis"
        assert names["00020"] == "Citrate cycle (TCA cycle)"


@pytest.mark.unit
class TestRetries:

    def test_transient_failure_is_retried(self, mock_session, response_factory, monkeypatch):
        monkeypatch.setattr("mgnify_pathways.core.retry.time.sleep", lambda seconds: None)
        client = KEGGClient(
            session=mock_session,
            request_interval=0,
            retry_config=RetryConfig(max_attempts=3),
        )
        mock_session.get.side_effect = [
            requests.Timeout("read timed out"),
            response_factory(status_code=503),
            response_factory(text=MODULE_LINKS),
        ]

        assert "00010" in client.get_pathways_for_module("M00001")
        assert mock_session.get.call_count == 3

    def test_not_found_is_not_retried(self, mock_session, response_factory, monkeypatch):
        monkeypatch.setattr("mgnify_pathways.core.retry.time.sleep", lambda seconds: None)
        client = KEGGClient(
            session=mock_session,
            request_interval=0,
            retry_config=RetryConfig(max_attempts=3),
        )
        mock_session.get.return_value = response_factory(status_code=400)

        with pytest.raises(KEGGLookupError):
            client.get_pathways_for_module("M99999")
        assert mock_session.get.call_count == 1

    def test_retry_after_header_sets_wait(self, mock_session, response_factory):
        client = KEGGClient(
            session=mock_session,
            request_interval=0,
            retry_config=RetryConfig(max_attempts=2, initial_wait=0.5),
        )
        mock_session.get.side_effect = [
            response_factory(status_code=429, headers={"Retry-After": "3"}),
            response_factory(text=MODULE_LINKS),
        ]

        with patch("mgnify_pathways.core.retry.time.sleep") as sleep:
            assert "00010" in client.get_pathways_for_module("M00001")
        sleep.assert_called_once_with(3)

    def test_request_maps_not_found(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(status_code=404, text="")
        with pytest.raises(ResourceNotFound):
            kegg.request("link/pathway/M99999")


@pytest.mark.unit
@pytest.mark.asyncio
class TestAsyncInterface:

    async def test_async_lookups(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(text=PATHWAY_LINKS)
        assert await kegg.modules_for_pathway("map00010") == {"M00001", "M00002", "M00307"}

    async def test_async_lookup_error_propagates(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(status_code=404)
        with pytest.raises(LookupError):
            await kegg.pathways_for_module("M99999")

    async def test_health_check(self, kegg, mock_session, response_factory):
        mock_session.get.return_value = response_factory(text="kegg  Kyoto Encyclopedia of Genes and Genomes\n")
        assert await kegg.health_check() is True

        mock_session.get.return_value = response_factory(status_code=500)
        assert await kegg.health_check() is False


@pytest.mark.unit
def test_from_config_uses_configured_values():
    config = Config(env="testing")
    client = KEGGClient.from_config(config)
    assert client.base_url == config.kegg_base_url
    assert client.timeout == config.request_timeout
    assert client.rate_limiter.interval == 0
    assert client.retry_config.max_attempts == config.max_retries


@pytest.mark.unit
def test_client_does_not_close_injected_session(mock_session):
    client = KEGGClient(session=mock_session, request_interval=0)
    with client.open():
        pass
    mock_session.close.assert_not_called()
