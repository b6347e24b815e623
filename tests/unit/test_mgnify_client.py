"""
Unit tests for the MGnify API client.
"""

import pytest

from mgnify_pathways.clients.mgnify_client import MGnifyClient
from mgnify_pathways.core.exceptions import EmptyResultError, ServiceError
from mgnify_pathways.core.retry import RetryConfig

API = "https://www.ebi.ac.uk/metagenomics/api/v1"

KEGG_MODULES_TSV = (
    "module_accession\tcompleteness\tpathway_name\tpathway_class\n"
    "M00001\t100.0\tGlycolysis\tCarbohydrate metabolism\n"
    "M00002\t66.7\tGlycolysis core\tCarbohydrate metabolism\n"
)


def download_entry(alias, label, pipeline="5.0", file_format="TSV"):
    return {
        "type": "study-downloads",
        "id": alias,
        "attributes": {
            "alias": alias,
            "description": {"label": label, "description": f"{label} summary"},
            "file-format": {"name": file_format, "extension": "tsv"},
        },
        "links": {"self": f"{API}/studies/MGYS00005116/downloads/{alias}"},
        "relationships": {"pipeline": {"data": {"id": pipeline, "type": "pipelines"}}},
    }


FIRST_PAGE = {
    "data": [
        download_entry("MGYS00005116_taxonomy_abundances_SSU_v5.0.tsv", "Taxonomic assignments SSU"),
        download_entry("MGYS00005116_GO_abundances_v5.0.tsv", "Complete GO annotation"),
    ],
    "links": {"next": f"{API}/studies/MGYS00005116/downloads?page=2"},
}

SECOND_PAGE = {
    "data": [
        download_entry("MGYS00005116_KEGG_modules_v5.0.tsv", "KEGG modules"),
    ],
    "links": {"next": None},
}


@pytest.fixture
def mgnify(mock_session):
    return MGnifyClient(session=mock_session, retry_config=RetryConfig(max_attempts=1))


@pytest.fixture
def study_api(mock_session, response_factory):
    """Route GETs for one study with a paginated download list."""

    def get(url, params=None, timeout=None):
        if url.endswith("studies/MGYS00005116/downloads"):
            return response_factory(json_data=FIRST_PAGE)
        if url.endswith("downloads?page=2"):
            return response_factory(json_data=SECOND_PAGE)
        if url.endswith("KEGG_modules_v5.0.tsv"):
            return response_factory(text=KEGG_MODULES_TSV)
        return response_factory(status_code=404, text="Not found")

    mock_session.get.side_effect = get
    return mock_session


@pytest.mark.unit
class TestListDownloads:

    def test_follows_pagination(self, mgnify, study_api):
        downloads = mgnify.list_study_downloads("MGYS00005116")

        assert [d.label for d in downloads] == [
            "Taxonomic assignments SSU",
            "Complete GO annotation",
            "KEGG modules",
        ]
        assert study_api.get.call_count == 2

    def test_download_fields(self, mgnify, study_api):
        download = mgnify.list_study_downloads("MGYS00005116")[-1]
        assert download.study_id == "MGYS00005116"
        assert download.alias == "MGYS00005116_KEGG_modules_v5.0.tsv"
        assert download.url.startswith(API)
        assert download.pipeline_version == "5.0"
        assert download.file_format == "TSV"

    def test_missing_data_list_is_service_error(self, mgnify, mock_session, response_factory):
        mock_session.get.return_value = response_factory(json_data={"errors": [{"detail": "oops"}]})
        with pytest.raises(ServiceError):
            mgnify.list_study_downloads("MGYS00005116")

    def test_invalid_json_is_service_error(self, mgnify, mock_session, response_factory):
        mock_session.get.return_value = response_factory(text="<html></html>")
        with pytest.raises(ServiceError):
            mgnify.list_study_downloads("MGYS00005116")

    def test_malformed_entry_is_service_error(self, mgnify, mock_session, response_factory):
        mock_session.get.return_value = response_factory(json_data={"data": [{"id": "x"}]})
        with pytest.raises(ServiceError):
            mgnify.list_study_downloads("MGYS00005116")


@pytest.mark.unit
class TestFindDownload:

    def test_label_match_is_case_insensitive(self, mgnify, study_api):
        download = mgnify.find_download("MGYS00005116", "kegg MODULES")
        assert download.alias == "MGYS00005116_KEGG_modules_v5.0.tsv"

    def test_pipeline_version_filter(self, mgnify, study_api):
        with pytest.raises(EmptyResultError):
            mgnify.find_download("MGYS00005116", "KEGG modules", pipeline_version="4.1")

    def test_no_match(self, mgnify, study_api):
        with pytest.raises(EmptyResultError) as exc_info:
            mgnify.find_download("MGYS00005116", "Pfam")
        assert "MGYS00005116" in str(exc_info.value)


@pytest.mark.unit
class TestTables:

    def test_fetch_study_table(self, mgnify, study_api):
        table = mgnify.fetch_study_table("MGYS00005116", "KEGG modules")
        assert list(table["module_accession"]) == ["M00001", "M00002"]
        assert table["completeness"].tolist() == [100.0, 66.7]

    def test_retrieve_summary_writes_file(self, mgnify, study_api, tmp_path):
        path = mgnify.retrieve_summary("MGYS00005116", "KEGG modules", out_dir=tmp_path / "downloads")
        assert path == tmp_path / "downloads" / "MGYS00005116_KEGG_modules_v5.0.tsv"
        assert path.read_text() == KEGG_MODULES_TSV

    def test_fetch_study_tables_drops_failures(self, mgnify, study_api):
        tables = mgnify.fetch_study_tables(["MGYS00005116", "MGYS99999999"], "KEGG modules", max_workers=2)
        assert list(tables) == ["MGYS00005116"]
        assert len(tables["MGYS00005116"]) == 2
