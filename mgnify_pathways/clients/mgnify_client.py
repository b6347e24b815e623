"""
MGnify API Client

Finds and downloads study-level summary tables (taxonomic assignments, KEGG
module completeness, ...) from the MGnify JSON:API.
"""

import io
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd
import requests

from .base import RESTClient
from ..core.exceptions import EmptyResultError, ServiceError
from ..core.parallel_processing import thread_map
from ..core.retry import RetryConfig, MGNIFY_RETRY_CONFIG
from ..models.data_models import StudyDownload

logger = logging.getLogger(__name__)

DEFAULT_MGNIFY_BASE_URL = "https://www.ebi.ac.uk/metagenomics/api/v1"

# Guard against a server that keeps returning a `next` link
MAX_PAGES = 100


class MGnifyClient(RESTClient):
    """MGnify study download client."""

    def __init__(
        self,
        base_url: str = DEFAULT_MGNIFY_BASE_URL,
        timeout: int = 60,
        retry_config: Optional[RetryConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(
            base_url,
            "MGnify",
            timeout=timeout,
            retry_config=retry_config or MGNIFY_RETRY_CONFIG,
            session=session,
        )

    @classmethod
    def from_config(cls, config) -> "MGnifyClient":
        return cls(
            base_url=config.mgnify_base_url,
            timeout=config.request_timeout,
            retry_config=RetryConfig(max_attempts=config.max_retries, initial_wait=2.0, max_wait=30.0),
        )

    def list_study_downloads(self, study_id: str) -> List[StudyDownload]:
        """All downloadable files of a study, following JSON:API pagination."""
        downloads: List[StudyDownload] = []
        path: Optional[str] = f"studies/{study_id}/downloads"

        for _ in range(MAX_PAGES):
            if not path:
                break
            payload = self.get_json(path)
            data = payload.get('data')
            if not isinstance(data, list):
                raise ServiceError(
                    server_name=self.server_name,
                    status_code=None,
                    error_message="Response has no 'data' list",
                    endpoint=path
                )
            downloads.extend(self._parse_download(study_id, item, path) for item in data)
            path = (payload.get('links') or {}).get('next')
        else:
            logger.warning(f"[MGnify] Stopped after {MAX_PAGES} pages of downloads for {study_id}")

        logger.info(f"[MGnify] {study_id}: {len(downloads)} downloads")
        return downloads

    def _parse_download(self, study_id: str, item: Dict[str, Any], path: str) -> StudyDownload:
        try:
            attributes = item.get('attributes') or {}
            description = attributes.get('description') or {}
            file_format = attributes.get('file-format') or {}
            pipeline = ((item.get('relationships') or {}).get('pipeline') or {}).get('data') or {}
            return StudyDownload(
                study_id=study_id,
                alias=attributes.get('alias') or item['id'],
                url=item['links']['self'],
                label=description.get('label') or '',
                description=description.get('description'),
                pipeline_version=pipeline.get('id'),
                file_format=file_format.get('name'),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ServiceError(
                server_name=self.server_name,
                status_code=None,
                error_message=f"Malformed download entry: {type(e).__name__}: {e}",
                endpoint=path
            )

    def find_download(
        self,
        study_id: str,
        matching_string: str,
        pipeline_version: Optional[str] = None,
    ) -> StudyDownload:
        """
        First download whose label contains ``matching_string``.

        Raises:
            EmptyResultError: No download matches
        """
        needle = matching_string.lower()
        for download in self.list_study_downloads(study_id):
            if needle not in download.label.lower():
                continue
            if pipeline_version and download.pipeline_version != pipeline_version:
                continue
            return download
        raise EmptyResultError("study_download", f"{study_id} / {matching_string}")

    def fetch_table(self, download: StudyDownload) -> pd.DataFrame:
        """Read a TSV download into a DataFrame."""
        text = self.get_text(download.url)
        try:
            return pd.read_csv(io.StringIO(text), sep='\t')
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise ServiceError(
                server_name=self.server_name,
                status_code=None,
                error_message=f"Unreadable TSV: {e}",
                endpoint=download.url
            )

    def retrieve_summary(
        self,
        study_id: str,
        matching_string: str,
        out_dir: Union[str, Path] = ".",
    ) -> Path:
        """Save the matching study summary TSV under ``out_dir`` and return its path."""
        download = self.find_download(study_id, matching_string)
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / download.alias
        target.write_text(self.get_text(download.url))
        logger.info(f"[MGnify] Saved {download.label} for {study_id} to {target}")
        return target

    def fetch_study_table(self, study_id: str, matching_string: str) -> pd.DataFrame:
        return self.fetch_table(self.find_download(study_id, matching_string))

    def fetch_study_tables(
        self,
        study_ids: Iterable[str],
        matching_string: str,
        max_workers: int = 4,
    ) -> Dict[str, pd.DataFrame]:
        """
        Download one summary table per study in parallel.

        Studies that fail are logged and left out of the result.
        """
        results = thread_map(
            lambda study_id: self.fetch_study_table(study_id, matching_string),
            study_ids,
            max_workers=max_workers,
            task_name="MGnify download",
        )
        tables = {study_id: value for study_id, value in results.items()
                  if not isinstance(value, Exception)}
        failed = [study_id for study_id, value in results.items() if isinstance(value, Exception)]
        if failed:
            logger.warning(f"[MGnify] {len(failed)} studies failed: {', '.join(failed)}")
        return tables
