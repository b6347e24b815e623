"""
KEGG REST Client

Read-only access to the KEGG link and list operations needed to relate
modules and pathways. Implements the lookup interface used by the pathway
completeness selector.
"""

import asyncio
import functools
import logging
from typing import Dict, List, Optional, Set, Tuple

import requests

from .base import RESTClient, ResourceNotFound
from ..core.accessions import (
    normalize_module_id,
    reference_pathway_id,
    strip_pathway_prefix,
)
from ..core.exceptions import (
    DatabaseConnectionError,
    DatabaseTimeoutError,
    DatabaseUnavailableError,
    KEGGLookupError,
    ServiceError,
)
from ..core.retry import RetryConfig, KEGG_RETRY_CONFIG

logger = logging.getLogger(__name__)

DEFAULT_KEGG_BASE_URL = "https://rest.kegg.jp"


class KEGGClient(RESTClient):
    """KEGG REST client."""

    def __init__(
        self,
        base_url: str = DEFAULT_KEGG_BASE_URL,
        timeout: int = 30,
        retry_config: Optional[RetryConfig] = None,
        request_interval: float = 0.35,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(
            base_url,
            "KEGG",
            timeout=timeout,
            retry_config=retry_config or KEGG_RETRY_CONFIG,
            request_interval=request_interval,
            session=session,
        )

    @classmethod
    def from_config(cls, config) -> "KEGGClient":
        """Build a client from a :class:`~mgnify_pathways.core.config.Config`."""
        return cls(
            base_url=config.kegg_base_url,
            timeout=config.request_timeout,
            retry_config=RetryConfig(max_attempts=config.max_retries),
            request_interval=config.kegg_request_interval,
        )

    # Raw operations
    def link(self, target_db: str, source_id: str, kind: str = "entry") -> List[Tuple[str, str]]:
        """
        Query ``/link/<target_db>/<source_id>``.

        Returns:
            (source, target) pairs exactly as KEGG writes them

        Raises:
            KEGGLookupError: Unknown identifier, or service unreachable after retries
            ServiceError: Malformed response or non-retryable HTTP error
        """
        path = f"link/{target_db}/{source_id}"
        try:
            text = self.get_text(path)
        except ResourceNotFound as e:
            raise KEGGLookupError(source_id, f"unknown identifier (HTTP {e.status_code})", kind=kind)
        except (DatabaseConnectionError, DatabaseTimeoutError, DatabaseUnavailableError) as e:
            raise KEGGLookupError(source_id, f"service unreachable: {e.message}", kind=kind)

        return self._parse_pairs(text, path)

    def _parse_pairs(self, text: str, path: str) -> List[Tuple[str, str]]:
        pairs = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            parts = line.split('\t')
            if len(parts) != 2:
                raise ServiceError(
                    server_name=self.server_name,
                    status_code=None,
                    error_message=f"Malformed link line: {line[:80]!r}",
                    endpoint=path
                )
            pairs.append((parts[0].strip(), parts[1].strip()))
        return pairs

    def get_pathways_for_module(self, module_id: str) -> Set[str]:
        """Bare pathway accessions linked to a module (blocking)."""
        module = normalize_module_id(module_id)
        pairs = self.link("pathway", module, kind="module")
        pathways = {strip_pathway_prefix(target) for _, target in pairs}
        logger.debug(f"[KEGG] {module}: {len(pathways)} pathways")
        return pathways

    def get_modules_for_pathway(self, pathway_id: str) -> Set[str]:
        """Module accessions KEGG lists under a pathway (blocking)."""
        pathway = reference_pathway_id(pathway_id)
        pairs = self.link("module", pathway, kind="pathway")
        modules = {normalize_module_id(target) for _, target in pairs}
        logger.debug(f"[KEGG] {pathway}: {len(modules)} modules")
        return modules

    def get_pathway_names(self) -> Dict[str, str]:
        """Map bare pathway accessions to their names via ``/list/pathway``."""
        names = {}
        for accession, name in self._parse_pairs(self.get_text("list/pathway"), "list/pathway"):
            names[strip_pathway_prefix(accession)] = name
        return names

    def info(self) -> str:
        """Release information of the KEGG database (used as a health check)."""
        return self.get_text("info/kegg")

    # Lookup interface (async)
    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def pathways_for_module(self, module_id: str) -> Set[str]:
        return await self._run_blocking(self.get_pathways_for_module, module_id)

    async def modules_for_pathway(self, pathway_id: str) -> Set[str]:
        return await self._run_blocking(self.get_modules_for_pathway, pathway_id)

    async def health_check(self) -> bool:
        """True when KEGG answers the info request."""
        try:
            await self._run_blocking(self.info)
            return True
        except (DatabaseConnectionError, DatabaseTimeoutError, DatabaseUnavailableError, ServiceError) as e:
            logger.warning(f"KEGG health check failed: {e}")
            return False
