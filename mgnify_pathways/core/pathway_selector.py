"""
Pathway Completeness Selector

Selects the KEGG pathways whose modules are all present in a module-set.

For every module of interest the pathways it belongs to are looked up; the
number of distinct modules reaching each pathway (observed) is compared with
the number of modules KEGG lists for that pathway (expected). Pathways with
observed == expected, and no expected module missing from the input, are
selected, followed by any pinned custom pathways.
Global, overview and chemical structure maps are never candidates.

Lookups run concurrently with a bounded number in flight. A lookup that fails
with LookupError or exceeds the per-call timeout skips its identifier.
Aggregation runs on a single task after each lookup phase completes.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set

from .accessions import (
    is_excluded_map,
    normalize_module_id,
    strip_pathway_prefix,
    unique_in_order,
)
from .exceptions import EmptyInputError
from .logging_config import log_execution_time, log_with_context
from .parallel_processing import ParallelConfig, gather_bounded
from ..models.data_models import DataSourceStatus, PathwayCompleteness, PathwaySelection

logger = logging.getLogger(__name__)


class PathwayLookup(Protocol):
    """Read-only module/pathway membership service (KEGG)."""

    async def pathways_for_module(self, module_id: str) -> Set[str]:
        ...

    async def modules_for_pathway(self, pathway_id: str) -> Set[str]:
        ...


def validate_modules_of_interest(modules_of_interest: Iterable[str]) -> List[str]:
    """
    Normalize, deduplicate and sort module accessions.

    Raises:
        EmptyInputError: No usable accession was supplied
    """
    modules = sorted({
        normalize_module_id(module)
        for module in (modules_of_interest or ())
        if module and module.strip()
    })
    if not modules:
        raise EmptyInputError('modules_of_interest')
    return modules


def normalize_custom_pathways(custom_pathway_ids: Optional[Sequence[str]]) -> List[str]:
    """Bare accessions of the pinned pathways, first occurrence kept."""
    return unique_in_order(
        strip_pathway_prefix(pathway)
        for pathway in (custom_pathway_ids or ())
        if pathway and pathway.strip()
    )


class PathwayCompletenessSelector:
    """Selects fully observed KEGG pathways for a module-set."""

    def __init__(self, lookup: PathwayLookup, parallel_config: Optional[ParallelConfig] = None):
        """
        Args:
            lookup: Membership service, e.g. a KEGGClient
            parallel_config: Bounds on concurrent lookups and per-call timeout
        """
        self.lookup = lookup
        self.parallel_config = parallel_config or ParallelConfig()

    @log_execution_time(logger)
    async def select(
        self,
        modules_of_interest: Iterable[str],
        custom_pathway_ids: Optional[Sequence[str]] = None,
    ) -> PathwaySelection:
        """
        Run the selection and return the full record.

        Raises:
            ServiceError: Propagated from the lookup (malformed responses etc.)
        """
        pinned_ids = normalize_custom_pathways(custom_pathway_ids)

        try:
            modules = validate_modules_of_interest(modules_of_interest)
        except EmptyInputError as e:
            logger.info(f"{e.message}; returning {len(pinned_ids)} pinned pathways only")
            return PathwaySelection(pathways=pinned_ids, pinned=pinned_ids)

        module_status = DataSourceStatus(source_name="kegg")
        pathway_status = DataSourceStatus(source_name="kegg")

        observed, skipped_modules = await self._observe(modules, module_status)
        completeness, skipped_pathways = await self._compare(observed, pathway_status)

        candidates = [record.pathway_id for record in completeness if record.is_complete]
        pinned = [pathway for pathway in pinned_ids if pathway not in candidates]
        pathways = unique_in_order(candidates + pinned)

        logger.info(
            f"Selected {len(candidates)} complete pathways of {len(completeness)} evaluated "
            f"from {len(modules)} modules (+{len(pinned)} pinned)"
        )
        return PathwaySelection(
            pathways=pathways,
            completeness=completeness,
            pinned=pinned,
            skipped_modules=skipped_modules,
            skipped_pathways=skipped_pathways,
            lookup_status={
                'pathways_for_module': module_status,
                'modules_for_pathway': pathway_status,
            },
        )

    async def _observe(self, modules: List[str], status: DataSourceStatus):
        """Map each non-excluded pathway to the input modules that reach it."""
        results = await gather_bounded(
            self.lookup.pathways_for_module,
            modules,
            max_concurrency=self.parallel_config.max_concurrent_tasks,
            timeout=self.parallel_config.task_timeout,
        )

        observed: Dict[str, List[str]] = {}
        skipped: List[str] = []
        for module, result in zip(modules, results):
            if isinstance(result, (LookupError, TimeoutError)):
                status.record_failure(result)
                skipped.append(module)
                log_with_context(logger, "warning", f"Skipping module {module}: {result}",
                                 module_id=module, error_type=type(result).__name__)
                continue
            if isinstance(result, BaseException):
                raise result

            status.record_success()
            for pathway in sorted({strip_pathway_prefix(p) for p in result}):
                if is_excluded_map(pathway):
                    continue
                observed.setdefault(pathway, []).append(module)

        return observed, skipped

    async def _compare(self, observed: Dict[str, List[str]], status: DataSourceStatus):
        """Resolve expected module sets and build per-pathway counts."""
        pathway_ids = list(observed)
        results = await gather_bounded(
            self.lookup.modules_for_pathway,
            pathway_ids,
            max_concurrency=self.parallel_config.max_concurrent_tasks,
            timeout=self.parallel_config.task_timeout,
        )

        completeness: List[PathwayCompleteness] = []
        skipped: List[str] = []
        for pathway, result in zip(pathway_ids, results):
            if isinstance(result, (LookupError, TimeoutError)):
                status.record_failure(result)
                skipped.append(pathway)
                log_with_context(logger, "warning", f"Skipping pathway {pathway}: {result}",
                                 pathway_id=pathway, error_type=type(result).__name__)
                continue
            if isinstance(result, BaseException):
                raise result

            status.record_success()
            expected = {normalize_module_id(m) for m in result}
            observed_modules = observed[pathway]
            completeness.append(PathwayCompleteness(
                pathway_id=pathway,
                observed=len(observed_modules),
                expected=len(expected),
                observed_modules=observed_modules,
                missing_modules=sorted(expected.difference(observed_modules)),
            ))

        return completeness, skipped


async def select_complete_pathways(
    modules_of_interest: Iterable[str],
    custom_pathway_ids: Optional[Sequence[str]] = None,
    lookup: Optional[PathwayLookup] = None,
    max_concurrency: int = 8,
    timeout: Optional[float] = None,
) -> List[str]:
    """
    Ordered pathway accessions that are fully observed, plus pinned ones.

    Args:
        modules_of_interest: Module accessions judged present
        custom_pathway_ids: Pathways to include regardless of completeness
        lookup: Membership service; a KEGGClient is created when omitted
        max_concurrency: Upper bound on concurrent lookups
        timeout: Seconds allowed per lookup; slower identifiers are skipped

    Returns:
        Bare numeric accessions, candidates first in discovery order, then
        pinned IDs not already present
    """
    owned_client = None
    if lookup is None:
        from ..clients.kegg_client import KEGGClient
        lookup = owned_client = KEGGClient()

    try:
        selector = PathwayCompletenessSelector(
            lookup, ParallelConfig(max_concurrent_tasks=max_concurrency, task_timeout=timeout)
        )
        selection = await selector.select(modules_of_interest, custom_pathway_ids)
        return selection.pathways
    finally:
        if owned_client is not None:
            owned_client.close()


def select_complete_pathways_sync(
    modules_of_interest: Iterable[str],
    custom_pathway_ids: Optional[Sequence[str]] = None,
    lookup: Optional[PathwayLookup] = None,
    max_concurrency: int = 8,
    timeout: Optional[float] = None,
) -> List[str]:
    """Blocking wrapper around :func:`select_complete_pathways`."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(select_complete_pathways(
            modules_of_interest, custom_pathway_ids, lookup, max_concurrency, timeout
        ))
    raise RuntimeError(
        "select_complete_pathways_sync cannot run inside an event loop; "
        "await select_complete_pathways(...) instead"
    )
