"""
mgnify-pathways CLI

Command-line interface for pathway completeness selection and MGnify
summary downloads.
"""

import asyncio
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .clients import KEGGClient, MGnifyClient
from .core.caching import CachedPathwayLookup, MemoryCache
from .core.config import Config, configure_logging
from .core.exceptions import MGnifyPathwaysException
from .core.logging_config import get_correlation_id
from .core.module_table import load_module_completeness, select_present_modules
from .core.parallel_processing import ParallelConfig
from .core.pathway_selector import PathwayCompletenessSelector

logger = logging.getLogger(__name__)


def _read_ids(values: Optional[List[str]]) -> List[str]:
    """Accept space- or comma-separated IDs."""
    ids = []
    for value in values or []:
        ids.extend(part.strip() for part in value.split(',') if part.strip())
    return ids


async def run_select(args, config: Config) -> int:
    """Select complete pathways and print them one per line."""
    modules = set(_read_ids(args.modules))
    if args.table:
        table = load_module_completeness(args.table, accession_column=args.accession_column)
        threshold = args.threshold if args.threshold is not None else config.completeness_threshold
        modules |= select_present_modules(
            table,
            threshold=threshold,
            samples=_read_ids(args.samples) or None,
            how=args.how,
        )

    client = KEGGClient.from_config(config)
    lookup = client
    if config.cache_enabled:
        lookup = CachedPathwayLookup(
            client, MemoryCache(max_size=config.cache_max_size, default_ttl=config.cache_ttl)
        )

    with client.open():
        selector = PathwayCompletenessSelector(
            lookup,
            ParallelConfig(
                max_concurrent_tasks=config.max_concurrent_lookups,
                task_timeout=config.lookup_timeout or None,
            )
        )
        selection = await selector.select(modules, _read_ids(args.custom))

    for pathway in selection.pathways:
        print(pathway)

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text("\n".join(selection.pathways) + "\n")
        logger.info(f"Wrote {len(selection.pathways)} pathways to {output}")

    if args.report:
        report = Path(args.report)
        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(json.dumps(selection.model_dump(), indent=2))
        logger.info(f"Wrote selection report to {report}")

    if selection.skipped_modules or selection.skipped_pathways:
        print(
            f"⚠️ Skipped {len(selection.skipped_modules)} modules and "
            f"{len(selection.skipped_pathways)} pathways after lookup errors",
            file=sys.stderr
        )
    return 0


def run_download(args, config: Config) -> int:
    """Save one MGnify study summary per study ID."""
    out_dir = Path(args.output_dir or config.output_dir)
    with MGnifyClient.from_config(config).open() as client:
        failures = 0
        for study_id in _read_ids(args.study_ids):
            try:
                path = client.retrieve_summary(study_id, args.matching_string, out_dir)
                print(f"✅ {study_id}: {path}")
            except MGnifyPathwaysException as e:
                failures += 1
                print(f"❌ {study_id}: {e}", file=sys.stderr)
    return 1 if failures else 0


async def run_health_check(config: Config) -> int:
    """Check that KEGG answers."""
    with KEGGClient.from_config(config).open() as client:
        healthy = await client.health_check()
    print(f"KEGG: {'✅' if healthy else '❌'}")
    return 0 if healthy else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mgnify-pathways",
        description="KEGG pathway completeness for MGnify studies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mgnify-pathways select --modules M00001 M00002 --custom 00010
  mgnify-pathways select --table kegg_modules.tsv --threshold 100 --how any
  mgnify-pathways download MGYS00005116 --matching-string "KEGG modules"
  mgnify-pathways health
        """
    )
    parser.add_argument("--config", help="JSON or YAML configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    select = subparsers.add_parser("select", help="Select fully observed KEGG pathways")
    select.add_argument("--modules", nargs="*", help="Module accessions (space or comma separated)")
    select.add_argument("--table", help="Module completeness TSV (MGnify 'KEGG modules' summary)")
    select.add_argument("--accession-column", default="module_accession",
                        help="Accession column of --table")
    select.add_argument("--threshold", type=float, default=None,
                        help="Minimum completeness percentage (default from config)")
    select.add_argument("--samples", nargs="*", help="Sample columns of --table to consider")
    select.add_argument("--how", choices=["any", "all"], default="any",
                        help="Module must pass in any or all samples")
    select.add_argument("--custom", nargs="*", help="Pathway IDs always included")
    select.add_argument("--output", help="Write selected accessions to this file")
    select.add_argument("--report", help="Write the full selection record as JSON")

    download = subparsers.add_parser("download", help="Download MGnify study summaries")
    download.add_argument("study_ids", nargs="+", help="MGnify study accessions")
    download.add_argument("--matching-string", default="KEGG modules",
                          help="Download label to match")
    download.add_argument("--output-dir", help="Directory for the TSV files")

    subparsers.add_parser("health", help="Check KEGG availability")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = Config.from_file(args.config) if args.config else Config()
        if args.verbose:
            config.override(log_level='DEBUG')
        configure_logging(config)
        logger.debug(f"Run {get_correlation_id()} started: {args.command}")

        if args.command == "select":
            return asyncio.run(run_select(args, config))
        if args.command == "download":
            return run_download(args, config)
        if args.command == "health":
            return asyncio.run(run_health_check(config))
    except MGnifyPathwaysException as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
