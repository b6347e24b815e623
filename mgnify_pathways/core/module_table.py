"""
KEGG module completeness tables.

MGnify study summaries list one KEGG module per row with descriptive columns
(pathway name, class) and one completeness percentage per sample. These
helpers reduce such a table to the module-set fed to the pathway selector.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

import pandas as pd

from .accessions import normalize_module_id
from .exceptions import DataValidationError

logger = logging.getLogger(__name__)

ACCESSION_COLUMN = "module_accession"
DESCRIPTIVE_COLUMNS = ("pathway_name", "pathway_class", "matching_ko", "missing_ko")


def load_module_completeness(
    source: Union[str, Path, pd.DataFrame],
    accession_column: str = ACCESSION_COLUMN,
) -> pd.DataFrame:
    """
    Load and validate a module completeness table.

    Args:
        source: Path to a TSV file or an already loaded DataFrame
        accession_column: Column holding module accessions

    Returns:
        Copy of the table indexed by normalized module accession, with
        sample columns coerced to numbers (unparseable cells become NaN)

    Raises:
        DataValidationError: Unreadable file, missing accession column or no
            sample columns
    """
    if isinstance(source, pd.DataFrame):
        table = source.copy()
    else:
        try:
            table = pd.read_csv(source, sep='\t')
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DataValidationError(
                f"Cannot read module completeness table: {e}",
                field='source',
                value=str(source),
            )

    if accession_column not in table.columns:
        raise DataValidationError(
            "Module completeness table has no accession column",
            field=accession_column,
            expected=f"a '{accession_column}' column",
        )

    table[accession_column] = table[accession_column].astype(str).map(normalize_module_id)
    table = table.drop_duplicates(subset=accession_column).set_index(accession_column)

    for column in table.columns:
        if column in DESCRIPTIVE_COLUMNS:
            continue
        coerced = pd.to_numeric(table[column], errors='coerce')
        # Keep free-text columns as they are
        if coerced.notna().any() or table[column].isna().all():
            table[column] = coerced

    if not sample_columns(table):
        raise DataValidationError(
            "Module completeness table has no numeric sample columns",
            field="columns",
            value=list(table.columns),
        )

    logger.debug(f"Loaded completeness table: {len(table)} modules x {len(sample_columns(table))} samples")
    return table


def sample_columns(table: pd.DataFrame) -> List[str]:
    """Numeric completeness columns, in table order."""
    return [
        column for column in table.columns
        if column not in DESCRIPTIVE_COLUMNS and pd.api.types.is_numeric_dtype(table[column])
    ]


def select_present_modules(
    table: pd.DataFrame,
    threshold: float = 100.0,
    samples: Optional[Iterable[str]] = None,
    how: str = "any",
) -> Set[str]:
    """
    Modules judged present in the dataset.

    Args:
        table: Output of :func:`load_module_completeness`
        threshold: Minimum completeness percentage (inclusive)
        samples: Sample columns to consider (default: all)
        how: "any" - present in at least one sample; "all" - in every sample

    Returns:
        Set of module accessions
    """
    if how not in ("any", "all"):
        raise DataValidationError("how must be 'any' or 'all'", field="how", value=how)

    columns = list(samples) if samples is not None else sample_columns(table)
    missing = [column for column in columns if column not in table.columns]
    if missing:
        raise DataValidationError("Unknown sample columns", field="samples", value=missing)
    if not columns:
        return set()

    passing = table[columns].ge(threshold)
    mask = passing.any(axis=1) if how == "any" else passing.all(axis=1)
    modules = set(table.index[mask.to_numpy()])
    logger.info(
        f"{len(modules)}/{len(table)} modules reach {threshold}% completeness "
        f"({how} of {len(columns)} samples)"
    )
    return modules


def to_long_format(table: pd.DataFrame, value_name: str = "completeness") -> pd.DataFrame:
    """Wide -> long: one row per (module, sample) with a completeness value."""
    columns = sample_columns(table)
    index_name = table.index.name or ACCESSION_COLUMN
    long = (
        table[columns]
        .rename_axis(index_name)
        .reset_index()
        .melt(id_vars=index_name, var_name="sample", value_name=value_name)
    )
    return long.dropna(subset=[value_name]).reset_index(drop=True)
