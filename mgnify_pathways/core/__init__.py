"""
Core Components

Selection algorithm and table handling, plus the error, retry, logging and
configuration layers.
"""

from .pathway_selector import (
    PathwayCompletenessSelector,
    select_complete_pathways,
    select_complete_pathways_sync,
)
from .module_table import load_module_completeness, select_present_modules

__all__ = [
    'PathwayCompletenessSelector',
    'select_complete_pathways',
    'select_complete_pathways_sync',
    'load_module_completeness',
    'select_present_modules',
]
