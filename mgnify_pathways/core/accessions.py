"""
KEGG accession helpers.

Pure functions over identifier strings; no lookups happen here.
"""

import re
from typing import Iterable, List

# Reference (map, ko, ec, rn) and organism (hsa, eco, ...) pathway prefixes
_PATHWAY_RE = re.compile(r'^(?:path:)?(?P<prefix>[a-z]{2,4})?(?P<number>\d{5})$')
_MODULE_RE = re.compile(r'^(?:md:)?(?:[a-z]{2,4}_)?(?P<module>M\d{5})$', re.IGNORECASE)

# 010xx chemical structure maps, 011xx global maps, 012xx overview maps
EXCLUDED_MAP_PREFIXES = ("010", "011", "012")


def strip_pathway_prefix(accession: str) -> str:
    """
    Return the bare five digit number of a pathway accession.

    >>> strip_pathway_prefix("path:map00010")
    '00010'
    >>> strip_pathway_prefix("ko00010")
    '00010'

    Accessions without a five digit number are returned stripped of
    whitespace and the ``path:`` prefix only.
    """
    value = accession.strip()
    match = _PATHWAY_RE.match(value)
    if match:
        return match.group('number')
    if value.startswith('path:'):
        value = value[len('path:'):]
    return value


def reference_pathway_id(accession: str) -> str:
    """KEGG reference map form (``map00010``) used in REST queries."""
    number = strip_pathway_prefix(accession)
    if number.isdigit():
        return f"map{number}"
    return number


def normalize_module_id(accession: str) -> str:
    """
    Return the bare module accession (``M00001``).

    Handles ``md:`` prefixes and organism-specific modules (``eco_M00001``).
    Anything else is returned stripped of whitespace.
    """
    value = accession.strip()
    match = _MODULE_RE.match(value)
    if match:
        return match.group('module').upper()
    return value


def is_excluded_map(accession: str) -> bool:
    """
    True for chemical structure, global and overview maps.

    These aggregate modules from across the whole KEGG hierarchy and carry no
    specific module/pathway relationship.
    """
    number = strip_pathway_prefix(accession)
    return number.isdigit() and number.startswith(EXCLUDED_MAP_PREFIXES)


def unique_in_order(values: Iterable[str]) -> List[str]:
    """Drop repeated values, keeping the first occurrence."""
    return list(dict.fromkeys(values))
