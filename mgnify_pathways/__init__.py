"""
mgnify-pathways - KEGG pathway completeness for MGnify studies

Downloads MGnify study summaries, reduces KEGG module completeness tables to
the set of modules present, and selects the KEGG pathways whose modules are
all observed.
"""

__version__ = "0.1.0"
