"""
Data Models

Pydantic models for selection results and MGnify download descriptors.
"""

from .data_models import DataSourceStatus, PathwayCompleteness, PathwaySelection, StudyDownload

__all__ = ['DataSourceStatus', 'PathwayCompleteness', 'PathwaySelection', 'StudyDownload']
