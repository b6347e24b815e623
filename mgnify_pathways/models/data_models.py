"""
Pydantic Data Models

Records produced by the pathway selector and the MGnify client.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class DataSourceStatus(BaseModel):
    """Track lookup success rates for one data source."""
    source_name: str = Field(..., description="Data source name (kegg, mgnify)")
    requested: int = Field(0, ge=0, description="Number of lookups attempted")
    successful: int = Field(0, ge=0, description="Number of successful lookups")
    failed: int = Field(0, ge=0, description="Number of failed lookups")
    error_types: List[str] = Field(default_factory=list, description="Types of errors encountered")

    @property
    def success_rate(self) -> float:
        if self.requested == 0:
            return 1.0
        return self.successful / self.requested

    def record_success(self) -> None:
        self.requested += 1
        self.successful += 1

    def record_failure(self, error: Exception) -> None:
        self.requested += 1
        self.failed += 1
        error_type = type(error).__name__
        if error_type not in self.error_types:
            self.error_types.append(error_type)


class PathwayCompleteness(BaseModel):
    """Observed vs expected module membership for one KEGG pathway."""
    pathway_id: str = Field(..., description="Bare numeric pathway accession, e.g. '00010'")
    observed: int = Field(..., ge=0, description="Distinct input modules mapping to the pathway")
    expected: int = Field(..., ge=0, description="Modules KEGG lists for the pathway")
    observed_modules: List[str] = Field(default_factory=list, description="Input modules reaching the pathway")
    missing_modules: List[str] = Field(default_factory=list, description="Expected modules absent from the input")

    @property
    def is_complete(self) -> bool:
        """Every expected module is observed; pathways without modules never are."""
        return self.expected > 0 and self.observed == self.expected and not self.missing_modules

    @property
    def ratio(self) -> Optional[float]:
        """Completeness ratio for reporting; None when nothing is expected."""
        if self.expected == 0:
            return None
        return self.observed / self.expected


class PathwaySelection(BaseModel):
    """Result of a pathway completeness selection."""
    pathways: List[str] = Field(default_factory=list, description="Selected accessions in first-seen order")
    completeness: List[PathwayCompleteness] = Field(
        default_factory=list,
        description="Per-pathway counts in discovery order"
    )
    pinned: List[str] = Field(default_factory=list, description="Custom IDs appended after the candidates")
    skipped_modules: List[str] = Field(default_factory=list, description="Modules whose lookup failed")
    skipped_pathways: List[str] = Field(default_factory=list, description="Pathways whose lookup failed")
    lookup_status: Dict[str, DataSourceStatus] = Field(
        default_factory=dict,
        description="Lookup statistics keyed by operation"
    )

    @property
    def complete_pathways(self) -> List[str]:
        return [p.pathway_id for p in self.completeness if p.is_complete]


class StudyDownload(BaseModel):
    """One downloadable summary file of an MGnify study."""
    study_id: str = Field(..., description="MGnify study accession, e.g. MGYS00005116")
    alias: str = Field(..., description="File name of the download")
    url: str = Field(..., description="Absolute download URL")
    label: str = Field("", description="Description label, e.g. 'KEGG modules'")
    description: Optional[str] = Field(None, description="Long description of the file")
    pipeline_version: Optional[str] = Field(None, description="MGnify pipeline version")
    file_format: Optional[str] = Field(None, description="File format name (TSV, ...)")
