"""Export run records: progress, failures, manifest and summary."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ExportProgress(BaseModel):
    """Progress of a running export (items finished / items queued)."""

    current: int = Field(default=0, ge=0)

    total: int = Field(default=0, ge=0)

    model_config = {"frozen": True}


class ExportFailure(BaseModel):
    """One item that could not be fully exported."""

    item_id: str = Field(..., description="Content item id")

    name: str = Field(default="", description="Effective item name at export time")

    image_url: Optional[str] = Field(default=None, description="Remote artifact URL, if any")

    reason: str = Field(..., min_length=1, description="Short failure reason")


class ExportManifest(BaseModel):
    """Summary artifact written at the end of every bulk export run."""

    exported_at: datetime

    version_id: str

    count: int = Field(..., ge=0, description="Number of items selected for export")

    items: List[Dict[str, Any]] = Field(default_factory=list, description="Per-item metadata")

    failures: List[ExportFailure] = Field(default_factory=list)

    skipped: List[str] = Field(
        default_factory=list,
        description="Item ids never started because the run was cancelled"
    )

    cancelled: bool = False

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, by_alias=True)


class ExportSummary(BaseModel):
    """What the UI shows after an export run."""

    exported_at: datetime

    total: int

    success_count: int

    failure_count: int

    skipped_count: int = 0

    manifest_name: str

    failures: List[ExportFailure] = Field(default_factory=list)

    cancelled: bool = False

    @classmethod
    def from_manifest(cls, manifest: ExportManifest, manifest_name: str) -> "ExportSummary":
        """Derive counts from the failure list so the two can never disagree."""
        failure_count = len({f.item_id for f in manifest.failures})
        skipped_count = len(manifest.skipped)
        return cls(
            exported_at=manifest.exported_at,
            total=manifest.count,
            success_count=max(0, manifest.count - failure_count - skipped_count),
            failure_count=failure_count,
            skipped_count=skipped_count,
            manifest_name=manifest_name,
            failures=list(manifest.failures),
            cancelled=manifest.cancelled,
        )
