from enum import Enum

from pydantic import BaseModel, Field

from narrator.schemas.envelope import ErrorInfo


class DurationPolicy(str, Enum):
    """How the output duration of a job is chosen."""

    AUTOMATIC = "auto"
    NARRATION_LENGTH = "narration"
    SOURCE_LENGTH = "source"


class ExportStatus(str, Enum):
    """Export job state."""

    IDLE = "idle"
    PREPARING = "preparing"
    RENDERING = "rendering"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class SubtitleAnchor(BaseModel):
    x: float = Field(default=50.0, ge=0, le=100)
    y: float = Field(default=95.0, ge=0, le=100)


class ExportResult(BaseModel):
    job_id: str
    language: str | None = None
    status: ExportStatus
    artifact_path: str | None = None
    frames_rendered: int = 0
    error: ErrorInfo | None = None


class BatchExportResult(BaseModel):
    status: ExportStatus
    results: list[ExportResult] = Field(default_factory=list)
    total_jobs: int = 0

    @property
    def artifacts(self) -> list[str]:
        return [r.artifact_path for r in self.results if r.artifact_path]
