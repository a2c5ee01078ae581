"""
Render result model.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RenderResult(BaseModel):
    """Outcome of a successful renderTalk run."""

    model_config = ConfigDict(extra="forbid")

    import_reference: int
    guid: str
    source_path: str
    final_path: str
    outro_generated: bool = False
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def duration_seconds(self) -> Optional[float]:
        """Render duration in seconds, None while incomplete."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def summary(self) -> str:
        duration = self.duration_seconds()
        duration_str = f" ({duration:.1f}s)" if duration is not None else ""
        return f"RENDERED{duration_str}: import ID {self.import_reference} → {self.final_path}"
