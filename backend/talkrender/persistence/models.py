"""
Upload record model.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UploadRecord(BaseModel):
    """
    One uploaded raw talk recording.

    path, import_guid and import_reference are each unique across the store.
    rendered goes False -> True once and is never reset.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    path: str
    import_guid: str
    import_reference: int
    rendered: bool = False
    uploaded_at: Optional[datetime] = None
    rendered_at: Optional[datetime] = None
