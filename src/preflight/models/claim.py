"""Claim record written into exclusive claim files.

Holding a claim is defined by the claim file existing. The record's token
tells holders apart, so a claim only ever removes the file it created.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ClaimRecord(BaseModel):
    """Holder details written to a ``.lock`` file.

    Attributes:
        pid: Process ID of the claim holder.
        run_id: Run identity the claim protects.
        token: Unique per acquisition; identifies the owning FileClaim.
        acquired_at: When the claim was created.
    """

    pid: int = Field(description="Process ID holding the claim")
    run_id: str = Field(description="Run ID the claim protects")
    token: str = Field(default_factory=lambda: uuid.uuid4().hex)
    acquired_at: datetime = Field(default_factory=datetime.now)
