"""Error response models."""

from datetime import datetime

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body of every error response.

    ``error`` is the human-readable message; ``detail`` optionally names the
    error category.
    """

    error: str
    detail: str | None = None
    timestamp: datetime
    request_id: str
