"""Translation of service-layer failures into HTTP errors."""
from typing import NoReturn

from fastapi import HTTPException

from app.services.errors import WorkflowError


def raise_http(error: WorkflowError) -> NoReturn:
    """Re-raise a WorkflowError as the matching HTTPException."""
    raise HTTPException(status_code=error.status_code, detail=str(error)) from error
