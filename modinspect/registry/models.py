from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class VersionInfo(BaseModel):
    """Version metadata served by the ``@latest`` and ``.info`` endpoints."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = Field(..., alias="Version", description="Semantic version")
    time: datetime = Field(..., alias="Time", description="Publication time")


class ResponseKind(str, Enum):
    latest = "latest"
    versions = "versions"
    info = "info"
    mod = "mod"


@dataclass(frozen=True)
class CachedResponse(Generic[T]):
    """Cache payload tagged with the endpoint that produced it."""

    kind: ResponseKind
    payload: T
