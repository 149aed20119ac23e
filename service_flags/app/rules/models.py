"""
Rule data models: selectors and HTTP request/response bodies.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Selector(Enum):
    """Sentinels accepted where a group or actor may be omitted."""
    ALL = "all"
    ANY = "any"


ALL = Selector.ALL
ANY = Selector.ANY


class EnableRequest(BaseModel):
    """Body for enabling or disabling a feature for a group."""
    values: List[Any] = Field(default_factory=list)


class RenameRequest(BaseModel):
    """Body for renaming a feature."""
    new_name: str


class CheckRequest(BaseModel):
    """Body for checking a feature against an actor."""
    actor: Dict[str, Any] = Field(default_factory=dict)


class BreakdownRequest(BaseModel):
    """Body for an actor-scoped breakdown."""
    actor: Dict[str, Any] = Field(default_factory=dict)


class FeatureListResponse(BaseModel):
    """List of feature names."""
    features: List[str]
    group: Optional[str] = None


class ExistsResponse(BaseModel):
    """Existence check result."""
    feature: str
    group: Optional[str] = None
    exists: bool


class CheckResponse(BaseModel):
    """Feature decision for an actor."""
    feature: str
    enabled: bool


class BackupRequest(BaseModel):
    """Body for a dump or load; falls back to the configured path."""
    path: Optional[str] = None


class BackupResponse(BaseModel):
    """Result of a dump or load."""
    path: str
    features: int
