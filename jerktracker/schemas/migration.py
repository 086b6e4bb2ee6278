"""Legacy migration schemas"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel

from jerktracker.migration import MigrationPhase


class MigrationRequest(BaseModel):
    """
    Admin migration action. ``orders`` carries the browser's legacy blob;
    when omitted the configured legacy file is used.
    """
    action: Literal["migrate", "backup", "clear"]
    orders: Optional[List[Dict[str, Any]]] = None
    force: bool = False


class MigrationStatusResponse(BaseModel):
    legacy_order_count: int
    database_order_count: int
    has_legacy_data: bool
    migration_complete: bool


class BackupResponse(BaseModel):
    success: bool
    order_count: int = 0
    path: Optional[str] = None
    timestamp: Optional[str] = None
    error: Optional[str] = None


class MigrationResponse(BaseModel):
    success: bool
    migrated_count: int
    skipped_count: int
    errors: List[str]
    phase: MigrationPhase
    backup: Optional[BackupResponse] = None
