"""
Feature Flags service: HTTP admin surface over the rule store.
"""

from typing import Dict, Optional

from fastapi import Query
from fastapi.encoders import jsonable_encoder

from shared.base_service import BaseService
from shared.errors import SerializationError, ValidationError
from shared.logging import set_actor_context

from .groups.registry import GroupRegistry
from .rules.models import (
    ALL, ANY,
    BackupRequest, BackupResponse, BreakdownRequest, CheckRequest, CheckResponse,
    EnableRequest, ExistsResponse, FeatureListResponse, RenameRequest
)
from .store import RuleStore, build_store, normalize_feature


class FeatureFlagsService(BaseService):
    """Feature Flags service implementation."""

    def __init__(self, groups: Optional[GroupRegistry] = None, **config_overrides):
        super().__init__("flags", 8013, **config_overrides)

        self.store: RuleStore = build_store(self.config, groups=groups, metrics=self.metrics)

        self._setup_flags_routes()

    def _setup_flags_routes(self):
        """Set up feature flag routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "flags",
                "message": "Feature Flags Service",
                "version": "1.0.0",
                "adapter": self.store.adapter.name,
                "groups": sorted(self.store.registered())
            }

        @self.app.get("/features", response_model=FeatureListResponse)
        async def list_features(group: Optional[str] = Query(None)):
            """List features, optionally only those bound to a group."""
            features = await self.store.features(group if group is not None else ALL)
            return FeatureListResponse(features=features, group=group)

        @self.app.post("/features/{name}", status_code=201)
        async def add_feature(name: str):
            """Create a feature without rules."""
            await self.store.add(name)
            return {"feature": normalize_feature(name)}

        @self.app.delete("/features/{name}")
        async def remove_feature(name: str):
            """Delete a feature and its rules."""
            await self.store.remove(name)
            return {"feature": normalize_feature(name), "removed": True}

        @self.app.post("/features/{name}/groups/{group}")
        async def enable_feature(name: str, group: str, request: Optional[EnableRequest] = None):
            """Enable a feature for a group, merging values."""
            await self.store.enable(name, group, request.values if request else [])
            return {"feature": normalize_feature(name), "group": group, "enabled": True}

        @self.app.delete("/features/{name}/groups/{group}")
        async def disable_feature(name: str, group: str, request: Optional[EnableRequest] = None):
            """Disable a feature for a group, or remove values from it."""
            await self.store.disable(name, group, request.values if request else [])
            return {"feature": normalize_feature(name), "group": group, "disabled": True}

        @self.app.post("/features/{name}/rename")
        async def rename_feature(name: str, request: RenameRequest):
            """Rename a feature, replacing any existing target."""
            await self.store.rename(name, request.new_name)
            return {"old": normalize_feature(name), "new": normalize_feature(request.new_name)}

        @self.app.get("/features/{name}/exists", response_model=ExistsResponse)
        async def feature_exists(name: str, group: Optional[str] = Query(None)):
            """Check whether a feature, or a feature/group rule, exists."""
            exists = await self.store.exists(name, group if group is not None else ANY)
            return ExistsResponse(feature=normalize_feature(name), group=group, exists=exists)

        @self.app.post("/features/{name}/check", response_model=CheckResponse)
        async def check_feature(name: str, request: CheckRequest):
            """Decide whether a feature is enabled for an actor."""
            actor_id = request.actor.get("id")
            if actor_id is not None:
                set_actor_context(str(actor_id))

            enabled = await self.store.enabled(name, request.actor)
            return CheckResponse(feature=normalize_feature(name), enabled=enabled)

        @self.app.get("/breakdown")
        async def breakdown():
            """Dump every feature's rules."""
            rules = await self.store.breakdown()
            try:
                return jsonable_encoder(rules)
            except (TypeError, ValueError) as e:
                raise SerializationError(
                    "Stored values are not JSON-representable",
                    {"error": str(e)}
                ) from e

        @self.app.post("/breakdown")
        async def actor_breakdown(request: BreakdownRequest):
            """Evaluate every feature for one actor."""
            return await self.store.breakdown(request.actor)

        @self.app.get("/groups")
        async def list_groups():
            """List registered group names."""
            return {"groups": sorted(self.store.registered())}

        @self.app.post("/backup/dump", response_model=BackupResponse)
        async def dump_backup(request: Optional[BackupRequest] = None):
            """Write all rules to a backup file."""
            path = self._backup_path(request)
            count = await self.store.dump(path)
            return BackupResponse(path=path, features=count)

        @self.app.post("/backup/load", response_model=BackupResponse)
        async def load_backup(request: Optional[BackupRequest] = None):
            """Apply rules from a backup file."""
            path = self._backup_path(request)
            count = await self.store.load(path)
            return BackupResponse(path=path, features=count)

    def _backup_path(self, request: Optional[BackupRequest]) -> str:
        path = (request.path if request else None) or self.config.backup_path
        if not path:
            raise ValidationError("Backup path is required when FLAGS_BACKUP_PATH is not set")
        return path

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check rule store backend."""
        healthy = await self.store.health_check()
        return {self.store.adapter.name: "ok" if healthy else "error"}

    async def start(self):
        """Start feature flag components."""
        await self.store.start()
        await self.store.setup()

        if self.config.metrics_port:
            self.metrics.start_metrics_server(self.config.metrics_port)

        self.logger.info(
            "Feature flags service started",
            adapter=self.store.adapter.name,
            groups=len(self.store.registered())
        )

    async def stop(self):
        """Stop feature flag components."""
        await self.store.stop()

        self.logger.info("Feature flags service stopped")


def create_app(**config_overrides):
    """Create feature flags service application."""
    service = FeatureFlagsService(**config_overrides)
    return service.app


if __name__ == "__main__":
    service = FeatureFlagsService()
    service.run()
