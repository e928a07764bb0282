"""
User Settings Model

The Settings singleton is stored as one object rather than a
collection. It is merged against the defaults on every read so that
fields introduced after a user's settings were first saved are
backfilled transparently.

DESIGN DECISION: Instead of an ad hoc spread-merge, the stored object
carries a schemaVersion and goes through UserSettings.upgrade(), which
applies explicit per-version migrations before merging.
"""

from collections.abc import Callable, Mapping
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


CURRENT_SCHEMA_VERSION = 2


class SpikeNotificationSettings(BaseModel):
    """When to flag an unusual increase in spending within a category."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool = True
    threshold: float = Field(
        default=50,
        ge=0,
        description="Percentage above the historical average that counts as a spike"
    )
    period: int = Field(
        default=30,
        ge=1,
        description="Length in days of the window compared against history"
    )
    muted_categories: list[str] = Field(
        default_factory=list,
        description="Category IDs never reported as spiking"
    )


class UserSettings(BaseModel):
    """User preferences, persisted as a singleton."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    schema_version: int = CURRENT_SCHEMA_VERSION
    currency: str = "USD"
    theme: str = Field(default="system", pattern="^(light|dark|system)$")
    language: str = "en"
    use_cloud_storage: bool = False
    remote_store_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("remoteStoreUrl", "remote_store_url"),
        serialization_alias="remoteStoreUrl",
    )
    spike_notifications: SpikeNotificationSettings = Field(
        default_factory=SpikeNotificationSettings
    )

    @property
    def remote_enabled(self) -> bool:
        return self.use_cloud_storage and bool(self.remote_store_url)

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def merged_with(self, partial: Mapping[str, Any]) -> "UserSettings":
        """Return a copy with ``partial`` deep-merged over this object."""
        changes = _storage_keys(type(self), partial)
        spike = changes.get("spikeNotifications")
        if isinstance(spike, SpikeNotificationSettings):
            changes["spikeNotifications"] = spike.model_dump(by_alias=True)
        elif isinstance(spike, Mapping):
            changes["spikeNotifications"] = _storage_keys(SpikeNotificationSettings, spike)
        return type(self).upgrade(_deep_merge(self.to_storage(), changes))

    @classmethod
    def defaults(cls) -> "UserSettings":
        return cls()

    @classmethod
    def upgrade(cls, raw: Any) -> "UserSettings":
        """
        Bring a stored settings object up to the current schema.

        Migrations run in version order, then the result is deep-merged
        over the defaults. Anything that is not a mapping yields the
        defaults.
        """
        if not isinstance(raw, Mapping):
            return cls.defaults()

        data = _storage_keys(cls, raw)
        if isinstance(data.get("spikeNotifications"), Mapping):
            data["spikeNotifications"] = _storage_keys(
                SpikeNotificationSettings, data["spikeNotifications"]
            )
        version = data.get("schemaVersion", 1)
        # Unversioned or nonsense versions are treated as the first schema
        if not isinstance(version, int) or version < 1:
            version = 1

        while version < CURRENT_SCHEMA_VERSION:
            data = _MIGRATIONS[version](data)
            version += 1

        merged = _deep_merge(cls.defaults().to_storage(), data)
        merged["schemaVersion"] = CURRENT_SCHEMA_VERSION
        return cls.model_validate(merged)


def _upgrade_v1(data: dict[str, Any]) -> dict[str, Any]:
    """v1 stored the remote URL under mongoDbUrl."""
    if "mongoDbUrl" in data:
        url = data.pop("mongoDbUrl")
        data.setdefault("remoteStoreUrl", url)
    return data


_MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    1: _upgrade_v1,
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _storage_keys(model: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite python field names in ``data`` to the keys used on disk."""
    aliases = {
        name: (info.serialization_alias or info.alias or name)
        for name, info in model.model_fields.items()
    }
    return {aliases.get(key, key): value for key, value in data.items()}
