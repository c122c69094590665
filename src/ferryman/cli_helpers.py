"""CLI helper functions for building run components from settings."""

from typing import TYPE_CHECKING

from ferryman.core.checkpoint import CheckpointStore
from ferryman.core.kill_switch import KillSwitch
from ferryman.core.pii import PiiScanner
from ferryman.core.quarantine import QuarantineWriter
from ferryman.core.rate_limit import RateLimiter
from ferryman.core.security import FieldCipher, FieldKey, load_field_key
from ferryman.engine.orchestrator import MigrationConfig, MigrationOrchestrator
from ferryman.stores import SqlDocumentStore

if TYPE_CHECKING:
    from ferryman.core.config import FerrymanSettings


def load_key_from_settings(config: "FerrymanSettings") -> FieldKey:
    """Load the field key named by the encryption settings.

    Raises:
        KeyMaterialError: If the key is missing or malformed
    """
    return load_field_key(
        key_id=config.encryption.key_id,
        key_env=config.encryption.key_env,
        key_file=config.encryption.key_file,
    )


def build_scanner(config: "FerrymanSettings", field_key: FieldKey) -> PiiScanner:
    """PII scanner with a cipher for the loaded key."""
    cipher = FieldCipher(field_key.key, field_key.key_id)
    return PiiScanner(cipher, pii_keys=config.pii.keys, key_pattern=config.pii.key_regex)


def build_stores(config: "FerrymanSettings") -> tuple[SqlDocumentStore, SqlDocumentStore]:
    """Unconnected source and destination stores.

    The source table is never created; it must already exist.
    """
    source = SqlDocumentStore(
        config.source.url,
        config.source.table,
        page_size=config.source.page_size,
        create_tables=False,
    )
    destination = SqlDocumentStore(
        config.destination.url,
        config.destination.table,
        page_size=config.destination.page_size,
    )
    return source, destination


def build_orchestrator(
    config: "FerrymanSettings",
    field_key: FieldKey,
    source: SqlDocumentStore,
    destination: SqlDocumentStore,
) -> MigrationOrchestrator:
    """Wire all run components from validated settings.

    Args:
        config: Validated FerrymanSettings instance
        field_key: Loaded field key
        source: Connected source store
        destination: Connected destination store

    Returns:
        MigrationOrchestrator ready to run()
    """
    migration = config.migration
    return MigrationOrchestrator(
        source=source,
        destination=destination,
        scanner=build_scanner(config, field_key),
        rate_limiter=RateLimiter.create(migration.rate_limit.permits_per_second),
        checkpoint_store=CheckpointStore(migration.checkpoint.path),
        quarantine_writer=QuarantineWriter(migration.quarantine.path, migration.quarantine.max_payload_bytes),
        kill_switch=KillSwitch(migration.kill_switch.path, enabled=migration.kill_switch.enabled),
        config=MigrationConfig(
            max_in_flight=migration.max_in_flight,
            checkpoint_every=migration.checkpoint.every,
            dry_run=migration.dry_run,
            durability=migration.durability,
            kill_switch_poll_every=migration.kill_switch.poll_every,
        ),
    )
