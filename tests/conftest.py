# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- field_key_bytes / cipher / scanner: Deterministic key material and a PII
  scanner over the "ssn" and "email" fields
- source_store / destination_store: Empty InMemoryStore instances
- make_orchestrator: Factory wiring a MigrationOrchestrator over tmp_path
- restore_logging: Resets logging after tests that call configure_logging()

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import base64
import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from ferryman.contracts import DurabilityLevel
from ferryman.core.checkpoint import CheckpointStore
from ferryman.core.kill_switch import KillSwitch
from ferryman.core.pii import PiiScanner
from ferryman.core.quarantine import QuarantineWriter
from ferryman.core.rate_limit import RateLimiter
from ferryman.core.security import FieldCipher
from ferryman.engine.orchestrator import MigrationConfig, MigrationOrchestrator
from ferryman.stores import InMemoryStore

TEST_KEY_ID = "test-key-1"
TEST_KEY = bytes(range(32))


@pytest.fixture
def field_key_bytes() -> bytes:
    return TEST_KEY


@pytest.fixture
def field_key_b64() -> str:
    return base64.b64encode(TEST_KEY).decode("ascii")


@pytest.fixture
def cipher() -> FieldCipher:
    return FieldCipher(TEST_KEY, TEST_KEY_ID)


@pytest.fixture
def scanner(cipher: FieldCipher) -> PiiScanner:
    return PiiScanner(cipher, pii_keys=["ssn", "email"])


@pytest.fixture
def source_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def destination_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def make_orchestrator(
    tmp_path: Path,
    scanner: PiiScanner,
    source_store: InMemoryStore,
    destination_store: InMemoryStore,
) -> Callable[..., MigrationOrchestrator]:
    """Factory for orchestrators over tmp_path state.

    Keyword overrides: source, destination, scanner, rate_limiter,
    checkpoint_store, quarantine_writer, kill_switch, and any MigrationConfig
    field (max_in_flight, checkpoint_every, dry_run, durability,
    kill_switch_poll_every).
    """

    def _make(**overrides: Any) -> MigrationOrchestrator:
        config_fields = {
            "max_in_flight": overrides.pop("max_in_flight", 4),
            "checkpoint_every": overrides.pop("checkpoint_every", 0),
            "dry_run": overrides.pop("dry_run", False),
            "durability": overrides.pop("durability", DurabilityLevel.NONE),
            "kill_switch_poll_every": overrides.pop("kill_switch_poll_every", 1000),
        }
        components: dict[str, Any] = {
            "source": source_store,
            "destination": destination_store,
            "scanner": scanner,
            "rate_limiter": RateLimiter.unlimited(),
            "checkpoint_store": CheckpointStore(tmp_path / "state" / "checkpoint.json"),
            "quarantine_writer": QuarantineWriter(tmp_path / "state" / "quarantine"),
            "kill_switch": KillSwitch(tmp_path / "state" / "STOP", enabled=True),
        }
        components.update(overrides)
        return MigrationOrchestrator(config=MigrationConfig(**config_fields), **components)

    return _make


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Undo configure_logging() after a test.

    configure_logging() binds its handler to whatever sys.stdout is at call
    time; under capsys or CliRunner that stream is closed once the test ends.
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
