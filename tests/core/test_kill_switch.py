"""Tests for the file-based kill switch."""

from pathlib import Path

import pytest

from ferryman.contracts import KillSwitchEngagedError, MigrationError
from ferryman.core.kill_switch import KillSwitch


class TestKillSwitch:
    def test_not_engaged_without_file(self, tmp_path: Path) -> None:
        switch = KillSwitch(tmp_path / "STOP")

        assert not switch.engaged()
        switch.raise_if_engaged()

    def test_engaged_while_file_exists(self, tmp_path: Path) -> None:
        marker = tmp_path / "STOP"
        switch = KillSwitch(marker)

        marker.touch()
        assert switch.engaged()

        marker.unlink()
        assert not switch.engaged()

    def test_disabled_switch_ignores_file(self, tmp_path: Path) -> None:
        marker = tmp_path / "STOP"
        marker.touch()

        switch = KillSwitch(marker, enabled=False)

        assert not switch.enabled
        assert not switch.engaged()

    def test_raise_if_engaged(self, tmp_path: Path) -> None:
        marker = tmp_path / "STOP"
        marker.touch()

        with pytest.raises(KillSwitchEngagedError, match="STOP") as exc_info:
            KillSwitch(marker).raise_if_engaged()

        assert exc_info.value.path == marker

    def test_engaged_is_not_a_migration_failure(self) -> None:
        assert not issubclass(KillSwitchEngagedError, MigrationError)

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        switch = KillSwitch(str(tmp_path / "STOP"))

        assert switch.path == tmp_path / "STOP"
