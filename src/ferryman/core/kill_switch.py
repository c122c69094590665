"""File-based kill switch for stopping a running migration."""

from __future__ import annotations

from pathlib import Path

from ferryman.contracts.errors import KillSwitchEngagedError


class KillSwitch:
    """Engaged while the marker file exists.

    Operators stop a run by creating the file (``touch``) and resume by
    deleting it. Checks hit the filesystem every time; nothing is cached.
    """

    def __init__(self, path: Path | str, enabled: bool = True) -> None:
        self._path = Path(path)
        self._enabled = enabled

    @property
    def path(self) -> Path:
        return self._path

    @property
    def enabled(self) -> bool:
        return self._enabled

    def engaged(self) -> bool:
        return self._enabled and self._path.exists()

    def raise_if_engaged(self) -> None:
        """Raise KillSwitchEngagedError if the switch is engaged."""
        if self.engaged():
            raise KillSwitchEngagedError(self._path)
