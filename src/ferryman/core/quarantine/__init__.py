"""Quarantine records for documents that failed migration."""

from ferryman.core.quarantine.writer import QuarantineWriter

__all__ = ["QuarantineWriter"]
