"""PII detection and field-level encryption of JSON documents."""

from ferryman.core.pii.scanner import PiiScanner

__all__ = ["PiiScanner"]
