"""
Ferryman: resumable key-value document migration with field-level PII encryption.

Moves every document of a source keyspace into a destination store, encrypting
configured personally-identifiable fields on the way, and keeps a durable
checkpoint and quarantine trail so interrupted runs can resume safely.
"""

__version__ = "0.1.0"
