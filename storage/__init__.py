"""
Storage Package

Persistence of user preferences (selected exchange, update interval,
selected currency pairs) behind a narrow key-value interface.

Price history is never persisted; only the latest price per pair is kept,
in memory, by TickerConfig.
"""

from storage.preferences import (
    InMemoryPreferenceStore,
    JsonFilePreferenceStore,
    PreferenceStore,
)

__all__ = ["PreferenceStore", "InMemoryPreferenceStore", "JsonFilePreferenceStore"]
