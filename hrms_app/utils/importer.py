"""
Utility helpers for importer feature flag checks.
"""

from __future__ import annotations

from flask import current_app


def _get_config(app=None):
    if app is not None:
        return app.config
    return current_app.config


def is_importer_enabled(app=None) -> bool:
    """Return True when the importer feature flag is enabled."""
    config = _get_config(app)
    return bool(config.get("IMPORTER_ENABLED", False))


def get_chunk_size(default: int, app=None) -> int:
    """Return ``IMPORTER_CHUNK_SIZE`` when configured, otherwise ``default``."""
    config = _get_config(app)
    value = config.get("IMPORTER_CHUNK_SIZE")
    if not value:
        return default
    return max(1, int(value))


def get_zero_value_policies(app=None) -> dict[str, str]:
    """Return the per-field zero-value policy map (field -> allow/warn/error)."""
    config = _get_config(app)
    return dict(config.get("IMPORTER_ZERO_VALUE_POLICIES") or {})
