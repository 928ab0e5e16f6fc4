"""
Tenancy policy configuration.

``get_active_policy()`` is the runtime entry point: it loads the file named
by ``TENANCY_POLICY_FILE`` (or the packaged ``defaults.yaml``), validates
it, logs a ``TENANCY_POLICY_LOADED`` record and caches the result.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

from tenancy_config.loader import compute_checksum, load_policy, load_yaml_file, parse_policy
from tenancy_config.schema import TenancyPolicy
from tenancy_kernel.logging_config import get_logger

__all__ = ["TenancyPolicy", "get_active_policy", "load_policy", "reset_active_policy"]

_logger = get_logger("config")

DEFAULT_POLICY_FILE = Path(__file__).parent / "defaults.yaml"
POLICY_FILE_ENV = "TENANCY_POLICY_FILE"

_active: TenancyPolicy | None = None
_lock = threading.Lock()


def get_active_policy(path: Path | None = None) -> TenancyPolicy:
    """Return the active policy, loading it on first use."""
    global _active
    with _lock:
        if _active is not None and path is None:
            return _active
        source = Path(path or os.environ.get(POLICY_FILE_ENV) or DEFAULT_POLICY_FILE)
        data = load_yaml_file(source)
        policy = parse_policy(data)
        _logger.info("TENANCY_POLICY_LOADED", extra={
            "source": str(source),
            "checksum": compute_checksum(data),
        })
        if path is None:
            _active = policy
        return policy


def reset_active_policy() -> None:
    """Drop the cached policy. FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None
