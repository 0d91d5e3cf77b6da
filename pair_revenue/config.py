"""
Configuration module for cl-pair-revenue

Contains the Config dataclass that holds the tunable parameters
for the channel pair revenue plugin, plus the type/range tables
used to validate runtime updates.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple
import time


# Type mapping for config fields (for validation)
CONFIG_FIELD_TYPES: Dict[str, type] = {
    'window_days': int,
    'summary_limit': int,
}

# Range constraints for numeric fields
CONFIG_FIELD_RANGES: Dict[str, tuple] = {
    'window_days': (0, 3650),
    'summary_limit': (1, 1000),
}

SECONDS_PER_DAY = 86400


def parse_config_value(key: str, value: Any) -> Any:
    """
    Convert a raw option/RPC value to the declared type of a config field.

    Raises:
        ValueError: If the value cannot be converted or is out of range
    """
    if key not in CONFIG_FIELD_TYPES:
        raise ValueError(f"Unknown config key: {key}")

    try:
        typed_value = int(value)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid value for {key} (expected int): {e}")

    if key in CONFIG_FIELD_RANGES:
        min_val, max_val = CONFIG_FIELD_RANGES[key]
        if not (min_val <= typed_value <= max_val):
            raise ValueError(f"Value {typed_value} out of range [{min_val}, {max_val}] for {key}")

    return typed_value


@dataclass
class Config:
    """
    Configuration container for the channel pair revenue plugin.

    All values can be set via plugin options at startup.
    """

    # Report window: only forwards received in the last N days are counted
    window_days: int = 0           # 0 = full forwarding history

    # Number of channel pairs returned by pair-revenue-summary
    summary_limit: int = 20

    # Internal version tracking (not a user-configurable option)
    _version: int = field(default=0, repr=False, compare=False)

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> 'Config':
        """Build a validated Config from pyln plugin options."""
        return cls(
            window_days=parse_config_value(
                'window_days', options.get('pair-revenue-window-days', 0)),
            summary_limit=parse_config_value(
                'summary_limit', options.get('pair-revenue-summary-limit', 20)),
        )

    def default_window(self, now: Optional[int] = None) -> Tuple[Optional[int], Optional[int]]:
        """
        Return the (start_time, end_time) implied by window_days.

        A window of 0 days means no bound at all.
        """
        if self.window_days <= 0:
            return None, None
        if now is None:
            now = int(time.time())
        return now - self.window_days * SECONDS_PER_DAY, None

    def update_runtime(self, key: str, value: str) -> Dict[str, Any]:
        """
        Validate and apply a runtime config change.

        Returns:
            Dict with status, old_value, new_value, version or an error
        """
        if key not in CONFIG_FIELD_TYPES:
            return {"error": f"Unknown config key: {key}"}

        try:
            typed_value = parse_config_value(key, value)
        except ValueError as e:
            return {"error": str(e)}

        old_value = getattr(self, key)
        setattr(self, key, typed_value)
        self._version += 1

        return {
            "status": "success",
            "key": key,
            "old_value": old_value,
            "new_value": typed_value,
            "version": self._version
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "window_days": self.window_days,
            "summary_limit": self.summary_limit,
            "version": self._version,
        }
