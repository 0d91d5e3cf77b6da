#!/usr/bin/env python3
"""
cl-pair-revenue: Channel Pair Revenue Reports for Core Lightning

This plugin answers the question "which pairs of my channels earn me
routing fees?". For every pair of channels that forwarded payments
together it reports how much was forwarded in each direction and the
fees earned, credited to both the incoming and the outgoing side.

Channels are keyed by funding outpoint ("<txid>:<outnum>") so that
revenue earned by channels that have since closed is still reported.

Dependencies:
- pyln-client: Core Lightning plugin framework
- listclosedchannels / paged listforwards (Core Lightning v23.11+)

License: MIT
"""

import threading
import time
from typing import Any, Dict, Optional, Tuple

from pyln.client import Plugin, RpcError

from pair_revenue.config import Config
from pair_revenue.lightningd import LightningdSource
from pair_revenue.revenue import get_revenue_report


# Initialize the plugin
plugin = Plugin()

# =============================================================================
# THREAD-SAFE RPC ACCESS
# =============================================================================
# pyln-client's RPC is not inherently thread-safe for concurrent calls.
# Report commands can be issued concurrently from lightning-cli, so every
# call to lightningd goes through this lock.

RPC_LOCK = threading.Lock()

# Global instances (initialized in init)
config: Optional[Config] = None
source: Optional[LightningdSource] = None


# =============================================================================
# PLUGIN OPTIONS
# =============================================================================

plugin.add_option(
    name='pair-revenue-window-days',
    default='0',
    description='Only count forwards from the last N days in reports (default: 0 = full history)'
)

plugin.add_option(
    name='pair-revenue-summary-limit',
    default='20',
    description='Number of channel pairs returned by pair-revenue-summary (default: 20)'
)


# =============================================================================
# INITIALIZATION
# =============================================================================

@plugin.init()
def init(options: Dict[str, Any], configuration: Dict[str, Any], plugin: Plugin, **kwargs):
    """
    Initialize the channel pair revenue plugin.

    Parses and validates options and wires the lightningd data source.
    """
    global config, source

    plugin.log("Initializing cl-pair-revenue plugin...")

    config = Config.from_options(options)
    source = LightningdSource(plugin, RPC_LOCK)

    plugin.log(f"Configuration loaded: window_days={config.window_days}, "
               f"summary_limit={config.summary_limit}")


def _resolve_window(start_time: Optional[int],
                    end_time: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
    """Use explicit bounds if given, otherwise the configured window."""
    if start_time is None and end_time is None:
        return config.default_window()
    return (int(start_time) if start_time is not None else None,
            int(end_time) if end_time is not None else None)


# =============================================================================
# RPC METHODS - Exposed to lightning-cli
# =============================================================================

@plugin.method("pair-revenue-report")
def pair_revenue_report(plugin: Plugin, start_time: Optional[int] = None,
                        end_time: Optional[int] = None) -> Dict[str, Any]:
    """
    Revenue for every directed pair of channels that forwarded together.

    Usage:
      lightning-cli pair-revenue-report
      lightning-cli pair-revenue-report start_time=1700000000 end_time=1710000000

    Amounts and fees are in millisatoshis. channel_pairs[A][B] holds what
    channel A forwarded to B (amount_incoming, fees_incoming) and what A
    sent out after receiving it on B (amount_outgoing, fees_outgoing).
    """
    if config is None or source is None:
        return {"error": "Plugin not initialized"}

    try:
        start, end = _resolve_window(start_time, end_time)
        report = get_revenue_report(source.sources(), start_time=start,
                                    end_time=end, plugin=plugin)
    except (RpcError, ValueError) as e:
        plugin.log(f"Error generating revenue report: {e}", level='error')
        return {"error": str(e)}

    return {
        "start_time": start,
        "end_time": end,
        "channel_pairs": report.to_dict(),
        "generated_at": int(time.time())
    }


@plugin.method("pair-revenue-summary")
def pair_revenue_summary(plugin: Plugin, limit: Optional[int] = None,
                         start_time: Optional[int] = None,
                         end_time: Optional[int] = None) -> Dict[str, Any]:
    """
    Most profitable channel pairs and fee totals per channel.

    Usage:
      lightning-cli pair-revenue-summary
      lightning-cli pair-revenue-summary limit=5
    """
    if config is None or source is None:
        return {"error": "Plugin not initialized"}

    try:
        pair_limit = int(limit) if limit is not None else config.summary_limit
        if pair_limit < 1:
            return {"error": f"limit must be at least 1, got {pair_limit}"}

        start, end = _resolve_window(start_time, end_time)
        report = get_revenue_report(source.sources(), start_time=start,
                                    end_time=end, plugin=plugin)
    except (RpcError, ValueError) as e:
        plugin.log(f"Error generating revenue summary: {e}", level='error')
        return {"error": str(e)}

    channel_totals = report.channel_totals()
    ranked_channels = sorted(channel_totals.items(), key=lambda kv: (-kv[1], kv[0]))

    return {
        "start_time": start,
        "end_time": end,
        "top_pairs": [s.to_dict() for s in report.pair_summaries(pair_limit)],
        "channel_fees_msat": [
            {"channel": channel, "fees_msat": fees} for channel, fees in ranked_channels
        ],
        "generated_at": int(time.time())
    }


@plugin.method("pair-revenue-config")
def pair_revenue_config(plugin: Plugin, key: Optional[str] = None,
                        value: Optional[str] = None) -> Dict[str, Any]:
    """
    Show or update runtime configuration.

    Usage:
      lightning-cli pair-revenue-config                        # Show config
      lightning-cli pair-revenue-config window_days 30         # Update a key
    """
    if config is None:
        return {"error": "Plugin not initialized"}

    if key is None:
        return config.to_dict()

    if value is None:
        return {"error": "Usage: pair-revenue-config <key> <value>"}

    result = config.update_runtime(key, str(value))
    if "error" not in result:
        plugin.log(f"Config updated: {key}={result['new_value']}")
    return result


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    plugin.run()
