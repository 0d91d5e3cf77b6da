"""
Channel index module for cl-pair-revenue

lightningd refers to a channel in forwarding records by its short channel
id, which is only meaningful while the daemon still knows the channel.
Reports are keyed by the funding outpoint instead ("<txid>:<outnum>"),
which stays stable for the whole channel lifetime, open or closed.

This module provides:
- Conversions between the compact integer form of a short channel id
  and the "BLOCKxTXxOUT" text form that lightningd uses
- ChannelInfo: one (short channel id, outpoint) pair
- build_channel_index: merges open and closed channels into one lookup
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional


# BOLT #7 short_channel_id layout: 3 bytes block, 3 bytes tx index, 2 bytes output
MAX_BLOCK_HEIGHT = 0xFFFFFF
MAX_TX_INDEX = 0xFFFFFF
MAX_OUTPUT_INDEX = 0xFFFF


def scid_to_int(scid: str) -> int:
    """
    Convert a "BLOCKxTXxOUT" short channel id to its compact integer form.

    Raises:
        ValueError: If the string is not a well-formed short channel id
    """
    parts = scid.split('x')
    if len(parts) != 3:
        raise ValueError(f"Invalid short channel id: {scid!r}")

    block_height, tx_index, output_index = (int(p) for p in parts)

    if not (0 <= block_height <= MAX_BLOCK_HEIGHT and
            0 <= tx_index <= MAX_TX_INDEX and
            0 <= output_index <= MAX_OUTPUT_INDEX):
        raise ValueError(f"Short channel id out of range: {scid!r}")

    return (block_height << 40) | (tx_index << 16) | output_index


def int_to_scid(scid_int: int) -> str:
    """Convert a compact integer short channel id to "BLOCKxTXxOUT" form."""
    block_height = scid_int >> 40
    tx_index = (scid_int >> 16) & MAX_TX_INDEX
    output_index = scid_int & MAX_OUTPUT_INDEX
    return f"{block_height}x{tx_index}x{output_index}"


def format_outpoint(funding_txid: str, funding_outnum: int) -> str:
    """Format a funding outpoint as the "<txid>:<outnum>" channel point."""
    return f"{funding_txid}:{funding_outnum}"


@dataclass(frozen=True)
class ChannelInfo:
    """
    Identity of one channel as needed by the revenue report.

    Attributes:
        chan_id: Compact integer short channel id
        channel_point: Funding outpoint "<txid>:<outnum>"
    """
    chan_id: int
    channel_point: str


def build_channel_index(open_channels: Iterable[ChannelInfo],
                        closed_channels: Iterable[ChannelInfo],
                        plugin=None) -> Dict[int, str]:
    """
    Merge open and closed channels into a short channel id -> outpoint lookup.

    Closed channels are merged after open channels, so on a duplicate id the
    closed entry is the one kept. A duplicate with a different outpoint should
    not happen on a healthy node; it is logged as a warning when seen.

    Args:
        open_channels: Channels the node currently has open
        closed_channels: Channels the node has closed
        plugin: Optional plugin instance for logging

    Returns:
        Dict mapping compact short channel id to channel point
    """
    channel_index: Dict[int, str] = {}

    for channel in open_channels:
        channel_index[channel.chan_id] = channel.channel_point

    for channel in closed_channels:
        existing: Optional[str] = channel_index.get(channel.chan_id)
        if existing is not None and existing != channel.channel_point and plugin:
            plugin.log(
                f"Channel {int_to_scid(channel.chan_id)} listed as open ({existing}) "
                f"and closed ({channel.channel_point}); using closed outpoint",
                level='warn'
            )
        channel_index[channel.chan_id] = channel.channel_point

    return channel_index
