"""
lightningd data access for cl-pair-revenue

Adapts Core Lightning RPC responses to the inputs of the revenue report:
- listpeerchannels  -> open channels
- listclosedchannels -> closed channels
- listforwards (paged by created_index) -> settled forwarding events

RpcError raised by lightningd is not caught here; it propagates to the
caller so a failed listing never produces a partial report.
"""

import threading
from typing import Any, Dict, List, Optional, Tuple

from pyln.client import Plugin

from .channels import ChannelInfo, format_outpoint, scid_to_int
from .revenue import ForwardingEvent, RevenueSources


def _scid_or_none(scid: Optional[str]) -> Optional[int]:
    """Parse a short channel id, returning None if absent or malformed."""
    if not scid:
        return None
    try:
        return scid_to_int(scid)
    except ValueError:
        return None


def channel_infos(channel: Dict[str, Any]) -> List[ChannelInfo]:
    """
    Extract every short channel id a channel may be referred to by.

    Besides the real short channel id, forwards over unconfirmed or private
    channels can name the channel by one of its aliases, so those are
    indexed too. Channels without a funding outpoint yield nothing.
    """
    funding_txid = channel.get("funding_txid")
    funding_outnum = channel.get("funding_outnum")
    if not funding_txid or funding_outnum is None:
        return []

    channel_point = format_outpoint(funding_txid, funding_outnum)

    scids = [channel.get("short_channel_id")]
    alias = channel.get("alias") or {}
    scids.append(alias.get("local"))
    scids.append(alias.get("remote"))

    infos = []
    seen = set()
    for scid in scids:
        chan_id = _scid_or_none(scid)
        if chan_id is None or chan_id in seen:
            continue
        seen.add(chan_id)
        infos.append(ChannelInfo(chan_id=chan_id, channel_point=channel_point))
    return infos


def forwarding_event(fwd: Dict[str, Any]) -> ForwardingEvent:
    """Convert one listforwards entry to a ForwardingEvent."""
    # pyln returns *_msat fields as Millisatoshi, which converts with int()
    return ForwardingEvent(
        chan_id_in=_scid_or_none(fwd.get("in_channel")),
        chan_id_out=_scid_or_none(fwd.get("out_channel")),
        amt_in_msat=int(fwd.get("in_msat", 0)),
        amt_out_msat=int(fwd.get("out_msat", 0)),
        timestamp=int(fwd.get("received_time", 0) or 0),
    )


class LightningdSource:
    """
    Data access functions backed by a pyln plugin RPC connection.

    Calls are serialised with a lock because pyln's RPC client is shared
    between RPC method handlers.
    """

    def __init__(self, plugin: Plugin, rpc_lock: Optional[threading.Lock] = None):
        """
        Initialize the source.

        Args:
            plugin: Reference to the pyln Plugin
            rpc_lock: Lock guarding plugin.rpc (a private one if not given)
        """
        self.plugin = plugin
        self.rpc_lock = rpc_lock or threading.Lock()

    def list_open_channels(self) -> List[ChannelInfo]:
        """Return index entries for every channel listpeerchannels knows."""
        with self.rpc_lock:
            result = self.plugin.rpc.listpeerchannels()

        infos: List[ChannelInfo] = []
        for channel in result.get("channels", []):
            infos.extend(channel_infos(channel))
        return infos

    def list_closed_channels(self) -> List[ChannelInfo]:
        """Return index entries for every channel listclosedchannels knows."""
        with self.rpc_lock:
            result = self.plugin.rpc.listclosedchannels()

        infos: List[ChannelInfo] = []
        for channel in result.get("closedchannels", []):
            infos.extend(channel_infos(channel))
        return infos

    def fetch_forwarding_page(self, offset: int,
                              max_events: int) -> Tuple[List[ForwardingEvent], int]:
        """
        Fetch up to max_events settled forwards starting at created_index offset.

        Returns:
            (events, next_offset) where next_offset follows the last
            created_index in the page, or equals offset for an empty page
        """
        with self.rpc_lock:
            result = self.plugin.rpc.listforwards(
                status="settled",
                index="created",
                start=offset,
                limit=max_events
            )

        forwards = result.get("forwards", [])
        events = [forwarding_event(fwd) for fwd in forwards]

        next_offset = offset
        if forwards:
            last_index = forwards[-1].get("created_index")
            next_offset = int(last_index) + 1 if last_index is not None else offset + len(forwards)

        return events, next_offset

    def sources(self) -> RevenueSources:
        """Bundle the data access functions for get_revenue_report."""
        return RevenueSources(
            list_channels=self.list_open_channels,
            closed_channels=self.list_closed_channels,
            forwarding_history=self.fetch_forwarding_page,
        )
