"""
Channel pair revenue module for cl-pair-revenue

Produces a per-channel-pair revenue report from the node's forwarding
history. For every pair of channels that forwarded payments together the
report holds the amount forwarded and the routing fee earned, split by
direction.

Pipeline:
1. Build a short channel id -> channel point index from open and closed
   channels
2. Drain the paginated forwarding history
3. Resolve each forward's short channel ids to channel points, dropping
   forwards over channels the node no longer knows about
4. Fold the resolved forwards into a double-entry report

Accounting rule for a forward entering on channel A and leaving on
channel B, with fee = amt_in - amt_out:
- report[A][B] gets amount_incoming += amt_in and fees_incoming += fee
- report[B][A] gets amount_outgoing += amt_out and fees_outgoing += fee

All amounts are in millisatoshis.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Any

from pyln.client import Plugin

from .channels import ChannelInfo, build_channel_index, int_to_scid
from .pagination import query_paginated


# Number of forwarding events requested per listforwards page
FORWARDING_PAGE_SIZE = 1000


@dataclass(frozen=True)
class ForwardingEvent:
    """
    A settled forward as reported by the forwarding history.

    Attributes:
        chan_id_in: Compact short channel id the HTLC arrived on (None if
            the history did not name one)
        chan_id_out: Compact short channel id the HTLC left on (None if
            the history did not name one)
        amt_in_msat: Amount received on the incoming channel
        amt_out_msat: Amount sent on the outgoing channel
        timestamp: Unix time the forward was received (0 if unknown)
    """
    chan_id_in: Optional[int]
    chan_id_out: Optional[int]
    amt_in_msat: int
    amt_out_msat: int
    timestamp: int = 0


@dataclass(frozen=True)
class RevenueEvent:
    """A forward with both channels resolved to their channel points."""
    incoming_channel: str
    outgoing_channel: str
    incoming_amt: int
    outgoing_amt: int


@dataclass
class Revenue:
    """
    Revenue accumulated for one directed channel pair.

    Attributes:
        amount_incoming: Amount that arrived on the outer channel and left
            on the inner channel
        amount_outgoing: Amount that left on the outer channel after
            arriving on the inner channel
        fees_incoming: Fees from forwards where the outer channel was incoming
        fees_outgoing: Fees from forwards where the outer channel was outgoing
    """
    amount_incoming: int = 0
    amount_outgoing: int = 0
    fees_incoming: int = 0
    fees_outgoing: int = 0

    @property
    def total_fees(self) -> int:
        return self.fees_incoming + self.fees_outgoing

    @property
    def total_amount(self) -> int:
        return self.amount_incoming + self.amount_outgoing

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {
            "amount_incoming_msat": self.amount_incoming,
            "amount_outgoing_msat": self.amount_outgoing,
            "fees_incoming_msat": self.fees_incoming,
            "fees_outgoing_msat": self.fees_outgoing,
        }


@dataclass
class PairSummary:
    """
    Both directions of one unordered channel pair, combined.

    fees_msat counts each forward between the two channels once.
    """
    channel_a: str
    channel_b: str
    fees_msat: int
    forwarded_a_to_b_msat: int
    forwarded_b_to_a_msat: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "channel_a": self.channel_a,
            "channel_b": self.channel_b,
            "fees_msat": self.fees_msat,
            "forwarded_a_to_b_msat": self.forwarded_a_to_b_msat,
            "forwarded_b_to_a_msat": self.forwarded_b_to_a_msat,
        }


@dataclass
class Report:
    """
    Revenue report keyed by channel point, then by peer channel point.

    channel_pairs is always a dict, empty when there were no forwards.
    """
    channel_pairs: Dict[str, Dict[str, Revenue]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Dict[str, Dict[str, int]]]:
        """Convert to a nested dictionary for JSON serialization."""
        return {
            channel: {peer: revenue.to_dict() for peer, revenue in pairs.items()}
            for channel, pairs in self.channel_pairs.items()
        }

    def channel_totals(self) -> Dict[str, int]:
        """
        Fees credited to each channel, summed over all its pairs.

        A forward contributes to both its incoming and outgoing channel.
        """
        return {
            channel: sum(revenue.total_fees for revenue in pairs.values())
            for channel, pairs in self.channel_pairs.items()
        }

    def pair_summaries(self, limit: Optional[int] = None) -> List[PairSummary]:
        """
        Summarise each unordered channel pair, most fees first.

        Args:
            limit: Maximum number of pairs to return (None = all)
        """
        summaries: Dict[Tuple[str, str], PairSummary] = {}

        for channel, pairs in self.channel_pairs.items():
            for peer, revenue in pairs.items():
                # Only the incoming-first cell is read so each forward counts once
                if revenue.amount_incoming == 0 and revenue.fees_incoming == 0:
                    continue

                key = (channel, peer) if channel <= peer else (peer, channel)
                summary = summaries.get(key)
                if summary is None:
                    summary = PairSummary(key[0], key[1], 0, 0, 0)
                    summaries[key] = summary

                summary.fees_msat += revenue.fees_incoming
                if channel == key[0]:
                    summary.forwarded_a_to_b_msat += revenue.amount_incoming
                else:
                    summary.forwarded_b_to_a_msat += revenue.amount_incoming

        ranked = sorted(
            summaries.values(),
            key=lambda s: (-s.fees_msat, s.channel_a, s.channel_b)
        )
        if limit is not None:
            ranked = ranked[:limit]
        return ranked


@dataclass
class RevenueSources:
    """
    Data access functions the report is built from.

    Attributes:
        list_channels: Returns the node's open channels
        closed_channels: Returns the node's closed channels
        forwarding_history: fetch(offset, max_events) -> (events, next_offset)
    """
    list_channels: Callable[[], List[ChannelInfo]]
    closed_channels: Callable[[], List[ChannelInfo]]
    forwarding_history: Callable[[int, int], Tuple[List[ForwardingEvent], int]]


def _describe_channel(chan_id: Optional[int]) -> str:
    return int_to_scid(chan_id) if chan_id is not None else "unknown"


def _log(plugin: Optional[Plugin], message: str, level: str = 'info') -> None:
    """Log a message using the plugin logger if available."""
    if plugin:
        plugin.log(message, level=level)


def fetch_forwarding_events(query: Callable[[int, int], Tuple[List[ForwardingEvent], int]],
                            plugin: Optional[Plugin] = None) -> List[ForwardingEvent]:
    """Drain the forwarding history, starting at offset 0."""
    return query_paginated(query, FORWARDING_PAGE_SIZE, plugin=plugin)


def filter_events_by_time(events: List[ForwardingEvent],
                          start_time: Optional[int] = None,
                          end_time: Optional[int] = None) -> List[ForwardingEvent]:
    """
    Keep events with start_time <= timestamp < end_time.

    A bound of None is open on that side.
    """
    if start_time is None and end_time is None:
        return list(events)

    return [
        event for event in events
        if (start_time is None or event.timestamp >= start_time)
        and (end_time is None or event.timestamp < end_time)
    ]


def resolve_events(channel_index: Dict[int, str], events: List[ForwardingEvent],
                   plugin: Optional[Plugin] = None) -> List[RevenueEvent]:
    """
    Look up the channel points of each forward's channels.

    Forwards where either channel is missing from the index are skipped;
    revenue cannot be attributed to a channel the node no longer knows.
    """
    resolved: List[RevenueEvent] = []

    for event in events:
        incoming = channel_index.get(event.chan_id_in)
        if incoming is None:
            _log(plugin, f"Skipping forward: incoming channel "
                         f"{_describe_channel(event.chan_id_in)} not found", level='debug')
            continue

        outgoing = channel_index.get(event.chan_id_out)
        if outgoing is None:
            _log(plugin, f"Skipping forward: outgoing channel "
                         f"{_describe_channel(event.chan_id_out)} not found", level='debug')
            continue

        resolved.append(RevenueEvent(
            incoming_channel=incoming,
            outgoing_channel=outgoing,
            incoming_amt=event.amt_in_msat,
            outgoing_amt=event.amt_out_msat,
        ))

    return resolved


def get_events(channel_index: Dict[int, str],
               query: Callable[[int, int], Tuple[List[ForwardingEvent], int]],
               start_time: Optional[int] = None,
               end_time: Optional[int] = None,
               plugin: Optional[Plugin] = None) -> List[RevenueEvent]:
    """
    Fetch all forwards, apply the time window and resolve their channels.

    Raises whatever the query raises; no partial result is returned.
    """
    events = fetch_forwarding_events(query, plugin=plugin)
    events = filter_events_by_time(events, start_time, end_time)
    return resolve_events(channel_index, events, plugin=plugin)


def get_report(events: List[RevenueEvent]) -> Report:
    """
    Fold resolved forwards into a revenue report.

    Each forward is written twice: once to the incoming-first cell and once
    to the outgoing-first cell. When both channels are the same, both writes
    land on one cell.
    """
    report = Report()

    for event in events:
        fee = event.incoming_amt - event.outgoing_amt

        incoming_pairs = report.channel_pairs.setdefault(event.incoming_channel, {})
        outgoing_pairs = report.channel_pairs.setdefault(event.outgoing_channel, {})

        incoming_cell = incoming_pairs.setdefault(event.outgoing_channel, Revenue())
        incoming_cell.amount_incoming += event.incoming_amt
        incoming_cell.fees_incoming += fee

        outgoing_cell = outgoing_pairs.setdefault(event.incoming_channel, Revenue())
        outgoing_cell.amount_outgoing += event.outgoing_amt
        outgoing_cell.fees_outgoing += fee

    return report


def get_revenue_report(sources: RevenueSources,
                       start_time: Optional[int] = None,
                       end_time: Optional[int] = None,
                       plugin: Optional[Plugin] = None) -> Report:
    """
    Build the channel pair revenue report.

    Both channel lists are merged into the index before any forward is
    resolved. The first exception from a data source propagates unchanged.

    Args:
        sources: Channel and forwarding history data access functions
        start_time: Only count forwards received at or after this time
        end_time: Only count forwards received before this time
        plugin: Optional plugin instance for logging

    Returns:
        The aggregated Report
    """
    open_channels = sources.list_channels()
    closed_channels = sources.closed_channels()
    channel_index = build_channel_index(open_channels, closed_channels, plugin=plugin)

    events = get_events(channel_index, sources.forwarding_history,
                        start_time=start_time, end_time=end_time, plugin=plugin)

    report = get_report(events)

    _log(plugin, f"Revenue report: {len(channel_index)} channels indexed, "
                 f"{len(events)} forwards attributed, "
                 f"{len(report.channel_pairs)} channels with revenue")

    return report
