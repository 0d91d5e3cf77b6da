"""
cl-pair-revenue modules package

This package contains the modules for the channel pair revenue plugin:
- channels: Short channel id helpers and the channel index builder
- pagination: Offset pagination loop for lightningd list commands
- revenue: Forward resolution and the double-entry revenue report
- lightningd: Data access backed by Core Lightning RPC
- config: Configuration and validation
"""

from .channels import ChannelInfo, build_channel_index, scid_to_int, int_to_scid
from .pagination import query_paginated
from .revenue import (
    ForwardingEvent,
    RevenueEvent,
    Revenue,
    PairSummary,
    Report,
    RevenueSources,
    get_revenue_report,
)
from .lightningd import LightningdSource
from .config import Config

__all__ = [
    'ChannelInfo',
    'build_channel_index',
    'scid_to_int',
    'int_to_scid',
    'query_paginated',
    'ForwardingEvent',
    'RevenueEvent',
    'Revenue',
    'PairSummary',
    'Report',
    'RevenueSources',
    'get_revenue_report',
    'LightningdSource',
    'Config'
]
