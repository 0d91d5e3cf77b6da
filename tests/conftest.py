"""
Pytest fixtures for cl-pair-revenue tests.

Provides mock plugin and RPC fixtures plus sample channels and forwards.
"""

import pytest
import os
import sys
from unittest.mock import MagicMock

# Add package root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pair_revenue.channels import ChannelInfo


@pytest.fixture
def mock_plugin():
    """Create a mock plugin with basic functionality."""
    plugin = MagicMock()
    plugin.log = MagicMock()
    plugin.rpc = MagicMock()
    return plugin


@pytest.fixture
def sample_peer_channels():
    """listpeerchannels response with one normal and one unconfirmed channel."""
    return {
        "channels": [
            {
                "peer_id": "02" + "a" * 64,
                "state": "CHANNELD_NORMAL",
                "short_channel_id": "100x1x0",
                "funding_txid": "a" * 64,
                "funding_outnum": 0,
                "alias": {"local": "15000000x1x0", "remote": "16000000x2x0"},
            },
            {
                "peer_id": "02" + "b" * 64,
                "state": "CHANNELD_AWAITING_LOCKIN",
                "funding_txid": "a" * 64,
                "funding_outnum": 1,
            },
        ]
    }


@pytest.fixture
def sample_closed_channels():
    """listclosedchannels response with one closed channel."""
    return {
        "closedchannels": [
            {
                "peer_id": "03" + "c" * 64,
                "short_channel_id": "200x5x1",
                "funding_txid": "b" * 64,
                "funding_outnum": 1,
            },
        ]
    }


@pytest.fixture
def sample_forwards():
    """listforwards response with two settled forwards."""
    return {
        "forwards": [
            {
                "created_index": 4,
                "in_channel": "100x1x0",
                "out_channel": "200x5x1",
                "in_msat": 150000,
                "out_msat": 100000,
                "status": "settled",
                "received_time": 1700000000.123,
            },
            {
                "created_index": 7,
                "in_channel": "200x5x1",
                "out_channel": "100x1x0",
                "in_msat": 40000,
                "out_msat": 39000,
                "status": "settled",
                "received_time": 1700000500.5,
            },
        ]
    }


@pytest.fixture
def mock_rpc(sample_peer_channels, sample_closed_channels, sample_forwards):
    """Create a mock RPC interface with sample channel and forward data."""
    rpc = MagicMock()
    rpc.listpeerchannels.return_value = sample_peer_channels
    rpc.listclosedchannels.return_value = sample_closed_channels
    rpc.listforwards.return_value = sample_forwards
    return rpc


@pytest.fixture
def chan1():
    """First sample channel."""
    return ChannelInfo(chan_id=123, channel_point="a:1")


@pytest.fixture
def chan2():
    """Second sample channel."""
    return ChannelInfo(chan_id=321, channel_point="a:2")
