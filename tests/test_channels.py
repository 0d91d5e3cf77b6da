"""
Tests for short channel id helpers and the channel index builder.
"""

import pytest

from pair_revenue.channels import (
    ChannelInfo,
    build_channel_index,
    format_outpoint,
    int_to_scid,
    scid_to_int,
)


class TestShortChannelIds:
    """Test conversion between text and compact short channel ids."""

    def test_scid_to_int_packs_fields(self):
        """Block, tx index and output are packed into 3/3/2 bytes."""
        assert scid_to_int("1x2x3") == (1 << 40) | (2 << 16) | 3

    def test_int_to_scid_inverts_scid_to_int(self):
        """A real mainnet scid survives conversion both ways."""
        assert int_to_scid(scid_to_int("739049x1234x1")) == "739049x1234x1"

    def test_zero_scid(self):
        """0x0x0 maps to 0."""
        assert scid_to_int("0x0x0") == 0
        assert int_to_scid(0) == "0x0x0"

    @pytest.mark.parametrize("scid", ["", "100x1", "100:1:0", "axbxc", "1x2x3x4"])
    def test_malformed_scid_raises(self, scid):
        """Strings not of the form BxTxO are rejected."""
        with pytest.raises(ValueError):
            scid_to_int(scid)

    def test_output_index_out_of_range_raises(self):
        """Output index must fit in two bytes."""
        with pytest.raises(ValueError):
            scid_to_int("1x1x65536")

    def test_format_outpoint(self):
        assert format_outpoint("ab" * 32, 3) == "ab" * 32 + ":3"


class TestBuildChannelIndex:
    """Test merging open and closed channels into one index."""

    def test_open_and_closed_channels_merged(self, chan1, chan2):
        """Every open and closed channel gets an entry."""
        index = build_channel_index([chan1], [chan2])

        assert index == {123: "a:1", 321: "a:2"}

    def test_empty_inputs(self):
        """No channels gives an empty index."""
        assert build_channel_index([], []) == {}

    def test_duplicate_id_closed_entry_wins(self, mock_plugin):
        """A closed channel entry overwrites an open one with the same id."""
        index = build_channel_index(
            [ChannelInfo(chan_id=5, channel_point="x:0")],
            [ChannelInfo(chan_id=5, channel_point="y:0")],
            plugin=mock_plugin
        )

        assert index == {5: "y:0"}
        mock_plugin.log.assert_called_once()
        assert mock_plugin.log.call_args.kwargs["level"] == 'warn'

    def test_duplicate_id_same_outpoint_not_logged(self, mock_plugin):
        """Listing the same channel twice is not a conflict."""
        channel = ChannelInfo(chan_id=5, channel_point="x:0")

        index = build_channel_index([channel], [channel], plugin=mock_plugin)

        assert index == {5: "x:0"}
        mock_plugin.log.assert_not_called()
