"""
Unit tests for domain value objects.

Usage:
    pytest tests/unit/domain/test_value_objects.py
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from sequestre.domain.exceptions import ValidationError
from sequestre.domain.value_objects.escrow_id import (
    canonical_escrow_id,
    parse_escrow_id,
)
from sequestre.domain.value_objects.escrow_state import EscrowState
from sequestre.domain.value_objects.evm_address import EvmAddress
from sequestre.domain.value_objects.milestone_definition import (
    MilestoneDefinition,
    normalize_completion_date,
)
from sequestre.domain.value_objects.network import NetworkConfig
from tests.helpers.factories import milestone_dict

USDC_CHECKSUMMED = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


class TestEvmAddress:
    """Unit tests for EvmAddress value object."""

    def test_lowercase_address_checksummed(self):
        """Test lowercase input is stored checksummed."""
        address = EvmAddress(USDC_CHECKSUMMED.lower())

        assert address.address == USDC_CHECKSUMMED
        assert str(address) == USDC_CHECKSUMMED

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "0x123",
            "not-an-address",
            # Mixed case with a broken checksum
            "0xa0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        ],
    )
    def test_invalid_address_rejected(self, value):
        """Test malformed addresses are rejected."""
        with pytest.raises(ValidationError):
            EvmAddress(value)

    def test_broken_checksum_rejected(self):
        """Test a single flipped case in a checksummed address is refused."""
        with pytest.raises(ValidationError) as exc_info:
            EvmAddress.parse("0xa0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", "token")

        assert exc_info.value.field == "token"
        assert "checksum" in exc_info.value.reason

    def test_single_case_address_accepted(self):
        """Test all-lower and all-upper hex carry no checksum to verify."""
        upper = "0x" + USDC_CHECKSUMMED[2:].upper()

        assert EvmAddress(upper).address == USDC_CHECKSUMMED
        assert EvmAddress(USDC_CHECKSUMMED).address == USDC_CHECKSUMMED

    def test_parse_reports_field(self):
        """Test parse() reports failures against the given field."""
        with pytest.raises(ValidationError) as exc_info:
            EvmAddress.parse("0x123", "beneficiary")

        assert exc_info.value.field == "beneficiary"

    def test_truncated(self):
        """Test display truncation."""
        assert EvmAddress(USDC_CHECKSUMMED).truncated() == "0xA0b8...eB48"


class TestEscrowId:
    """Unit tests for escrow id parsing."""

    @pytest.mark.parametrize("value,expected", [("0", 0), (" 42 ", 42), (7, 7)])
    def test_parse_escrow_id(self, value, expected):
        assert parse_escrow_id(value) == expected

    @pytest.mark.parametrize("value", ["-1", "abc", "1.5", "", "١٢", str(2**256)])
    def test_invalid_escrow_id(self, value):
        """Test non-decimal and out-of-range ids are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            parse_escrow_id(value)

        assert exc_info.value.field == "escrow_id"

    @pytest.mark.parametrize("value", ["5", "05", " 005 ", 5])
    def test_canonical_escrow_id(self, value):
        """Test padded and zero-prefixed ids share one canonical form."""
        assert canonical_escrow_id(value) == "5"

    def test_canonical_zero(self):
        assert canonical_escrow_id("000") == "0"


class TestMilestoneDefinition:
    """Unit tests for MilestoneDefinition value object."""

    def test_from_dict(self):
        """Test building from a camelCase mapping."""
        definition = MilestoneDefinition.from_dict(milestone_dict())

        assert definition.title == "Design"
        assert definition.amount == Decimal("0.4")
        assert definition.completion_date == datetime(
            2027, 1, 1, tzinfo=timezone.utc
        )
        assert definition.completion_timestamp == 1798761600

    def test_missing_description_defaults_empty(self):
        """Test description is optional."""
        data = milestone_dict()
        del data["description"]

        assert MilestoneDefinition.from_dict(data).description == ""

    @pytest.mark.parametrize("missing", ["title", "amount", "completionDate"])
    def test_required_keys(self, missing):
        """Test title, amount and completion date are required."""
        data = milestone_dict()
        del data[missing]

        with pytest.raises(ValidationError):
            MilestoneDefinition.from_dict(data)

    def test_blank_title_rejected(self):
        """Test whitespace-only titles are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            MilestoneDefinition.from_dict(milestone_dict(title="   "))

        assert exc_info.value.field == "title"

    def test_negative_amount_rejected(self):
        """Test negative amounts are rejected."""
        with pytest.raises(ValidationError):
            MilestoneDefinition.from_dict(milestone_dict(amount="-0.1"))

    def test_to_dict_round_trip(self):
        """Test to_dict output is accepted by from_dict."""
        definition = MilestoneDefinition.from_dict(milestone_dict())

        assert MilestoneDefinition.from_dict(definition.to_dict()) == definition

    def test_non_mapping_rejected(self):
        """Test from_dict refuses non-dict input."""
        with pytest.raises(ValidationError):
            MilestoneDefinition.from_dict(["Design", "0.4"])


class TestNormalizeCompletionDate:
    """Unit tests for completion date normalization."""

    def test_offset_converted_to_utc(self):
        """Test offsets are converted to UTC."""
        moment = normalize_completion_date("2027-01-01T02:00:00+02:00")

        assert moment == datetime(2027, 1, 1, tzinfo=timezone.utc)
        assert moment.utcoffset() == timedelta(0)

    def test_naive_string_read_as_utc(self):
        """Test naive ISO strings are read as UTC."""
        assert normalize_completion_date("2027-01-01T00:00:00") == datetime(
            2027, 1, 1, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize(
        "value",
        [
            "yesterday",
            -1,
            float("nan"),
            float("inf"),
            True,
            datetime(1969, 12, 31, tzinfo=timezone.utc),
            [2027, 1, 1],
        ],
    )
    def test_invalid_dates_rejected(self, value):
        """Test unparseable, non-finite and pre-epoch dates are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            normalize_completion_date(value)

        assert exc_info.value.field == "completion_date"


class TestEscrowState:
    """Unit tests for EscrowState value object."""

    def _state(self, completed: int = 1, total: int = 3) -> EscrowState:
        return EscrowState(
            escrow_id="7",
            funder="0x1111111111111111111111111111111111111111",
            beneficiary="0x2222222222222222222222222222222222222222",
            total_amount=Decimal("3"),
            released_amount=Decimal("1"),
            completed_milestones=completed,
            total_milestones=total,
            is_active=completed < total,
        )

    def test_next_releasable_index(self):
        """Test the next releasable index equals the completed count."""
        assert self._state(completed=1).next_releasable_index == 1

    def test_fully_released(self):
        """Test full release detection."""
        assert self._state(completed=3).is_fully_released
        assert not self._state(completed=2).is_fully_released

    def test_to_dict(self):
        """Test JSON representation uses camelCase and string amounts."""
        data = self._state().to_dict()

        assert data["escrowId"] == "7"
        assert data["totalAmount"] == "3"
        assert data["releasedAmount"] == "1"
        assert data["completedMilestones"] == 1
        assert data["totalMilestones"] == 3
        assert data["isActive"] is True


class TestNetworkConfig:
    """Unit tests for NetworkConfig value object."""

    def test_missing_escrow_settings(self):
        """Test missing RPC URL and contract are both reported."""
        network = NetworkConfig(id="ethereum", name="Ethereum Mainnet", chain_id=1)

        assert network.missing_escrow_settings() == ["rpc_url", "escrow_contract"]
        assert not network.has_rpc

    def test_configured_network(self):
        """Test a fully configured network reports nothing missing."""
        network = NetworkConfig(
            id="polygon",
            name="Polygon Mainnet",
            chain_id=137,
            rpc_url="http://localhost:8545",
            escrow_contract="0x" + "ab" * 20,
        )

        assert network.missing_escrow_settings() == []
        assert network.describe() == {
            "id": "polygon",
            "name": "Polygon Mainnet",
            "chainId": 137,
        }
