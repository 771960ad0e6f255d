"""
EvmAddress value object - Immutable EVM account or contract address.
"""

from dataclasses import dataclass

from web3 import Web3

from sequestre.domain.exceptions import ValidationError


@dataclass(frozen=True)
class EvmAddress:
    """
    Value object representing a validated EVM address.

    Business rules:
    - Must be a 20-byte hex address (0x-prefixed)
    - Mixed-case input must carry a valid EIP-55 checksum
    - Stored in checksummed form
    """

    address: str

    def __post_init__(self):
        """Validate and normalize address on creation."""
        if not self.address or not isinstance(self.address, str):
            raise ValidationError("address", "cannot be empty")

        if not Web3.is_address(self.address):
            raise ValidationError("address", f"invalid EVM address: {self.address}")

        body = self.address[2:]
        if body != body.lower() and body != body.upper():
            if not Web3.is_checksum_address(self.address):
                raise ValidationError(
                    "address", f"invalid EIP-55 checksum: {self.address}"
                )

        object.__setattr__(self, "address", Web3.to_checksum_address(self.address))

    @classmethod
    def parse(cls, value: str, field: str = "address") -> "EvmAddress":
        """Build address, reporting failures against ``field``."""
        try:
            return cls(value)
        except ValidationError as e:
            raise ValidationError(field, e.reason)

    def truncated(self) -> str:
        """Return truncated address for display (e.g., '0x1234...abcd')."""
        return f"{self.address[:6]}...{self.address[-4:]}"

    def __str__(self) -> str:
        return self.address
