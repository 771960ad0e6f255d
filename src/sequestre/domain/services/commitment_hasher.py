"""
Milestone commitment hashing.

A commitment hash is keccak256 over the ABI encoding of
``(string title, string description, uint256 amountWei, uint256 dueSeconds)``.
The escrow contract stores one hash per milestone at creation and checks the
release proof against it, so creation and release must both go through
this module.
"""

import json
from typing import Iterable, Union

from eth_abi import encode
from web3 import Web3

from sequestre.domain.exceptions import ValidationError
from sequestre.domain.services.units import NATIVE_DECIMALS, to_base_units
from sequestre.domain.value_objects.milestone_definition import MilestoneDefinition

COMMITMENT_SCHEMA = ["string", "string", "uint256", "uint256"]


def encode_milestone(milestone: MilestoneDefinition) -> bytes:
    """ABI-encode a milestone definition in the canonical field order."""
    return encode(
        COMMITMENT_SCHEMA,
        [
            milestone.title,
            milestone.description,
            to_base_units(milestone.amount, NATIVE_DECIMALS),
            milestone.completion_timestamp,
        ],
    )


def calculate_milestone_hash(milestone: Union[MilestoneDefinition, dict]) -> str:
    """
    Compute the commitment hash of a milestone.

    Args:
        milestone: Milestone definition, or a mapping accepted by
            ``MilestoneDefinition.from_dict``

    Returns:
        0x-prefixed 32-byte hex digest

    Raises:
        ValidationError: If the definition is invalid
    """
    if isinstance(milestone, dict):
        milestone = MilestoneDefinition.from_dict(milestone)
    return Web3.to_hex(Web3.keccak(encode_milestone(milestone)))


def calculate_milestone_hashes(milestones: Iterable[MilestoneDefinition]) -> list[str]:
    return [calculate_milestone_hash(m) for m in milestones]


def parse_proof_data(proof_data: str) -> MilestoneDefinition:
    """
    Parse a release proof document.

    The proof is a JSON object restating the milestone definition. Extra
    keys (evidence links, inspector notes) are kept in the stored proof but
    do not take part in the hash.

    Raises:
        ValidationError: If the proof is not a JSON object with the
            milestone fields
    """
    if not isinstance(proof_data, str) or not proof_data.strip():
        raise ValidationError("proof_data", "cannot be empty")

    try:
        document = json.loads(proof_data)
    except json.JSONDecodeError as e:
        raise ValidationError("proof_data", f"not valid JSON: {e.msg}")

    if not isinstance(document, dict):
        raise ValidationError("proof_data", "must be a JSON object")

    return MilestoneDefinition.from_dict(document)


def hash_proof_data(proof_data: str) -> str:
    """Derive the release proof hash using the commitment scheme."""
    return calculate_milestone_hash(parse_proof_data(proof_data))


def build_proof_data(milestone: MilestoneDefinition, **evidence) -> str:
    """Serialize a proof document for ``milestone`` with optional evidence."""
    document = milestone.to_dict()
    document.update(evidence)
    return json.dumps(document, sort_keys=True)
