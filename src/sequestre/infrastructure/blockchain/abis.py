"""
Contract ABIs.

MilestoneEscrow exposes one escrow per id with hashed milestones released
strictly in order. Only the create/release/read surface is used here.
"""

MILESTONE_ESCROW_ABI = [
    {
        "type": "function",
        "name": "createEscrow",
        "stateMutability": "payable",
        "inputs": [
            {"name": "_beneficiary", "type": "address"},
            {"name": "_totalAmount", "type": "uint256"},
            {"name": "_milestoneHashes", "type": "bytes32[]"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "releaseMilestone",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_escrowId", "type": "uint256"},
            {"name": "_milestoneIndex", "type": "uint256"},
            {"name": "_milestoneProof", "type": "bytes32"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "getEscrowDetails",
        "stateMutability": "view",
        "inputs": [{"name": "_escrowId", "type": "uint256"}],
        "outputs": [
            {"name": "funder", "type": "address"},
            {"name": "beneficiary", "type": "address"},
            {"name": "totalAmount", "type": "uint256"},
            {"name": "releasedAmount", "type": "uint256"},
            {"name": "completedMilestones", "type": "uint256"},
            {"name": "totalMilestones", "type": "uint256"},
            {"name": "isActive", "type": "bool"},
        ],
    },
    {
        "type": "function",
        "name": "getMilestoneHash",
        "stateMutability": "view",
        "inputs": [
            {"name": "_escrowId", "type": "uint256"},
            {"name": "_milestoneIndex", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
    {
        "type": "event",
        "name": "EscrowCreated",
        "anonymous": False,
        "inputs": [
            {"name": "escrowId", "type": "uint256", "indexed": True},
            {"name": "funder", "type": "address", "indexed": True},
            {"name": "beneficiary", "type": "address", "indexed": True},
            {"name": "amount", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "MilestoneReleased",
        "anonymous": False,
        "inputs": [
            {"name": "escrowId", "type": "uint256", "indexed": True},
            {"name": "milestoneIndex", "type": "uint256", "indexed": False},
            {"name": "amount", "type": "uint256", "indexed": False},
        ],
    },
]

ERC20_ABI = [
    {
        "type": "function",
        "name": "name",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "name": "symbol",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "name": "decimals",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "allowance",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "transfer",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "approve",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "Approval",
        "anonymous": False,
        "inputs": [
            {"name": "owner", "type": "address", "indexed": True},
            {"name": "spender", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
]
