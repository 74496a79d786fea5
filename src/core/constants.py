from enum import StrEnum


class ContestStatus(StrEnum):
    REGISTERED = "registered"
    ACTIVE = "active"
    SEALED = "sealed"
    SETTLED = "settled"


class ContestOrigin(StrEnum):
    FACTORY = "factory"
    IMPORTED = "imported"


class IdentityStatus(StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BLOCKED = "blocked"


class WalletBindingSource(StrEnum):
    MANUAL = "manual"
    AUTO_INFERRED = "auto_inferred"
    IMPORTED = "imported"


class CreationRequestStatus(StrEnum):
    ACCEPTED = "accepted"
    DEPLOYED = "deployed"


# Pagination
DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100
MIN_PAGE_SIZE = 1

# Mainnet, Goerli, Optimism, Sepolia, Arbitrum One, local Hardhat
DEFAULT_SUPPORTED_CHAIN_IDS = frozenset({1, 5, 10, 11155111, 42161, 31337})

# Placeholder user id sent by clients without a session
UNKNOWN_USER_ID = "unknown"

DEFAULT_DATABASE_URL = "postgresql+asyncpg://postgres@localhost/contests"
