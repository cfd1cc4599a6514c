"""Configuration settings for the confidential market SDK."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

DEFAULT_CONTRACT_ADDRESS = "0x042155e8Ee5688adEBe209E3a04668b7fB10153e"
DEFAULT_DURATION_DAYS = 10


@dataclass(frozen=True)
class Settings:
    """Network and relayer settings.

    Use one of the presets (``SEPOLIA``, ``LOCALHOST``) or ``Settings.from_env()``
    and override single fields with ``dataclasses.replace``.
    """

    name: str
    chain_id: int
    gateway_chain_id: int
    relayer_url: str
    rpc_url: str
    acl_contract_address: str
    kms_contract_address: str
    input_verifier_contract_address: str
    verifying_contract_decryption: str
    verifying_contract_input_verification: str
    contract_address: str = DEFAULT_CONTRACT_ADDRESS
    block_explorer: str = ""
    timeout: float = 30.0
    duration_days: int = DEFAULT_DURATION_DAYS
    receipt_timeout: float = 120.0

    @classmethod
    def from_env(cls, base: Settings | None = None) -> Settings:
        """Build settings from ``MARKET_*`` environment variables."""
        if base is None:
            network = os.getenv("MARKET_NETWORK", "sepolia").lower()
            if network not in NETWORKS:
                raise ValueError(f"Unknown network: {network}")
            base = NETWORKS[network]

        overrides: dict[str, object] = {}
        if os.getenv("MARKET_RELAYER_URL"):
            overrides["relayer_url"] = os.environ["MARKET_RELAYER_URL"]
        if os.getenv("MARKET_RPC_URL"):
            overrides["rpc_url"] = os.environ["MARKET_RPC_URL"]
        if os.getenv("MARKET_CONTRACT_ADDRESS"):
            overrides["contract_address"] = os.environ["MARKET_CONTRACT_ADDRESS"]
        if os.getenv("MARKET_TIMEOUT"):
            overrides["timeout"] = float(os.environ["MARKET_TIMEOUT"])
        if os.getenv("MARKET_DURATION_DAYS"):
            overrides["duration_days"] = int(os.environ["MARKET_DURATION_DAYS"])
        return replace(base, **overrides)


SEPOLIA = Settings(
    name="Sepolia Testnet",
    chain_id=11155111,
    gateway_chain_id=55815,
    relayer_url="https://relayer.testnet.zama.cloud",
    rpc_url="https://sepolia.infura.io/v3/YOUR_INFURA_KEY",
    acl_contract_address="0x687820221192C5B662b25367F70076A37bc79b6c",
    kms_contract_address="0x1364cBBf2cDF5032C47d8226a6f6FBD2AFCDacAC",
    input_verifier_contract_address="0xbc91f3daD1A5F19F8390c400196e58073B6a0BC4",
    verifying_contract_decryption="0xb6E160B1ff80D67Bfe90A85eE06Ce0A2613607D1",
    verifying_contract_input_verification="0x7048C39f048125eDa9d678AEbaDfB22F7900a29F",
    block_explorer="https://sepolia.etherscan.io",
)

LOCALHOST = replace(
    SEPOLIA,
    name="Local Hardhat",
    chain_id=31337,
    relayer_url="http://localhost:3000",
    rpc_url="http://localhost:8545",
    block_explorer="",
)

NETWORKS: dict[str, Settings] = {
    "sepolia": SEPOLIA,
    "localhost": LOCALHOST,
}
