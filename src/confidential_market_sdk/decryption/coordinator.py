from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from web3 import Web3

from ..client.wallet import Wallet
from ..errors import RelayerProtocolError, WalletNotConnectedError
from ..handles import to_handle_hex
from ..session import FheSession
from ..types import DecryptionResult, HandleContractPair
from .flow import DecryptionFlow

logger = logging.getLogger(__name__)


class DecryptionRequestCoordinator:
    """Reveals the caller's own encrypted values.

    Every call runs a fresh ``DecryptionFlow``: one new keypair, one wallet
    signature and one relayer submission, however many handles are requested.
    Failed calls are never retried here; call again to start over.
    """

    def __init__(
        self, session: FheSession, wallet: Wallet | None, duration_days: int | None = None
    ) -> None:
        self.session = session
        self.wallet = wallet
        if duration_days is None:
            duration_days = session.settings.duration_days
        self.duration_days = duration_days

    def new_flow(self, pairs: Iterable[HandleContractPair | tuple[Any, str]]) -> DecryptionFlow:
        context = self.session.get_instance()
        if self.wallet is None:
            raise WalletNotConnectedError()
        normalized = []
        for pair in pairs:
            handle, contract = (
                (pair.handle, pair.contract_address) if isinstance(pair, HandleContractPair) else pair
            )
            if not Web3.is_address(contract):
                raise ValueError(f"Invalid contract address: {contract!r}")
            normalized.append(
                HandleContractPair(
                    handle=to_handle_hex(handle),
                    contract_address=Web3.to_checksum_address(contract),
                )
            )
        return DecryptionFlow(context, self.wallet, normalized, self.duration_days)

    async def decrypt_pairs(
        self, pairs: Iterable[HandleContractPair | tuple[Any, str]]
    ) -> DecryptionResult:
        flow = self.new_flow(pairs)
        result = await flow.run()
        logger.info(f"Decrypted {len(result)} value(s)")
        return result

    async def decrypt_many(self, handles: Sequence[Any], contract_address: str) -> DecryptionResult:
        return await self.decrypt_pairs((h, contract_address) for h in handles)

    async def _decrypt_one(self, handle: Any, contract_address: str) -> int | bool:
        result = await self.decrypt_many([handle], contract_address)
        key = to_handle_hex(handle)
        if key not in result:
            raise RelayerProtocolError(f"No value returned for {key}")
        return result[key]

    async def decrypt_bool(self, handle: Any, contract_address: str) -> bool:
        return bool(await self._decrypt_one(handle, contract_address))

    async def decrypt_uint32(self, handle: Any, contract_address: str) -> int:
        value = int(await self._decrypt_one(handle, contract_address))
        if value >= 1 << 32:
            raise RelayerProtocolError("Decrypted value does not fit in euint32")
        return value

    async def decrypt_uint64(self, handle: Any, contract_address: str) -> int:
        value = int(await self._decrypt_one(handle, contract_address))
        if value >= 1 << 64:
            raise RelayerProtocolError("Decrypted value does not fit in euint64")
        return value
