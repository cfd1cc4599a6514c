from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from ..client.wallet import Wallet
from ..decryption import DecryptionRequestCoordinator
from ..errors import TransactionFailedError, WalletNotConnectedError
from ..handles import to_handle_hex, to_hex_bytes
from ..session import FheSession
from ..types import (
    EncryptedInput,
    HandleContractPair,
    PredictionEvent,
    RevealedBet,
    UserBet,
    UserReward,
)
from .abi import PREDICTION_MARKET_ABI

logger = logging.getLogger(__name__)

# node and transport failures: nonce, funds, gas, connection
_RPC_ERRORS = (ValueError, Web3Exception, requests.exceptions.RequestException)


class PredictionMarketClient:
    """Reads and writes the prediction market contract.

    Encrypted arguments come from ``EncryptedInputBuilder``; stored handles are
    handed to ``DecryptionRequestCoordinator`` to reveal the caller's own bet.
    ``web3`` is blocking, so every RPC runs in a worker thread.
    """

    def __init__(
        self,
        w3: Web3,
        session: FheSession,
        wallet: Wallet | None,
        contract_address: str | None = None,
    ) -> None:
        self.w3 = w3
        self.session = session
        self.wallet = wallet
        self.contract_address = Web3.to_checksum_address(
            contract_address or session.settings.contract_address
        )
        self.contract = w3.eth.contract(address=self.contract_address, abi=PREDICTION_MARKET_ABI)
        self.decryptor = DecryptionRequestCoordinator(session, wallet)

    def _require_wallet(self) -> Wallet:
        if self.wallet is None:
            raise WalletNotConnectedError()
        return self.wallet

    async def _call(self, function: str, *args: Any) -> Any:
        fn = getattr(self.contract.functions, function)(*args)
        return await asyncio.to_thread(fn.call)

    async def _transact(self, function: str, *args: Any, value: int = 0) -> str:
        wallet = self._require_wallet()
        fn = getattr(self.contract.functions, function)(*args)

        def build() -> dict[str, Any]:
            nonce = self.w3.eth.get_transaction_count(wallet.address)
            return fn.build_transaction({"from": wallet.address, "value": value, "nonce": nonce})

        try:
            tx = await asyncio.to_thread(build)
        except ContractLogicError as e:
            raise TransactionFailedError(function, reason=str(e)) from e
        except _RPC_ERRORS as e:
            logger.error(f"{function} could not be prepared: {e}")
            raise TransactionFailedError(function, reason=str(e)) from e

        raw = await wallet.sign_transaction(tx)
        try:
            tx_hash = await asyncio.to_thread(self.w3.eth.send_raw_transaction, raw)
        except _RPC_ERRORS as e:
            logger.error(f"{function} was not accepted by the node: {e}")
            raise TransactionFailedError(function, reason=str(e)) from e
        tx_hex = to_hex_bytes(tx_hash)
        logger.info(f"{function} submitted: {tx_hex}")
        try:
            receipt = await asyncio.to_thread(
                self.w3.eth.wait_for_transaction_receipt,
                tx_hash,
                timeout=self.session.settings.receipt_timeout,
            )
        except TimeExhausted as e:
            raise TransactionFailedError(function, tx_hex, "confirmation timed out") from e
        except _RPC_ERRORS as e:
            raise TransactionFailedError(function, tx_hex, str(e)) from e
        if receipt["status"] != 1:
            raise TransactionFailedError(function, tx_hex)
        logger.info(f"{function} confirmed in block {receipt.get('blockNumber')}")
        return tx_hex

    # Writes

    async def create_prediction_event(
        self, description: str, start_time: int, end_time: int, price_yes: int, price_no: int
    ) -> str:
        if end_time <= start_time:
            raise ValueError("end_time must be after start_time")
        return await self._transact(
            "createPredictionEvent", description, start_time, end_time, price_yes, price_no
        )

    async def place_bet(self, event_id: int, encrypted_input: EncryptedInput, value_wei: int) -> str:
        """Submit (shares handle, direction handle, proof) with ``value_wei`` attached."""
        if len(encrypted_input.handles) != 2:
            raise ValueError("placeBet expects exactly two encrypted values: shares and direction")
        return await self._transact(
            "placeBet",
            event_id,
            encrypted_input.handle_hex(0),
            encrypted_input.handle_hex(1),
            encrypted_input.input_proof_hex,
            value=value_wei,
        )

    async def place_encrypted_bet(self, event_id: int, shares: int, is_yes: bool, value_wei: int) -> str:
        wallet = self._require_wallet()
        builder = self.session.create_encrypted_input(self.contract_address, wallet.address)
        builder.add_uint32(shares).add_bool(is_yes)
        encrypted = await builder.encrypt()
        return await self.place_bet(event_id, encrypted, value_wei)

    async def resolve_event(self, event_id: int, outcome: bool) -> str:
        return await self._transact("resolveEvent", event_id, outcome)

    async def claim_rewards(self, event_id: int) -> str:
        return await self._transact("claimRewards", event_id)

    # Reads

    async def get_event_count(self) -> int:
        return int(await self._call("getEventCount"))

    async def get_prediction_event(self, event_id: int) -> PredictionEvent:
        row = await self._call("getPredictionEvent", event_id)
        return PredictionEvent(
            id=int(row[0]),
            description=row[1],
            start_time=int(row[2]),
            end_time=int(row[3]),
            price_yes=int(row[4]),
            price_no=int(row[5]),
            is_resolved=bool(row[6]),
            outcome=bool(row[7]),
            total_yes_shares=int(row[8]),
            total_no_shares=int(row[9]),
            total_pool_eth=int(row[10]),
        )

    async def get_user_bet(self, event_id: int, user: str | None = None) -> UserBet:
        user = user or self._require_wallet().address
        amount, shares, is_yes, placed = await self._call(
            "getUserBet", event_id, Web3.to_checksum_address(user)
        )
        return UserBet(
            encrypted_amount=to_handle_hex(amount),
            encrypted_shares=to_handle_hex(shares),
            is_yes_bet=to_handle_hex(is_yes),
            has_placed_bet=bool(placed),
        )

    async def get_user_handle_pairs(self, event_id: int) -> list[HandleContractPair]:
        """The caller's stored handles for ``event_id``, ready for decryption."""
        bet = await self.get_user_bet(event_id)
        if not bet.has_placed_bet:
            return []
        return [HandleContractPair(h, self.contract_address) for h in bet.handles]

    async def get_last_error(self, user: str | None = None) -> tuple[str, int]:
        user = user or self._require_wallet().address
        handle, timestamp = await self._call("getLastError", Web3.to_checksum_address(user))
        return to_handle_hex(handle), int(timestamp)

    async def get_pending_reward(self, event_id: int, user: str | None = None) -> int:
        user = user or self._require_wallet().address
        return int(await self._call("getPendingReward", event_id, Web3.to_checksum_address(user)))

    async def has_claimed_reward(self, event_id: int, user: str | None = None) -> bool:
        user = user or self._require_wallet().address
        return bool(await self._call("hasClaimedReward", event_id, Web3.to_checksum_address(user)))

    async def get_user_reward(self, event_id: int, user: str | None = None) -> UserReward:
        pending, claimed = await asyncio.gather(
            self.get_pending_reward(event_id, user), self.has_claimed_reward(event_id, user)
        )
        return UserReward(event_id=event_id, pending_amount=pending, claimed=claimed)

    async def get_user_rewards(
        self, event_ids: Iterable[int], user: str | None = None
    ) -> list[UserReward]:
        """Rewards across ``event_ids``; events with nothing pending are left out."""
        event_ids = list(event_ids)
        if not event_ids:
            return []
        rewards = await asyncio.gather(*(self.get_user_reward(e, user) for e in event_ids))
        return [r for r in rewards if r.pending_amount > 0]

    # Decryption of the caller's own values

    async def reveal_user_bet(self, event_id: int) -> RevealedBet | None:
        """Decrypt amount, shares and direction with a single signature."""
        pairs = await self.get_user_handle_pairs(event_id)
        if not pairs:
            return None
        result = await self.decryptor.decrypt_pairs(pairs)
        amount, shares, is_yes = (result[p.handle] for p in pairs)
        return RevealedBet(event_id=event_id, amount=int(amount), shares=int(shares), is_yes=bool(is_yes))

    async def reveal_last_error(self) -> tuple[int, int]:
        """Decrypt the caller's last error code; returns (code, timestamp)."""
        handle, timestamp = await self.get_last_error()
        if int(handle, 16) == 0:
            # never set
            return 0, timestamp
        result = await self.decryptor.decrypt_many([handle], self.contract_address)
        return int(result[handle]), timestamp
