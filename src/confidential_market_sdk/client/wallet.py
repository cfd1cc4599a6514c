from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_typed_data

from ..errors import UserRejectedSignatureError, WalletError

logger = logging.getLogger(__name__)


@runtime_checkable
class Wallet(Protocol):
    """Signing capability of the connected account.

    Implementations raise ``UserRejectedSignatureError`` when the owner declines.
    """

    @property
    def address(self) -> str: ...

    async def sign_typed_data(
        self, domain: dict[str, Any], types: dict[str, list[dict[str, str]]], message: dict[str, Any]
    ) -> str: ...

    async def sign_transaction(self, tx: dict[str, Any]) -> bytes: ...


def _hex_signature(signature: bytes) -> str:
    sig = signature.hex()
    return sig if sig.startswith("0x") else "0x" + sig


class LocalAccountWallet:
    """Wallet backed by a local private key.

    ``approve`` is called with a short description of every signing request
    and may return False to decline it, the way a browser wallet prompt would.
    """

    def __init__(self, private_key: str, approve: Callable[[dict[str, Any]], bool] | None = None) -> None:
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise WalletError("Invalid private key") from e
        self._approve = approve

    @property
    def address(self) -> str:
        return self._account.address

    def _confirm(self, request: dict[str, Any]) -> None:
        if self._approve is not None and not self._approve(request):
            logger.info(f"Signing request declined for {self.address}")
            raise UserRejectedSignatureError()

    async def sign_typed_data(
        self, domain: dict[str, Any], types: dict[str, list[dict[str, str]]], message: dict[str, Any]
    ) -> str:
        self._confirm({"kind": "typed_data", "domain": domain, "primary_type": next(iter(types))})
        try:
            encoded = encode_typed_data(domain_data=domain, message_types=types, message_data=message)
            signed = self._account.sign_message(encoded)
        except (ValueError, TypeError) as e:
            raise WalletError(f"Failed to sign typed data: {e}") from e
        return _hex_signature(signed.signature)

    async def sign_transaction(self, tx: dict[str, Any]) -> bytes:
        self._confirm({"kind": "transaction", "to": tx.get("to"), "value": tx.get("value", 0)})
        try:
            signed = await asyncio.to_thread(self._account.sign_transaction, tx)
        except (ValueError, TypeError) as e:
            raise WalletError(f"Failed to sign transaction: {e}") from e
        return bytes(signed.raw_transaction)
