"""Lifecycle of the confidential-computing client context."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .client.http import RelayerClient
from .config import Settings
from .errors import InitializationFailedError, NotInitializedError
from .types import ClientContext

if TYPE_CHECKING:
    from .inputs.builder import EncryptedInputBuilder

logger = logging.getLogger(__name__)


class FheSession:
    """Owns the single ``ClientContext`` of an application.

    Construct one per application and pass it to the components that need it.
    ``initialize()`` is single-flight: concurrent callers share one in-flight
    initialization and receive the same context. A failed initialization is
    dropped so the next call starts over.
    """

    def __init__(
        self,
        settings: Settings,
        relayer: RelayerClient | None = None,
        web3: Any | None = None,
    ) -> None:
        self.settings = settings
        self.relayer = relayer or RelayerClient(settings.relayer_url, timeout=settings.timeout)
        self._web3 = web3
        self._instance: ClientContext | None = None
        self._init_task: asyncio.Task[ClientContext] | None = None

    @property
    def is_initialized(self) -> bool:
        return self._instance is not None

    async def initialize(self) -> ClientContext:
        if self._instance is not None:
            return self._instance

        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._create_instance())
        task = self._init_task
        try:
            # shield: a cancelled caller must not cancel initialization for the others
            return await asyncio.shield(task)
        except BaseException:
            # drop a task that ended without a context (failed or cancelled);
            # one still running belongs to the other callers
            if self._init_task is task and task.done() and self._instance is None:
                self._init_task = None
            raise

    def get_instance(self) -> ClientContext:
        if self._instance is None:
            raise NotInitializedError()
        return self._instance

    def create_encrypted_input(self, contract_address: str, user_address: str | None) -> EncryptedInputBuilder:
        from .inputs.builder import EncryptedInputBuilder

        return EncryptedInputBuilder(self.get_instance(), contract_address, user_address)

    async def _create_instance(self) -> ClientContext:
        try:
            if self._web3 is not None:
                chain_id = await asyncio.to_thread(lambda: self._web3.eth.chain_id)
                if chain_id != self.settings.chain_id:
                    raise InitializationFailedError(
                        f"Unsupported chain {chain_id}; expected {self.settings.chain_id} "
                        f"({self.settings.name})",
                        details={"chain_id": chain_id},
                    )
            public_key = await self.relayer.fetch_public_key()
        except InitializationFailedError:
            logger.error("FHE session initialization failed: unsupported chain")
            raise
        except Exception as e:
            logger.error(f"FHE session initialization failed: {e}")
            raise InitializationFailedError(f"Failed to initialize FHE session: {e}") from e

        self._instance = ClientContext(
            settings=self.settings,
            relayer=self.relayer,
            public_key=public_key,
        )
        logger.info(f"FHE session initialized on {self.settings.name} (key {public_key.key_id})")
        return self._instance

    def close(self) -> None:
        """Release the relayer HTTP session."""
        self.relayer.close()
