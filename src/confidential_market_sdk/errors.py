"""Error hierarchy for the confidential market SDK.

Every error carries a machine-readable ``code`` and structured ``details``.
Details never contain plaintexts, private keys or signatures.
"""

from __future__ import annotations

from typing import Any


class MarketSDKError(Exception):
    """Base exception for all SDK errors."""

    code = "CM_INTERNAL_ERROR"

    def __init__(
        self, message: str, code: str | None = None, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {"code": self.code, "message": self.message, "details": self.details}


# Session lifecycle


class NotInitializedError(MarketSDKError):
    code = "CM_SESSION_NOT_INITIALIZED"

    def __init__(self, message: str = "FHE session not initialized. Call initialize() first.") -> None:
        super().__init__(message)


class InitializationFailedError(MarketSDKError):
    """Raised when the FHE session could not be initialized. Safe to retry."""

    code = "CM_SESSION_INIT_FAILED"


class WalletNotConnectedError(MarketSDKError):
    code = "CM_WALLET_NOT_CONNECTED"

    def __init__(self, message: str = "Wallet not connected") -> None:
        super().__init__(message)


# Encrypted input builder


class BuilderFinalizedError(MarketSDKError):
    code = "CM_INPUT_BUILDER_FINALIZED"

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Encrypted input already finalized; cannot call {operation}()",
            details={"operation": operation},
        )


class ValueOutOfRangeError(MarketSDKError):
    code = "CM_INPUT_VALUE_OUT_OF_RANGE"

    def __init__(self, value: Any, fhe_type: str, bits: int) -> None:
        super().__init__(
            f"Value {value!r} does not fit in {fhe_type} ({bits} bits)",
            details={"fhe_type": fhe_type, "bits": bits},
        )


class InputCapacityError(MarketSDKError):
    code = "CM_INPUT_CAPACITY_EXCEEDED"


# Wallet / signing


class UserRejectedSignatureError(MarketSDKError):
    """The wallet owner declined to sign. Terminal for the current attempt."""

    code = "CM_WALLET_SIGNATURE_REJECTED"

    def __init__(self, message: str = "User rejected the signature request") -> None:
        super().__init__(message)


class WalletError(MarketSDKError):
    code = "CM_WALLET_ERROR"


# Relayer


class RelayerUnavailableError(MarketSDKError):
    """Transport-level failure talking to the relayer.

    Recoverable only by starting a fresh request; decryption flows never resume.
    """

    code = "CM_RELAYER_UNAVAILABLE"


class RelayerRejectedError(MarketSDKError):
    code = "CM_RELAYER_REJECTED"

    def __init__(self, path: str, status_code: int, reason: str) -> None:
        super().__init__(
            f"Relayer rejected {path}: {status_code} - {reason}",
            details={"path": path, "status_code": status_code},
        )
        self.status_code = status_code


class RelayerProtocolError(MarketSDKError):
    code = "CM_RELAYER_PROTOCOL_ERROR"


class IncompleteDecryptionError(RelayerProtocolError):
    """The relayer answered without a value for every requested handle."""

    code = "CM_DECRYPTION_INCOMPLETE"

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            f"Relayer response is missing {len(missing)} requested handle(s)",
            details={"missing": missing},
        )
        self.missing = missing


class InvalidHandleError(MarketSDKError):
    code = "CM_INVALID_HANDLE"


class InvalidFlowStateError(MarketSDKError):
    code = "CM_DECRYPTION_INVALID_STATE"


# Contract


class TransactionFailedError(MarketSDKError):
    code = "CM_CONTRACT_TX_FAILED"

    def __init__(self, function: str, tx_hash: str | None = None, reason: str = "reverted") -> None:
        super().__init__(
            f"{function} transaction failed: {reason}",
            details={"function": function, "tx_hash": tx_hash},
        )
        self.tx_hash = tx_hash
