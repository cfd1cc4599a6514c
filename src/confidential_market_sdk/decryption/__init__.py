from .coordinator import DecryptionRequestCoordinator
from .eip712 import AuthorizationMessage
from .flow import DecryptionFlow, DecryptionState

__all__ = [
    "AuthorizationMessage",
    "DecryptionFlow",
    "DecryptionRequestCoordinator",
    "DecryptionState",
]
