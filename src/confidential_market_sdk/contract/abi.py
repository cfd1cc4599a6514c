"""JSON ABI of the prediction market contract functions the SDK uses."""

from __future__ import annotations

from typing import Any


def _params(decl: str) -> list[dict[str, str]]:
    params = []
    for item in filter(None, (p.strip() for p in decl.split(","))):
        type_, _, name = item.partition(" ")
        params.append({"name": name, "type": type_, "internalType": type_})
    return params


def _function(name: str, inputs: str, outputs: str = "", mutability: str = "nonpayable") -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": _params(inputs),
        "outputs": _params(outputs),
        "stateMutability": mutability,
    }


PREDICTION_MARKET_ABI: list[dict[str, Any]] = [
    _function(
        "createPredictionEvent",
        "string description, uint256 startTime, uint256 endTime, uint256 priceYes, uint256 priceNo",
    ),
    _function(
        "placeBet",
        "uint256 eventId, bytes32 encryptedShares, bytes32 encryptedIsYesBet, bytes inputProof",
        mutability="payable",
    ),
    _function("resolveEvent", "uint256 eventId, bool outcome"),
    _function("claimRewards", "uint256 eventId"),
    _function(
        "getPredictionEvent",
        "uint256 eventId",
        "uint256 id, string description, uint256 startTime, uint256 endTime, uint256 priceYes, "
        "uint256 priceNo, bool isResolved, bool outcome, uint256 totalYesShares, "
        "uint256 totalNoShares, uint256 totalPoolEth",
        mutability="view",
    ),
    _function(
        "getUserBet",
        "uint256 eventId, address user",
        "bytes32 encryptedAmount, bytes32 encryptedShares, bytes32 isYesBet, bool hasPlacedBet",
        mutability="view",
    ),
    _function("getEventCount", "", "uint256 count", mutability="view"),
    _function("getLastError", "address user", "bytes32 error, uint256 timestamp", mutability="view"),
    _function(
        "getPendingReward", "uint256 eventId, address user", "uint256 amount", mutability="view"
    ),
    _function(
        "hasClaimedReward", "uint256 eventId, address user", "bool claimed", mutability="view"
    ),
]
