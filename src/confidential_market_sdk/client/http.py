from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from ..errors import (
    RelayerProtocolError,
    RelayerRejectedError,
    RelayerUnavailableError,
)
from ..types import NetworkPublicKey

logger = logging.getLogger(__name__)

KEYURL_PATH = "/v1/keyurl"
INPUT_PROOF_PATH = "/v1/input-proof"
USER_DECRYPT_PATH = "/v1/user-decrypt"


def _extract_error(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] if resp.text else "unknown error"
    if isinstance(body, dict):
        err = body.get("message") or body.get("error") or "unknown error"
        if isinstance(err, dict):
            etype = err.get("label") or err.get("type", "unknown")
            reason = err.get("message") or err.get("reason", "")
            return f"{etype}: {reason}" if reason else etype
        return str(err)
    return str(body)[:200]


class RelayerClient:
    """HTTP client for the decryption relayer.

    ``requests`` is blocking, so every call is pushed to a worker thread and the
    public methods are awaitable.
    """

    def __init__(
        self, base_url: str, timeout: float = 30.0, session: requests.Session | None = None
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug(f"Relayer {method} {path}")
        try:
            if method == "GET":
                resp = self._session.get(url, timeout=self.timeout)
            else:
                resp = self._session.post(url, json=json, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RelayerUnavailableError(f"Relayer request to {path} failed: {e}") from e

        if resp.status_code >= 500:
            raise RelayerUnavailableError(
                f"Relayer error on {path}: {resp.status_code} - {_extract_error(resp)}",
                details={"path": path, "status_code": resp.status_code},
            )
        if resp.status_code >= 400:
            raise RelayerRejectedError(path, resp.status_code, _extract_error(resp))

        try:
            body = resp.json()
        except ValueError as e:
            raise RelayerProtocolError(f"Invalid JSON response from {path}") from e
        if not isinstance(body, dict) or "response" not in body:
            raise RelayerProtocolError(f"Malformed response from {path}: missing 'response'")
        return body["response"]

    async def fetch_public_key(self) -> NetworkPublicKey:
        """Fetch the network public key inputs are encrypted to."""
        response = await asyncio.to_thread(self._request, "GET", KEYURL_PATH)
        try:
            key_info = response["public_key"]
            key_id = str(key_info["id"])
            data = bytes.fromhex(key_info["data"].removeprefix("0x"))
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise RelayerProtocolError("Malformed public key response") from e
        if len(data) != 32:
            raise RelayerProtocolError(f"Unexpected public key length: {len(data)}")
        return NetworkPublicKey(key_id=key_id, data=data)

    async def input_proof(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Register an encrypted input batch; returns handles and signatures."""
        response = await asyncio.to_thread(self._request, "POST", INPUT_PROOF_PATH, payload)
        if not isinstance(response, dict):
            raise RelayerProtocolError("Malformed input-proof response")
        return response

    async def user_decrypt(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Submit a signed user-decryption request; returns per-handle payloads."""
        response = await asyncio.to_thread(self._request, "POST", USER_DECRYPT_PATH, payload)
        if not isinstance(response, list):
            raise RelayerProtocolError("Malformed user-decrypt response")
        return response

    def close(self) -> None:
        self._session.close()
