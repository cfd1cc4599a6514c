"""Shared fixtures: an in-process relayer and contract speaking the real wire formats."""

import hashlib
import os
import time
from dataclasses import replace
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives.asymmetric import x25519
from cryptography.hazmat.primitives import serialization
from eth_account import Account
from eth_account.messages import encode_typed_data
from nacl.public import PublicKey, SealedBox
from web3 import Web3

from confidential_market_sdk.client.http import RelayerClient
from confidential_market_sdk.client.wallet import LocalAccountWallet
from confidential_market_sdk.config import LOCALHOST
from confidential_market_sdk.decryption.eip712 import USER_DECRYPT_TYPES, decryption_domain
from confidential_market_sdk.handles import FheType
from confidential_market_sdk.security.envelope import InputEncryption, SealedInput
from confidential_market_sdk.session import FheSession

CONTRACT = Web3.to_checksum_address("0x042155e8Ee5688adEBe209E3a04668b7fB10153e")
USER_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_KEY = "0x" + "11" * 32
RELAYER_URL = "http://relayer.test"


class FakeResponse:
    def __init__(self, status_code, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


def mint_handle(fhe_type, index, chain_id, seed):
    digest = hashlib.sha256(seed + bytes([index])).digest()[:21]
    raw = digest + bytes([index]) + chain_id.to_bytes(8, "big") + bytes([fhe_type]) + b"\x00"
    return "0x" + raw.hex()


class FakeRelayer:
    """Relayer double implementing /v1/keyurl, /v1/input-proof and /v1/user-decrypt."""

    def __init__(self, settings):
        self.settings = settings
        self._network_key = x25519.X25519PrivateKey.generate()
        self.values = {}  # handle -> (value, fhe_type, owner, contract)
        self.calls = {"/v1/keyurl": 0, "/v1/input-proof": 0, "/v1/user-decrypt": 0}
        self.requests = []
        self.omit = set()
        self.fail_with = None  # exception or FakeResponse returned for the next request

    @property
    def public_key_hex(self):
        return self._network_key.public_key().public_bytes(
            serialization.Encoding.Raw, serialization.PublicFormat.Raw
        ).hex()

    def register(self, value, fhe_type, owner, contract):
        """Trivially encrypt a value the way the contract would for msg.value."""
        handle = mint_handle(fhe_type, 0, self.settings.chain_id, os.urandom(8))
        self.values[handle] = (value, fhe_type, owner, contract)
        return handle

    def _fail(self):
        if self.fail_with is None:
            return None
        failure, self.fail_with = self.fail_with, None
        if isinstance(failure, Exception):
            raise failure
        return failure

    def get(self, url, timeout=None):
        path = url.removeprefix(RELAYER_URL)
        self.calls[path] += 1
        return self._fail() or FakeResponse(
            200, {"response": {"public_key": {"id": "key-1", "data": self.public_key_hex}}}
        )

    def post(self, url, json=None, timeout=None):
        path = url.removeprefix(RELAYER_URL)
        self.calls[path] += 1
        self.requests.append((path, json))
        failure = self._fail()
        if failure is not None:
            return failure
        if path == "/v1/input-proof":
            return self._input_proof(json)
        return self._user_decrypt(json)

    def close(self):
        pass

    def _input_proof(self, body):
        aux = (
            bytes.fromhex(body["contractAddress"][2:])
            + bytes.fromhex(body["userAddress"][2:])
            + bytes.fromhex(self.settings.acl_contract_address[2:])
            + int(body["contractChainId"], 16).to_bytes(32, "big")
        )
        sealed = SealedInput.from_bytes(bytes.fromhex(body["ciphertextWithInputVerification"]))
        try:
            payload = InputEncryption().open(sealed, self._network_key, aux)
        except ValueError:
            return FakeResponse(400, {"message": "invalid input proof"})

        count = int.from_bytes(payload[1:3], "big")
        pos, handles = 3, []
        for index in range(count):
            fhe_type = FheType(payload[pos])
            width = max(1, fhe_type.bits // 8)
            value = int.from_bytes(payload[pos + 1 : pos + 1 + width], "big")
            pos += 1 + width
            handle = mint_handle(fhe_type, index, self.settings.chain_id, sealed.nonce)
            self.values[handle] = (value, fhe_type, body["userAddress"], body["contractAddress"])
            handles.append(handle[2:])
        return FakeResponse(200, {"response": {"handles": handles, "signatures": ["ab" * 65]}})

    def _user_decrypt(self, body):
        validity = body["requestValidity"]
        message = {
            "publicKey": "0x" + body["publicKey"],
            "contractAddresses": body["contractAddresses"],
            "startTimestamp": int(validity["startTimestamp"]),
            "durationDays": int(validity["durationDays"]),
        }
        signable = encode_typed_data(
            domain_data=decryption_domain(self.settings),
            message_types=USER_DECRYPT_TYPES,
            message_data=message,
        )
        signer = Account.recover_message(signable, signature="0x" + body["signature"])
        if signer != body["userAddress"]:
            return FakeResponse(403, {"message": "invalid signature"})
        expires = message["startTimestamp"] + message["durationDays"] * 86400
        if not message["startTimestamp"] <= time.time() <= expires:
            return FakeResponse(403, {"message": "request expired"})

        box = SealedBox(PublicKey(bytes.fromhex(body["publicKey"])))
        entries = []
        for pair in body["handleContractPairs"]:
            value, _, owner, contract = self.values[pair["handle"]]
            if owner != body["userAddress"] or contract != pair["contractAddress"]:
                return FakeResponse(403, {"message": "not allowed to decrypt"})
            if pair["handle"] in self.omit:
                continue
            payload = box.encrypt(int(value).to_bytes(32, "big"))
            entries.append({"handle": pair["handle"], "payload": payload.hex()})
        return FakeResponse(200, {"response": entries})


class FakeFunction:
    def __init__(self, contract, name, args):
        self.contract = contract
        self.name = name
        self.args = args

    def call(self):
        return getattr(self.contract, "view_" + self.name)(*self.args)

    def build_transaction(self, params):
        self.contract.pending.append((self.name, self.args, params))
        return {
            "from": params["from"],
            "to": self.contract.address,
            "value": params.get("value", 0),
            "nonce": params["nonce"],
            "gas": 500000,
            "gasPrice": 1_000_000_000,
            "chainId": self.contract.relayer.settings.chain_id,
            "data": "0x",
        }


class FakeFunctions:
    def __init__(self, contract):
        self._contract = contract

    def __getattr__(self, name):
        return lambda *args: FakeFunction(self._contract, name, args)


class FakeMarketContract:
    """Just enough of the market contract to store bet handles and rewards."""

    def __init__(self, address, relayer):
        self.address = address
        self.relayer = relayer
        self.functions = FakeFunctions(self)
        self.pending = []
        self.bets = {}
        self.events = []
        self.sent = []
        self.rewards = {}
        self.claimed = set()

    def apply_next(self, raw_tx):
        self.sent.append(raw_tx)
        name, args, params = self.pending.pop(0)
        getattr(self, "tx_" + name)(params, *args)
        return hashlib.sha256(raw_tx).digest()

    def tx_placeBet(self, params, event_id, shares_handle, direction_handle, proof):
        proof_bytes = bytes.fromhex(proof[2:])
        assert proof_bytes[0] == 2
        assert proof_bytes[2:34].hex() == shares_handle[2:]
        assert proof_bytes[34:66].hex() == direction_handle[2:]
        amount = self.relayer.register(params["value"], FheType.EUINT64, params["from"], self.address)
        self.bets[(event_id, params["from"])] = (amount, shares_handle, direction_handle)

    def tx_resolveEvent(self, params, event_id, outcome):
        self.events[event_id]["resolved"] = True

    def tx_claimRewards(self, params, event_id):
        key = (event_id, params["from"])
        self.rewards.pop(key, None)
        self.claimed.add(key)

    def tx_createPredictionEvent(self, params, *args):
        self.events.append({"args": args, "resolved": False})

    def view_getUserBet(self, event_id, user):
        if (event_id, user) not in self.bets:
            return (b"\x00" * 32, b"\x00" * 32, b"\x00" * 32, False)
        amount, shares, direction = self.bets[(event_id, user)]
        return (bytes.fromhex(amount[2:]), shares, bytes.fromhex(direction[2:]), True)

    def view_getEventCount(self):
        return len(self.events)

    def view_getPendingReward(self, event_id, user):
        return self.rewards.get((event_id, user), 0)

    def view_hasClaimedReward(self, event_id, user):
        return (event_id, user) in self.claimed


@pytest.fixture
def settings():
    return replace(LOCALHOST, relayer_url=RELAYER_URL, contract_address=CONTRACT)


@pytest.fixture
def fake_relayer(settings):
    return FakeRelayer(settings)


@pytest.fixture
def relayer_client(fake_relayer):
    return RelayerClient(RELAYER_URL, session=fake_relayer)


@pytest.fixture
def fhe_session(settings, relayer_client):
    return FheSession(settings, relayer=relayer_client)


@pytest.fixture
def wallet():
    return LocalAccountWallet(USER_KEY)


@pytest.fixture
def fake_web3(fake_relayer):
    contract = FakeMarketContract(CONTRACT, fake_relayer)
    w3 = MagicMock()
    w3.eth.contract.return_value = contract
    w3.eth.get_transaction_count.return_value = 0
    w3.eth.send_raw_transaction.side_effect = contract.apply_next
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "blockNumber": 7}
    w3.contract = contract
    return w3
