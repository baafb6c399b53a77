"""
Pytest configuration and fixtures for CBTC SDK tests.

``FakeCanton`` plays the identity provider, the registry and the ledger
behind an ``httpx.MockTransport``. Tests script failures by queueing
responses and inspect what was sent through the recorded requests.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union
from urllib.parse import parse_qsl

import httpx
import pytest

from cbtc_sdk import CbtcClient, CredentialSession
from cbtc_sdk.constants import Choices
from cbtc_sdk.models.auth import PasswordGrant

LEDGER = "http://ledger.test"
REGISTRY = "http://registry.test"
KEYCLOAK = "http://keycloak.test"
TOKEN_URL = f"{KEYCLOAK}/auth/realms/canton/protocol/openid-connect/token"

SENDER = "alice::1220aaaa"
RECEIVER = "bob::1220bbbb"
ADMIN = "cbtc-network::1220admin"

SUBMIT_PATH = "/v2/commands/submit-and-wait-for-transaction-tree"


def tree_response(
    change_ids: list[str],
    instruction_id: Optional[str] = None,
    receiver_holding_ids: Optional[list[str]] = None,
    update_id: str = "update-1",
    choice: str = Choices.TRANSFER,
) -> dict[str, Any]:
    """A transaction tree with one exercised transfer event."""
    output: dict[str, Any] = {}
    if instruction_id is not None:
        output["transferInstructionCid"] = instruction_id
    if receiver_holding_ids is not None:
        output["receiverHoldingCids"] = receiver_holding_ids
    return {
        "transactionTree": {
            "updateId": update_id,
            "eventsById": {
                "0": {
                    "ExercisedTreeEvent": {
                        "value": {
                            "choice": choice,
                            "exerciseResult": {
                                "senderChangeCids": change_ids,
                                "output": {"value": output},
                            },
                        }
                    }
                }
            },
        }
    }


def holding_contract(
    contract_id: str,
    amount: str,
    instrument: str = "CBTC",
    lock: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """An active-contracts entry for a Holding interface view."""
    return {
        "workflowId": "",
        "contractEntry": {
            "JsActiveContract": {
                "createdEvent": {
                    "contractId": contract_id,
                    "templateId": "pkg:Utility.Registry.Holding.V0.Holding:Holding",
                    "createdEventBlob": "blob",
                    "interfaceViews": [
                        {
                            "interfaceId": "#splice-api-token-holding-v1:Splice.Api.Token.HoldingV1:Holding",
                            "viewValue": {
                                "owner": SENDER,
                                "instrumentId": {"admin": ADMIN, "id": instrument},
                                "amount": amount,
                                "lock": lock,
                            },
                        }
                    ],
                },
                "synchronizerId": "sync::1",
            }
        },
    }


def offer_contract(contract_id: str, sender: str, receiver: str, amount: str) -> dict[str, Any]:
    """An active-contracts entry for a pending transfer offer."""
    return {
        "contractEntry": {
            "JsActiveContract": {
                "createdEvent": {
                    "contractId": contract_id,
                    "createArgument": {
                        "transfer": {
                            "sender": sender,
                            "receiver": receiver,
                            "amount": amount,
                            "instrumentId": {"admin": ADMIN, "id": "CBTC"},
                            "requestedAt": "2024-01-01T00:00:00Z",
                            "executeBefore": "2024-01-08T00:00:00Z",
                        }
                    },
                }
            }
        }
    }


FACTORY_CONTEXT = {
    "factoryId": "factory-1",
    "transferKind": "offer",
    "choiceContext": {
        "choiceContextData": {"values": {"utility.digitalasset.com/instrument-configuration": "cfg-1"}},
        "disclosedContracts": [
            {
                "templateId": "pkg:Utility.Registry.App.V0.Service.AllocationFactory:AllocationFactory",
                "contractId": "disclosed-1",
                "createdEventBlob": "blob-1",
                "synchronizerId": "sync::1",
            }
        ],
    },
}

ACCEPT_CONTEXT = {
    "choiceContextData": {"values": {"utility.digitalasset.com/transfer-rule": "rule-1"}},
    "disclosedContracts": [
        {
            "templateId": "pkg:Utility.Registry.V0.Rule.Transfer:TransferRule",
            "contractId": "disclosed-2",
            "createdEventBlob": "blob-2",
        }
    ],
}

Scripted = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


def token_body(access: str = "access-1", refresh: str = "refresh-1", expires_in: int = 300) -> dict[str, Any]:
    return {"access_token": access, "refresh_token": refresh, "expires_in": expires_in, "token_type": "Bearer"}


@dataclass
class FakeCanton:
    """In-memory identity provider, registry and ledger."""

    holdings: list[dict[str, Any]] = field(default_factory=list)
    offers: list[dict[str, Any]] = field(default_factory=list)
    token_queue: list[Scripted] = field(default_factory=list)
    registry_queue: list[Scripted] = field(default_factory=list)
    submit_queue: list[Scripted] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)
    grants: list[dict[str, str]] = field(default_factory=list)
    submissions: list[dict[str, Any]] = field(default_factory=list)
    bearer_tokens: list[str] = field(default_factory=list)
    _counter: int = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        path = request.url.path

        if url.startswith(TOKEN_URL):
            form = dict(parse_qsl(request.content.decode()))
            self.grants.append(form)
            scripted = self._scripted(self.token_queue, request)
            return scripted if scripted is not None else httpx.Response(200, json=token_body())

        if url.startswith(REGISTRY):
            scripted = self._scripted(self.registry_queue, request)
            if scripted is not None:
                return scripted
            if path.endswith("/transfer-factory"):
                return httpx.Response(200, json=FACTORY_CONTEXT)
            if path.endswith("/choice-contexts/accept"):
                return httpx.Response(200, json=ACCEPT_CONTEXT)

        if url.startswith(LEDGER):
            self.bearer_tokens.append(request.headers.get("Authorization", ""))
            if path == "/v2/state/ledger-end":
                return httpx.Response(200, json={"offset": 42})
            if path == "/v2/state/active-contracts":
                body = json.loads(request.content)
                cumulative = next(iter(body["filter"]["filtersByParty"].values()))["cumulative"]
                identifier = cumulative[0]["identifierFilter"]
                entries = self.holdings if "InterfaceFilter" in identifier else self.offers
                return httpx.Response(200, json=entries)
            if path == SUBMIT_PATH:
                body = json.loads(request.content)
                self.submissions.append(body)
                scripted = self._scripted(self.submit_queue, request)
                return scripted if scripted is not None else self._auto_submit(body)

        return httpx.Response(404, json={"error": f"no route for {request.method} {url}"})

    def _scripted(self, queue: list[Scripted], request: httpx.Request) -> Optional[httpx.Response]:
        if not queue:
            return None
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return item(request)

    def _auto_submit(self, body: dict[str, Any]) -> httpx.Response:
        """Answer a transfer with fresh change, or a batch with a bare tree."""
        self._counter += 1
        n = self._counter
        command = body["commands"][0]["ExerciseCommand"]
        if command["choice"] != Choices.TRANSFER:
            return httpx.Response(200, json={"transactionTree": {"updateId": f"update-{n}", "eventsById": {}}})
        transfer = command["choiceArgument"]["transfer"]
        if transfer["sender"] == transfer["receiver"]:
            return httpx.Response(
                200,
                json=tree_response([f"change-{n}"], receiver_holding_ids=[f"out-{n}"], update_id=f"update-{n}"),
            )
        return httpx.Response(
            200,
            json=tree_response([f"change-{n}"], instruction_id=f"instr-{n}", update_id=f"update-{n}"),
        )

    def submitted_transfers(self) -> list[dict[str, Any]]:
        return [
            s["commands"][0]["ExerciseCommand"]["choiceArgument"]["transfer"]
            for s in self.submissions
        ]


@pytest.fixture
def fake() -> FakeCanton:
    return FakeCanton()


@pytest.fixture
def grant() -> PasswordGrant:
    return PasswordGrant(client_id="cbtc-cli", username="alice", password="hunter2")


@pytest.fixture
async def client(fake):
    async with CbtcClient(
        ledger_host=LEDGER,
        registry_url=REGISTRY,
        token_url=TOKEN_URL,
        max_retries=3,
        transport=httpx.MockTransport(fake),
        backoff_base=0,
    ) as c:
        yield c


@pytest.fixture
def session(client, grant) -> CredentialSession:
    return CredentialSession(client.identity, grant)
