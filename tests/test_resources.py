"""
Tests for CbtcClient and its resources.

Tests cover:
- Retry policy of the shared request loop
- Error mapping per service
- Request shapes for the ledger and the registry
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

import httpx
import pytest

from cbtc_sdk import CbtcClient
from cbtc_sdk.constants import Templates
from cbtc_sdk.models.auth import PasswordGrant
from cbtc_sdk.models.errors import (
    AuthenticationError,
    LedgerQueryError,
    LedgerSubmissionError,
    RefreshRejectedError,
    RegistryError,
    TransportError,
)
from cbtc_sdk.models.submission import Submission
from cbtc_sdk.models.transfer import InstrumentId, Transfer
from cbtc_sdk.resources.ledger import interface_filter, template_filter

from conftest import ADMIN, LEDGER, RECEIVER, REGISTRY, SENDER, TOKEN_URL, holding_contract


def make_client(handler, max_retries: int = 3) -> CbtcClient:
    return CbtcClient(
        ledger_host=LEDGER,
        registry_url=REGISTRY,
        token_url=TOKEN_URL,
        max_retries=max_retries,
        transport=httpx.MockTransport(handler),
        backoff_base=0,
    )


class Flaky:
    """Fails the first ``failures`` calls, then answers ``response``."""

    def __init__(self, failures, response: httpx.Response):
        self.failures = list(failures)
        self.response = response
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.failures:
            failure = self.failures.pop(0)
            if isinstance(failure, Exception):
                raise failure
            return failure
        return self.response


def sample_transfer() -> Transfer:
    return Transfer.build(
        sender=SENDER,
        receiver=RECEIVER,
        amount="1.5",
        instrument_id=InstrumentId(admin=ADMIN),
        input_holding_cids=["h1"],
        now=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestRequestRetries:
    """Tests for CbtcClient._request."""

    async def test_retries_transport_errors(self):
        """Should retry a connection failure and return the later response."""
        handler = Flaky([httpx.ConnectError("down")], httpx.Response(200, json={"offset": 7}))

        async with make_client(handler) as client:
            offset = await client.ledger.ledger_end("token")

        assert offset == 7
        assert handler.calls == 2

    async def test_retries_rate_limit(self):
        """Should retry a 429 honouring Retry-After."""
        handler = Flaky(
            [httpx.Response(429, headers={"Retry-After": "0"})],
            httpx.Response(200, json={"offset": 8}),
        )

        async with make_client(handler) as client:
            assert await client.ledger.ledger_end("token") == 8

        assert handler.calls == 2

    async def test_does_not_retry_server_errors(self):
        """Should hand a 500 straight back to the resource."""
        handler = Flaky([], httpx.Response(500, text="oops"))

        async with make_client(handler) as client:
            with pytest.raises(LedgerQueryError) as exc_info:
                await client.ledger.ledger_end("token")

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "oops"
        assert handler.calls == 1

    async def test_exhausted_retries(self):
        """Should raise after max_retries transport failures."""
        handler = Flaky([httpx.ReadTimeout("slow")] * 3, httpx.Response(200, json={"offset": 1}))

        async with make_client(handler) as client:
            with pytest.raises(LedgerQueryError) as exc_info:
                await client.ledger.ledger_end("token")

        assert isinstance(exc_info.value.__cause__, TransportError)
        assert exc_info.value.retryable
        assert handler.calls == 3

    async def test_single_attempt_when_retry_disabled(self):
        """Should make one attempt for non-retryable requests."""
        handler = Flaky([httpx.ConnectError("down")], httpx.Response(200))

        async with make_client(handler) as client:
            with pytest.raises(TransportError):
                await client._request("POST", f"{LEDGER}/anything", retry=False)

        assert handler.calls == 1


class TestLedgerResource:
    """Tests for LedgerResource."""

    async def test_submit_returns_raw_body(self):
        """Should post the submission with a bearer token and return the body text."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text='{"transactionTree": {}}')

        submission = Submission(act_as=[SENDER], command_id="cmd-1")
        async with make_client(handler) as client:
            raw = await client.ledger.submit_and_wait(submission, "tok")

        assert raw == '{"transactionTree": {}}'
        assert seen[0].url.path == "/v2/commands/submit-and-wait-for-transaction-tree"
        assert seen[0].headers["Authorization"] == "Bearer tok"
        body = json.loads(seen[0].content)
        assert body["commandId"] == "cmd-1"
        assert body["actAs"] == [SENDER]

    async def test_submit_is_never_retried(self):
        """Should not resubmit after a rate limit response."""
        handler = Flaky([httpx.Response(429)], httpx.Response(200, text="{}"))

        async with make_client(handler) as client:
            with pytest.raises(LedgerSubmissionError) as exc_info:
                await client.ledger.submit_and_wait(Submission(act_as=[SENDER]), "tok")

        assert exc_info.value.status_code == 429
        assert handler.calls == 1

    async def test_active_contracts_request(self):
        """Should query at the ledger end with a per-party cumulative filter."""
        seen = []

        def handler(request):
            seen.append(request)
            if request.url.path.endswith("ledger-end"):
                return httpx.Response(200, json={"offset": 99})
            return httpx.Response(200, json=[holding_contract("h1", "1.0")])

        async with make_client(handler) as client:
            contracts = await client.ledger.active_contracts(
                SENDER, "tok", interface_filter(Templates.HOLDING_INTERFACE)
            )

        assert [c.contract_id for c in contracts] == ["h1"]
        body = json.loads(seen[1].content)
        assert body["activeAtOffset"] == 99
        cumulative = body["filter"]["filtersByParty"][SENDER]["cumulative"]
        value = cumulative[0]["identifierFilter"]["InterfaceFilter"]["value"]
        assert value["interfaceId"] == Templates.HOLDING_INTERFACE
        assert value["includeInterfaceView"] is True

    async def test_active_contracts_explicit_offset(self):
        """Should skip the ledger-end query when an offset is given."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        async with make_client(handler) as client:
            await client.ledger.active_contracts(SENDER, "tok", template_filter(Templates.TRANSFER_OFFER), offset=5)

        assert len(seen) == 1
        assert json.loads(seen[0].content)["activeAtOffset"] == 5

    async def test_skips_non_active_entries(self):
        """Should ignore entries that are not active contracts."""
        entries = [
            {"contractEntry": {"JsIncompleteAssigned": {}}},
            {"contractEntry": {}},
            holding_contract("h2", "2.0"),
        ]

        async with make_client(lambda r: httpx.Response(200, json=entries)) as client:
            contracts = await client.ledger.active_contracts(SENDER, "tok", {}, offset=1)

        assert [c.contract_id for c in contracts] == ["h2"]
        assert contracts[0].synchronizer_id == "sync::1"

    async def test_non_list_payload(self):
        """Should reject a payload that is not a list."""
        async with make_client(lambda r: httpx.Response(200, json={"error": "x"})) as client:
            with pytest.raises(LedgerQueryError):
                await client.ledger.active_contracts(SENDER, "tok", {}, offset=1)

    async def test_invalid_json(self):
        """Should map an unreadable body to LedgerQueryError."""
        async with make_client(lambda r: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(LedgerQueryError):
                await client.ledger.ledger_end("tok")


class TestRegistryResource:
    """Tests for RegistryResource."""

    async def test_transfer_factory(self):
        """Should post the choice arguments and parse the context."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                "factoryId": "factory-9",
                "choiceContext": {"choiceContextData": {"values": {"k": "v"}}, "disclosedContracts": []},
            })

        async with make_client(handler) as client:
            context = await client.registry.transfer_factory(ADMIN, sample_transfer())

        assert context.factory_id == "factory-9"
        assert context.template_args == {"k": "v"}
        assert seen[0].url.path == (
            f"/api/token-standard/v0/registrars/{ADMIN}/registry/transfer-instruction/v1/transfer-factory"
        )
        body = json.loads(seen[0].content)
        assert body["choiceArguments"]["expectedAdmin"] == ADMIN
        assert body["choiceArguments"]["transfer"]["amount"] == "1.5"
        assert body["choiceArguments"]["transfer"]["requestedAt"].startswith("2024-01-01T00:00:00")

    async def test_accept_context(self):
        """Should request the accept choice context of an instruction."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"choiceContextData": {"values": {}}, "disclosedContracts": []})

        async with make_client(handler) as client:
            await client.registry.accept_context(ADMIN, "offer-1")

        assert seen[0].url.path.endswith("/transfer-instruction/v1/offer-1/choice-contexts/accept")
        assert json.loads(seen[0].content) == {"meta": {"values": ""}}

    async def test_error_status(self):
        """Should raise RegistryError with status and body."""
        async with make_client(lambda r: httpx.Response(404, text="no such admin")) as client:
            with pytest.raises(RegistryError) as exc_info:
                await client.registry.transfer_factory(ADMIN, sample_transfer())

        assert exc_info.value.status_code == 404
        assert exc_info.value.body == "no such admin"
        assert not exc_info.value.retryable

    async def test_malformed_context(self):
        """Should raise RegistryError when factoryId is missing."""
        async with make_client(lambda r: httpx.Response(200, json={"choiceContext": {}})) as client:
            with pytest.raises(RegistryError):
                await client.registry.transfer_factory(ADMIN, sample_transfer())


class TestIdentityResource:
    """Tests for IdentityResource."""

    async def test_password_form(self):
        """Should post a form-encoded password grant."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"access_token": "a", "refresh_token": "r", "expires_in": 60})

        async with make_client(handler) as client:
            token = await client.identity.password(PasswordGrant(client_id="c", username="u", password="p"))

        assert token.access_token == "a"
        assert seen[0].headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert b"grant_type=password" in seen[0].content

    async def test_grant_logging_masks_credentials(self, caplog):
        """Should log grant requests and rejections with secrets masked."""
        caplog.set_level(logging.DEBUG, logger="cbtc_sdk.resources.identity")
        response = httpx.Response(401, json={"error": "invalid_client", "access_token": "leaked-token"})

        async with make_client(lambda r: response) as client:
            with pytest.raises(AuthenticationError):
                await client.identity.password(PasswordGrant(client_id="c", username="alice", password="hunter2"))

        assert "alice" in caplog.text
        assert "invalid_client" in caplog.text
        assert "hunter2" not in caplog.text
        assert "leaked-token" not in caplog.text

    async def test_refresh_invalid_grant(self):
        """Should raise RefreshRejectedError for an inactive refresh token."""
        response = httpx.Response(400, json={"error": "invalid_grant", "error_description": "Token is not active"})

        async with make_client(lambda r: response) as client:
            with pytest.raises(RefreshRejectedError) as exc_info:
                await client.identity.refresh("c", "r")

        assert exc_info.value.message == "Token is not active"

    async def test_unreadable_token(self):
        """Should raise AuthenticationError for a body without access_token."""
        async with make_client(lambda r: httpx.Response(200, json={"expires_in": 5})) as client:
            with pytest.raises(AuthenticationError):
                await client.identity.refresh("c", "r")

    async def test_transport_failure(self):
        """Should raise AuthenticationError when the provider is unreachable."""
        handler = Flaky([httpx.ConnectError("down")] * 3, httpx.Response(200))

        async with make_client(handler) as client:
            with pytest.raises(AuthenticationError):
                await client.identity.refresh("c", "r")
