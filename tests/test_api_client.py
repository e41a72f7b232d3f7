"""Tests for ApiClient.send and the client-facing accessors."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from erply_client.clients.api_client import ApiClient
from erply_client.core.errors import ConfigurationError, DecodeError, TransportError
from erply_client.logging_config import logger
from erply_client.schemas.calls import TransportOutcome

from .conftest import API_URL, NOW, ok, verify_user_ok

PRODUCTS = {"status": {"errorCode": 0}, "records": [{"productID": 1}]}


class TestConfiguration:

    def test_send_without_url_raises_before_io(self, transport):
        client = ApiClient(transport=transport)
        with pytest.raises(ConfigurationError):
            client.send("getProducts")
        assert transport.calls == []

    def test_setters_chain_and_normalise(self, transport):
        client = (
            ApiClient(transport=transport)
            .set_url("https://123456.erply.com/api")
            .set_client_code("123456")
            .set_username("u")
            .set_password("p")
            .set_connection_timeout(5)
            .set_execution_timeout(60)
        )
        assert client.config.url == API_URL
        assert client.config.connection_timeout == 5

    def test_timeouts_reach_transport(self, client, transport):
        client.set_connection_timeout(3).set_execution_timeout(20)
        transport.queue(ok(PRODUCTS))
        client.send("getProducts", {"sessionKey": "explicit"})
        _, _, timeouts = transport.calls[0]
        assert timeouts == {"connection_timeout": 3, "execution_timeout": 20}


class TestAuthentication:

    def test_first_call_fetches_session_key(self, client, transport):
        transport.queue(verify_user_ok("abc"), ok(PRODUCTS))
        assert client.send("getProducts", {"recordsOnPage": 10}) == PRODUCTS
        assert transport.requests == ["verifyUser", "getProducts"]

        url, params, _ = transport.calls[1]
        assert url == API_URL
        assert params == {
            "recordsOnPage": 10,
            "request": "getProducts",
            "clientCode": "123456",
            "sessionKey": "abc",
        }

    def test_cached_key_is_reused(self, client, transport):
        transport.queue(verify_user_ok("abc"), ok(PRODUCTS), ok(PRODUCTS))
        client.send("getProducts")
        client.send("getProducts")
        assert transport.requests == ["verifyUser", "getProducts", "getProducts"]

    @pytest.mark.parametrize("field", ["sessionKey", "serviceKey", "applicationKey"])
    def test_explicit_key_skips_bootstrap(self, client, transport, field):
        transport.queue(ok(PRODUCTS))
        client.send("getProducts", {field: "explicit"})
        assert transport.requests == ["getProducts"]
        assert transport.calls[0][1][field] == "explicit"
        assert client.session_key is None

    def test_empty_explicit_key_does_not_count(self, client, transport):
        transport.queue(verify_user_ok("abc"), ok(PRODUCTS))
        client.send("getProducts", {"sessionKey": ""})
        assert transport.calls[1][1]["sessionKey"] == "abc"

    @pytest.mark.parametrize("call", ["verifyUser", "createInstallation"])
    def test_exempt_calls_are_sent_without_key(self, client, transport, call):
        transport.queue(ok({"status": {"errorCode": 0}, "records": []}))
        client.send(call, {"username": "x"})
        assert transport.requests == [call]
        assert "sessionKey" not in transport.calls[0][1]

    def test_rejected_bootstrap_is_returned_not_raised(self, client, transport):
        rejected = {"status": {"errorCode": 1051, "request": "verifyUser"}, "records": []}
        transport.queue(ok(rejected))
        assert client.send("getProducts") == rejected
        assert transport.requests == ["verifyUser"]
        assert client.session_key is None

    def test_seeded_session_is_used(self, client, transport):
        client.set_session_key("seeded").set_expiry_timestamp(NOW + 600)
        transport.queue(ok(PRODUCTS))
        client.send("getProducts")
        assert transport.calls[0][1]["sessionKey"] == "seeded"

    def test_caller_parameters_are_not_mutated(self, client, transport):
        params = {"productID": 5}
        transport.queue(verify_user_ok(), ok(PRODUCTS))
        client.send("getProducts", params)
        assert params == {"productID": 5}


class TestFailures:

    def test_transport_failure_raises_with_code(self, client, transport):
        transport.queue(TransportOutcome(error_code=7, error_text="Connection refused"))
        with pytest.raises(TransportError) as excinfo:
            client.send("getProducts", {"sessionKey": "k"})
        assert excinfo.value.error_code == 7
        assert "Transport error 7" in str(excinfo.value)
        assert client.transport_error_code == 7
        assert client.has_failed()
        assert client.error_message() == "Transport error 7: Connection refused"

    def test_transport_error_takes_precedence_over_status(self, client, transport):
        transport.queue(TransportOutcome(error_code=28, error_text="timed out", status_code=500))
        with pytest.raises(TransportError) as excinfo:
            client.send("getProducts", {"sessionKey": "k"})
        assert str(excinfo.value).startswith("Transport error 28")

    def test_status_500_raises_without_decoding(self, client, transport):
        transport.queue(TransportOutcome(body='{"status": {"errorCode": 0}}', status_code=500))
        with pytest.raises(TransportError) as excinfo:
            client.send("getProducts", {"sessionKey": "k"})
        assert excinfo.value.status_code == 500
        assert str(excinfo.value) == "HTTP status code 500"
        assert client.error_message() == "HTTP status code 500"

    def test_invalid_json_raises_decode_error(self, client, transport, clock):
        client.set_session_key("seeded").set_expiry_timestamp(NOW + 600)
        transport.queue(TransportOutcome(body="{not json", status_code=200))
        with pytest.raises(DecodeError) as excinfo:
            client.send("getProducts")
        assert excinfo.value.body == "{not json"
        assert client.session_snapshot() == ("seeded", NOW + 600)

    def test_empty_body_is_a_decode_error(self, client, transport):
        transport.queue(TransportOutcome(body="", status_code=200))
        with pytest.raises(DecodeError):
            client.send("getProducts", {"sessionKey": "k"})

    def test_application_errors_are_returned(self, client, transport):
        payload = {"status": {"errorCode": 1002, "request": "getProducts"}, "records": None}
        transport.queue(ok(payload))
        assert client.send("getProducts", {"sessionKey": "k"}) == payload
        assert not client.has_failed()
        assert client.error_message() == ""
        assert client.status_code == 200

    def test_close_closes_transport(self, client, transport):
        client.close()
        assert transport.closed


class RoutingTransport:
    """Thread-safe transport answering each call name with its own outcome."""

    def __init__(self, outcomes: dict) -> None:
        self.outcomes = outcomes
        self.requests: list[str] = []
        self._lock = threading.Lock()

    def post(self, url, params, *, connection_timeout=None, execution_timeout=None):
        with self._lock:
            self.requests.append(params["request"])
        return self.outcomes[params["request"]]

    def close(self) -> None:
        pass


class PauseOnFailedCall(logging.Handler):
    """Holds the failing call inside its error log line until released."""

    def __init__(self, reached: threading.Event, release: threading.Event) -> None:
        super().__init__()
        self.reached = reached
        self.release_event = release

    def emit(self, record: logging.LogRecord) -> None:
        if '"api_call_failed"' in record.getMessage():
            self.reached.set()
            self.release_event.wait(2)


class TestConcurrentSends:

    def test_failure_keeps_its_own_status_while_another_call_completes(self, config, clock):
        transport = RoutingTransport({
            "badCall": TransportOutcome(body="", status_code=500),
            "goodCall": ok({"status": {"errorCode": 0}, "records": ["good"]}),
        })
        client = ApiClient(config, transport=transport, clock=clock)
        reached, release = threading.Event(), threading.Event()
        handler = PauseOnFailedCall(reached, release)
        errors, results = [], []

        def bad():
            try:
                client.send("badCall", {"sessionKey": "k"})
            except TransportError as exc:
                errors.append((exc.status_code, str(exc)))

        def good():
            reached.wait(2)
            try:
                results.append(client.send("goodCall", {"sessionKey": "k"}))
            finally:
                release.set()

        logger.addHandler(handler)
        try:
            threads = [threading.Thread(target=bad), threading.Thread(target=good)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(5)
        finally:
            logger.removeHandler(handler)

        assert errors == [(500, "HTTP status code 500")]
        assert results == [{"status": {"errorCode": 0}, "records": ["good"]}]

    def test_each_caller_gets_its_own_answer(self, config, clock):
        outcomes = {f"call{i}": ok({"records": [i]}) for i in range(8)}
        outcomes["brokenCall"] = TransportOutcome(error_code=7, error_text="Connection refused")
        outcomes["garbledCall"] = TransportOutcome(body="<html>", status_code=200)
        outcomes["verifyUser"] = verify_user_ok("shared")
        transport = RoutingTransport(outcomes)
        client = ApiClient(config, transport=transport, clock=clock)

        names = [name for name in outcomes if name != "verifyUser"]
        with ThreadPoolExecutor(max_workers=len(names)) as pool:
            futures = {name: pool.submit(client.send, name) for name in names}

        for i in range(8):
            assert futures[f"call{i}"].result() == {"records": [i]}
        with pytest.raises(TransportError) as excinfo:
            futures["brokenCall"].result()
        assert excinfo.value.error_code == 7
        with pytest.raises(DecodeError):
            futures["garbledCall"].result()
        assert transport.requests.count("verifyUser") == 1


class TestSeedSession:

    def test_seed_sets_key_and_expiry_together(self, client, transport):
        client.seed_session("seeded", NOW + 600)
        assert client.session_snapshot() == ("seeded", NOW + 600)
        transport.queue(ok(PRODUCTS))
        client.send("getProducts")
        assert transport.calls[0][1]["sessionKey"] == "seeded"
