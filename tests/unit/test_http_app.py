"""Unit tests for the HTTP adapter."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tests.conftest import (
    InMemoryLoadAccountPort,
    InMemoryUpdateAccountStatePort,
    RecordingAccountLock,
    create_account,
)
from transfer_service.api.http_app import create_app
from transfer_service.application.services import (
    GetAccountBalanceService,
    MoneyTransferProperties,
    SendMoneyService,
)
from transfer_service.domain.exceptions import LockAcquisitionError
from transfer_service.domain.models import Account, AccountId, Activity


class FailingLock(RecordingAccountLock):
    async def lock_account(self, account_id: AccountId) -> None:
        raise LockAcquisitionError(account_id, 0.5)


@pytest.fixture
def load_port() -> InMemoryLoadAccountPort:
    return InMemoryLoadAccountPort([
        create_account(account_id=1, baseline=1000),
        create_account(account_id=2, baseline=0),
    ])


@pytest.fixture
def update_port() -> InMemoryUpdateAccountStatePort:
    return InMemoryUpdateAccountStatePort()


def build_app(
    load_port: InMemoryLoadAccountPort,
    update_port: InMemoryUpdateAccountStatePort,
    lock: RecordingAccountLock | None = None,
) -> FastAPI:
    send_money = SendMoneyService(
        load_port,
        lock or RecordingAccountLock(),
        update_port,
        MoneyTransferProperties(),
    )
    return create_app(
        send_money_use_case=send_money,
        get_account_balance_query=GetAccountBalanceService(load_port),
        currency="AUD",
    )


@pytest.fixture
def client(load_port: InMemoryLoadAccountPort, update_port: InMemoryUpdateAccountStatePort) -> TestClient:
    return TestClient(build_app(load_port, update_port))


class TestSendMoneyEndpoint:
    """Tests for POST /accounts/send/{source}/{target}/{amount}."""

    def test_send_money_success(self, client: TestClient, update_port: InMemoryUpdateAccountStatePort) -> None:
        response = client.post("/accounts/send/1/2/500")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "COMPLETED"
        assert body["message"] == "Money Sent!"
        assert body["source_activity"]["source_account_id"] == 1
        assert body["target_activity"]["target_account_id"] == 2
        assert body["source_activity"]["amount"] == 500
        assert body["source_activity"]["id"] == 1000
        assert body["target_activity"]["id"] == 1001
        assert update_port.updated_accounts == [1, 2]

    def test_insufficient_funds_is_bad_request(self, client: TestClient) -> None:
        response = client.post("/accounts/send/1/2/5000")

        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "DECLINED"
        assert body["error_code"] == "INSUFFICIENT_FUNDS"
        assert body["details"]["available"] == 1000
        assert body["details"]["required"] == 5000

    def test_threshold_exceeded_is_bad_request(self, client: TestClient) -> None:
        response = client.post("/accounts/send/1/2/1000001")

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "THRESHOLD_EXCEEDED"
        assert body["details"]["threshold"] == 1_000_000
        assert body["details"]["actual"] == 1_000_001

    def test_non_integer_path_params_are_rejected(self, client: TestClient) -> None:
        assert client.post("/accounts/send/abc/2/500").status_code == 422
        assert client.post("/accounts/send/1/2/5.5").status_code == 422

    def test_non_positive_amount_is_rejected(self, client: TestClient) -> None:
        response = client.post("/accounts/send/1/2/0")

        assert response.status_code == 422
        assert "positive" in response.json()["detail"]

    def test_same_account_is_rejected(self, client: TestClient) -> None:
        response = client.post("/accounts/send/1/1/10")

        assert response.status_code == 422

    def test_unknown_account_is_not_found(self, client: TestClient) -> None:
        response = client.post("/accounts/send/1/99/10")

        assert response.status_code == 404

    def test_lock_timeout_is_conflict(
        self,
        load_port: InMemoryLoadAccountPort,
        update_port: InMemoryUpdateAccountStatePort,
    ) -> None:
        client = TestClient(build_app(load_port, update_port, lock=FailingLock()))

        response = client.post("/accounts/send/1/2/10")

        assert response.status_code == 409

    def test_partial_transfer_is_server_error(
        self,
        client: TestClient,
        update_port: InMemoryUpdateAccountStatePort,
    ) -> None:
        update_port.fail_for = {2}

        response = client.post("/accounts/send/1/2/10")

        assert response.status_code == 500
        assert len(response.json()["persisted_activity_ids"]) == 1

    def test_internal_value_error_is_server_error(
        self,
        load_port: InMemoryLoadAccountPort,
    ) -> None:
        class RejectingUpdatePort(InMemoryUpdateAccountStatePort):
            async def update_activities(self, account: Account) -> list[Activity]:
                raise ValueError("Cannot persist EUR activity in a AUD ledger")

        client = TestClient(build_app(load_port, RejectingUpdatePort()), raise_server_exceptions=False)

        response = client.post("/accounts/send/1/2/10")

        assert response.status_code == 500


class TestBalanceEndpoint:
    """Tests for GET /accounts/{account_id}/balance."""

    def test_get_balance(self, client: TestClient) -> None:
        response = client.get("/accounts/1/balance")

        assert response.status_code == 200
        assert response.json() == {"account_id": 1, "amount": 1000, "currency": "AUD"}

    def test_balance_reflects_transfer(self, client: TestClient) -> None:
        client.post("/accounts/send/1/2/250")

        assert client.get("/accounts/1/balance").json()["amount"] == 750
        assert client.get("/accounts/2/balance").json()["amount"] == 250

    def test_unknown_account(self, client: TestClient) -> None:
        assert client.get("/accounts/99/balance").status_code == 404


class TestOperationalEndpoints:
    """Tests for /health and /metrics."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_metrics(self, client: TestClient) -> None:
        client.post("/accounts/send/1/2/10")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "transfer_requests_total" in response.text
        assert "http_requests_total" in response.text

    def test_metrics_can_be_disabled(self, load_port: InMemoryLoadAccountPort) -> None:
        app = create_app(
            send_money_use_case=SendMoneyService(
                load_port,
                RecordingAccountLock(),
                InMemoryUpdateAccountStatePort(),
                MoneyTransferProperties(),
            ),
            get_account_balance_query=GetAccountBalanceService(load_port),
            metrics_enabled=False,
        )

        routes = [route.path for route in app.routes]
        assert "/metrics" not in routes
        assert "/health" in routes

    def test_health_reports_dependency_checks(self, load_port: InMemoryLoadAccountPort) -> None:
        async def database_up() -> bool:
            return True

        async def redis_down() -> bool:
            return False

        def app_with(checks) -> FastAPI:
            return create_app(
                send_money_use_case=SendMoneyService(
                    load_port,
                    RecordingAccountLock(),
                    InMemoryUpdateAccountStatePort(),
                    MoneyTransferProperties(),
                ),
                get_account_balance_query=GetAccountBalanceService(load_port),
                health_checks=checks,
            )

        healthy = TestClient(app_with({"database": database_up})).get("/health")
        assert healthy.status_code == 200
        assert healthy.json() == {"status": "healthy", "checks": {"database": True}}

        unhealthy = TestClient(app_with({"database": database_up, "redis": redis_down})).get("/health")
        assert unhealthy.status_code == 503
        assert unhealthy.json()["checks"] == {"database": True, "redis": False}
