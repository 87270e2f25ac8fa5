from collections.abc import Awaitable, Callable

import structlog
from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from transfer_service.api.schemas import (
    BalanceResponse,
    SendMoneyResponse,
    TransferDeclinedResponse,
)
from transfer_service.application.ports import GetAccountBalanceQuery, SendMoneyUseCase
from transfer_service.application.services import SendMoneyCommand
from transfer_service.domain.exceptions import (
    AccountNotFoundError,
    CurrencyMismatchError,
    LockAcquisitionError,
    MissingAccountIdError,
    PartialTransferError,
)
from transfer_service.domain.models import AccountId, Money
from transfer_service.infrastructure.metrics import HTTP_REQUESTS_TOTAL
from transfer_service.logging import bind_request_context


logger = structlog.get_logger()

HealthCheck = Callable[[], Awaitable[bool]]


def get_send_money_use_case(request: Request) -> SendMoneyUseCase:
    return request.app.state.send_money_use_case


def get_balance_query(request: Request) -> GetAccountBalanceQuery:
    return request.app.state.get_account_balance_query


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccountNotFoundError)
    async def account_not_found_handler(request: Request, exc: AccountNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(LockAcquisitionError)
    async def lock_acquisition_handler(request: Request, exc: LockAcquisitionError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @app.exception_handler(CurrencyMismatchError)
    async def currency_mismatch_handler(request: Request, exc: CurrencyMismatchError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(PartialTransferError)
    async def partial_transfer_handler(request: Request, exc: PartialTransferError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": str(exc),
                "persisted_activity_ids": [activity.id for activity in exc.persisted_activities],
            },
        )

    @app.exception_handler(MissingAccountIdError)
    async def missing_account_id_handler(request: Request, exc: MissingAccountIdError) -> JSONResponse:
        logger.error("invariant_violation", error=str(exc), path=request.url.path)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": str(exc)})


def create_app(
    send_money_use_case: SendMoneyUseCase,
    get_account_balance_query: GetAccountBalanceQuery,
    currency: str = "AUD",
    metrics_enabled: bool = True,
    health_checks: dict[str, HealthCheck] | None = None,
) -> FastAPI:
    """Create the HTTP adapter around the transfer use cases."""
    app = FastAPI(
        title="Transfer Service",
        docs_url=None,
        redoc_url=None,
    )
    app.state.send_money_use_case = send_money_use_case
    app.state.get_account_balance_query = get_account_balance_query
    app.state.currency = currency
    app.state.health_checks = health_checks or {}

    register_exception_handlers(app)

    @app.middleware("http")
    async def request_context(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        bind_request_context(method=request.method, path=request.url.path)
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = request.scope.get("route")
            HTTP_REQUESTS_TOTAL.labels(
                method=request.method,
                route=getattr(route, "path", "unmatched"),
                status_code=str(status_code),
            ).inc()

    @app.post(
        "/accounts/send/{source_account_id}/{target_account_id}/{amount}",
        response_model=SendMoneyResponse,
        responses={400: {"model": TransferDeclinedResponse}},
    )
    async def send_money(
        source_account_id: int,
        target_account_id: int,
        amount: int,
        request: Request,
        use_case: SendMoneyUseCase = Depends(get_send_money_use_case),
    ) -> SendMoneyResponse | JSONResponse:
        try:
            command = SendMoneyCommand(
                source_account_id=AccountId(source_account_id),
                target_account_id=AccountId(target_account_id),
                money=Money(amount, request.app.state.currency),
            )
        except ValueError as exc:
            return JSONResponse(status_code=422, content={"detail": str(exc)})
        result = await use_case.send_money(command)

        if not result.succeeded:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=TransferDeclinedResponse.from_result(result).model_dump(mode="json"),
            )
        return SendMoneyResponse.from_result(result)

    @app.get("/accounts/{account_id}/balance", response_model=BalanceResponse)
    async def get_balance(
        account_id: int,
        query: GetAccountBalanceQuery = Depends(get_balance_query),
    ) -> BalanceResponse:
        balance = await query.get_account_balance(AccountId(account_id))
        return BalanceResponse.from_money(account_id, balance)

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        checks = {name: await check() for name, check in request.app.state.health_checks.items()}
        if not all(checks.values()):
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "checks": checks},
            )
        content: dict[str, object] = {"status": "healthy"}
        if checks:
            content["checks"] = checks
        return JSONResponse(content=content)

    if metrics_enabled:

        @app.get("/metrics", response_class=PlainTextResponse)
        async def metrics() -> PlainTextResponse:
            return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
