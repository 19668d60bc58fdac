"""API endpoints for the exchange."""

from functools import lru_cache

import structlog
from fastapi import APIRouter, Depends, HTTPException

from dex.config import ExchangeConfig
from dex.errors import PairNotFound
from dex.exchange import Exchange, build_exchange
from dex.ledger import InMemoryLedger
from dex.models.api import (
    AddLiquidityRequest,
    AddLiquidityResponse,
    ApproveRequest,
    CreatePairRequest,
    CreditRequest,
    LedgerBalanceResponse,
    PairResponse,
    QuoteRequest,
    QuoteResponse,
    RemoveLiquidityRequest,
    RemoveLiquidityResponse,
    ReservesResponse,
    ShareApproveRequest,
    SwapRequest,
    SwapResponse,
)

logger = structlog.get_logger()

router = APIRouter()


@lru_cache(maxsize=1)
def get_default_exchange() -> Exchange:
    """The process-wide exchange, built on first use from DEX_* settings."""
    return build_exchange(ExchangeConfig.from_env())


def get_exchange() -> Exchange:
    """Dependency provider for the exchange instance.

    Override this in tests to inject a fresh exchange:
        app.dependency_overrides[get_exchange] = lambda: exchange

    Returns:
        The exchange to serve requests from.
    """
    return get_default_exchange()


@router.post("/pairs", response_model=PairResponse)
def create_pair(
    request: CreatePairRequest,
    exchange: Exchange = Depends(get_exchange),
) -> PairResponse:
    """Create the pair for two assets, or return the existing one."""
    pair = exchange.factory.create_pair(request.asset_a, request.asset_b)
    return PairResponse.from_state(pair.snapshot())


@router.get("/pairs", response_model=list[PairResponse])
def list_pairs(exchange: Exchange = Depends(get_exchange)) -> list[PairResponse]:
    """All pairs in creation order."""
    return [PairResponse.from_state(pair.snapshot()) for pair in exchange.factory.all_pairs()]


@router.get("/pairs/{asset_a}/{asset_b}", response_model=PairResponse)
def get_pair(
    asset_a: str,
    asset_b: str,
    exchange: Exchange = Depends(get_exchange),
) -> PairResponse:
    pair = exchange.factory.get_pair(asset_a, asset_b)
    if pair is None:
        raise PairNotFound(f"No pair for {asset_a} / {asset_b}")
    return PairResponse.from_state(pair.snapshot())


@router.get("/reserves/{asset_a}/{asset_b}", response_model=ReservesResponse)
def get_reserves(
    asset_a: str,
    asset_b: str,
    exchange: Exchange = Depends(get_exchange),
) -> ReservesResponse:
    """Reserves ordered as the path parameters; zero when no pair exists."""
    reserve_a, reserve_b = exchange.router.get_reserves(asset_a, asset_b)
    return ReservesResponse(reserve_a=str(reserve_a), reserve_b=str(reserve_b))


@router.post("/quote", response_model=QuoteResponse)
def quote(
    request: QuoteRequest,
    exchange: Exchange = Depends(get_exchange),
) -> QuoteResponse:
    amount_out = exchange.router.get_amount_out(
        int(request.amount_in), int(request.reserve_in), int(request.reserve_out)
    )
    return QuoteResponse(amount_out=str(amount_out))


@router.post("/liquidity/add", response_model=AddLiquidityResponse)
def add_liquidity(
    request: AddLiquidityRequest,
    exchange: Exchange = Depends(get_exchange),
) -> AddLiquidityResponse:
    used_a, used_b, shares = exchange.router.add_liquidity(
        request.asset_a,
        request.asset_b,
        int(request.desired_a),
        int(request.desired_b),
        int(request.min_a),
        int(request.min_b),
        request.recipient,
        request.deadline,
        sender=request.sender,
    )
    return AddLiquidityResponse(used_a=str(used_a), used_b=str(used_b), shares=str(shares))


@router.post("/liquidity/remove", response_model=RemoveLiquidityResponse)
def remove_liquidity(
    request: RemoveLiquidityRequest,
    exchange: Exchange = Depends(get_exchange),
) -> RemoveLiquidityResponse:
    amount_a, amount_b = exchange.router.remove_liquidity(
        request.asset_a,
        request.asset_b,
        int(request.shares),
        int(request.min_a),
        int(request.min_b),
        request.recipient,
        request.deadline,
        sender=request.sender,
    )
    return RemoveLiquidityResponse(amount_a=str(amount_a), amount_b=str(amount_b))


@router.post("/swap", response_model=SwapResponse)
def swap(
    request: SwapRequest,
    exchange: Exchange = Depends(get_exchange),
) -> SwapResponse:
    amount_out = exchange.router.swap_exact_in(
        int(request.amount_in),
        int(request.amount_out_min),
        request.path,
        request.recipient,
        request.deadline,
        sender=request.sender,
    )
    return SwapResponse(amount_out=str(amount_out))


@router.post("/shares/approve")
def approve_shares(
    request: ShareApproveRequest,
    exchange: Exchange = Depends(get_exchange),
) -> dict[str, bool]:
    """Approve a spender on a pair's liquidity share token."""
    pair = exchange.factory.get_pair(request.asset_a, request.asset_b)
    if pair is None:
        raise PairNotFound(f"No pair for {request.asset_a} / {request.asset_b}")
    spender = request.spender or exchange.router.address
    return {"success": pair.approve(request.owner, spender, int(request.amount))}


@router.get("/ledger/{asset}/{holder}", response_model=LedgerBalanceResponse)
def ledger_balance(
    asset: str,
    holder: str,
    exchange: Exchange = Depends(get_exchange),
) -> LedgerBalanceResponse:
    balance = exchange.ledger.balance_of(asset, holder)
    return LedgerBalanceResponse(asset=asset, holder=holder, balance=str(balance))


@router.post("/ledger/approve")
def ledger_approve(
    request: ApproveRequest,
    exchange: Exchange = Depends(get_exchange),
) -> dict[str, bool]:
    """Approve a spender (the router by default) on the asset ledger."""
    spender = request.spender or exchange.router.address
    ok = exchange.ledger.approve(request.asset, request.owner, spender, int(request.amount))
    return {"success": ok}


@router.post("/ledger/credit")
def ledger_credit(
    request: CreditRequest,
    exchange: Exchange = Depends(get_exchange),
) -> dict[str, bool]:
    """Fund an account on the in-memory ledger.

    Only available when the faucet is enabled (DEX_ENABLE_FAUCET) and the
    exchange runs on an InMemoryLedger.
    """
    if not exchange.config.enable_faucet or not isinstance(exchange.ledger, InMemoryLedger):
        logger.warning("faucet_disabled", asset=request.asset, holder=request.holder)
        raise HTTPException(status_code=403, detail="Faucet is disabled")
    exchange.ledger.credit(request.asset, request.holder, int(request.amount))
    return {"success": True}
