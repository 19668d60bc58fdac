"""Data models for the exchange service."""

from dex.models.api import (
    AddLiquidityRequest,
    AddLiquidityResponse,
    ApproveRequest,
    CreatePairRequest,
    CreditRequest,
    ErrorResponse,
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
from dex.models.types import Address, Uint256, normalize_address, sort_assets

__all__ = [
    "Address",
    "Uint256",
    "normalize_address",
    "sort_assets",
    "AddLiquidityRequest",
    "AddLiquidityResponse",
    "ApproveRequest",
    "CreatePairRequest",
    "CreditRequest",
    "ErrorResponse",
    "LedgerBalanceResponse",
    "PairResponse",
    "QuoteRequest",
    "QuoteResponse",
    "RemoveLiquidityRequest",
    "RemoveLiquidityResponse",
    "ReservesResponse",
    "ShareApproveRequest",
    "SwapRequest",
    "SwapResponse",
]
