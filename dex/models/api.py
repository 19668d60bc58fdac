"""Pydantic models for the exchange HTTP API.

Amounts are uint256 decimal strings and addresses 0x-prefixed hex, the same
wire conventions the ledger and router use. Field names are camelCase on the
wire and snake_case in Python.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from dex.models.types import Address, Uint256

if TYPE_CHECKING:
    from dex.pair import PairState


class _ApiModel(BaseModel):
    model_config = {"populate_by_name": True}


class CreatePairRequest(_ApiModel):
    """Create (or fetch) the pair for two assets."""

    asset_a: Address = Field(alias="assetA")
    asset_b: Address = Field(alias="assetB")


class PairResponse(_ApiModel):
    """Public state of one pair."""

    address: Address
    token0: Address
    token1: Address
    reserve0: Uint256
    reserve1: Uint256
    total_supply: Uint256 = Field(alias="totalSupply")
    fee_numerator: int = Field(alias="feeNumerator")
    fee_denominator: int = Field(alias="feeDenominator")

    @classmethod
    def from_state(cls, state: PairState) -> PairResponse:
        return cls(
            address=state.address,
            token0=state.token0,
            token1=state.token1,
            reserve0=str(state.reserve0),
            reserve1=str(state.reserve1),
            total_supply=str(state.total_supply),
            fee_numerator=state.fee_numerator,
            fee_denominator=state.fee_denominator,
        )


class ReservesResponse(_ApiModel):
    """Reserves ordered as requested."""

    reserve_a: Uint256 = Field(alias="reserveA")
    reserve_b: Uint256 = Field(alias="reserveB")


class QuoteRequest(_ApiModel):
    """Price preview for an exact input."""

    amount_in: Uint256 = Field(alias="amountIn")
    reserve_in: Uint256 = Field(alias="reserveIn")
    reserve_out: Uint256 = Field(alias="reserveOut")


class QuoteResponse(_ApiModel):
    amount_out: Uint256 = Field(alias="amountOut")


class AddLiquidityRequest(_ApiModel):
    """Deposit both assets of a pair.

    `sender` stands in for the signer of the transaction; signing is handled
    outside this service.
    """

    sender: Address
    asset_a: Address = Field(alias="assetA")
    asset_b: Address = Field(alias="assetB")
    desired_a: Uint256 = Field(alias="amountADesired")
    desired_b: Uint256 = Field(alias="amountBDesired")
    min_a: Uint256 = Field(default="0", alias="amountAMin")
    min_b: Uint256 = Field(default="0", alias="amountBMin")
    recipient: Address = Field(alias="to")
    deadline: int = Field(ge=0, description="Unix time in seconds")


class AddLiquidityResponse(_ApiModel):
    used_a: Uint256 = Field(alias="amountA")
    used_b: Uint256 = Field(alias="amountB")
    shares: Uint256 = Field(alias="liquidity")


class RemoveLiquidityRequest(_ApiModel):
    """Burn liquidity shares for the underlying assets."""

    sender: Address
    asset_a: Address = Field(alias="assetA")
    asset_b: Address = Field(alias="assetB")
    shares: Uint256 = Field(alias="liquidity")
    min_a: Uint256 = Field(default="0", alias="amountAMin")
    min_b: Uint256 = Field(default="0", alias="amountBMin")
    recipient: Address = Field(alias="to")
    deadline: int = Field(ge=0, description="Unix time in seconds")


class RemoveLiquidityResponse(_ApiModel):
    amount_a: Uint256 = Field(alias="amountA")
    amount_b: Uint256 = Field(alias="amountB")


class SwapRequest(_ApiModel):
    """Swap an exact input amount along [tokenIn, tokenOut]."""

    sender: Address
    amount_in: Uint256 = Field(alias="amountIn")
    amount_out_min: Uint256 = Field(default="0", alias="amountOutMin")
    path: list[Address] = Field(min_length=2)
    recipient: Address = Field(alias="to")
    deadline: int = Field(ge=0, description="Unix time in seconds")


class SwapResponse(_ApiModel):
    amount_out: Uint256 = Field(alias="amountOut")


class ShareApproveRequest(_ApiModel):
    """Approve a spender (normally the router) on a pair's share token."""

    owner: Address
    asset_a: Address = Field(alias="assetA")
    asset_b: Address = Field(alias="assetB")
    spender: Address | None = Field(
        default=None, description="Defaults to the router address."
    )
    amount: Uint256


class ApproveRequest(_ApiModel):
    """Approve a spender on the asset ledger."""

    asset: Address
    owner: Address
    spender: Address | None = Field(
        default=None, description="Defaults to the router address."
    )
    amount: Uint256


class CreditRequest(_ApiModel):
    """Fund an account on the in-memory ledger (faucet)."""

    asset: Address
    holder: Address
    amount: Uint256


class LedgerBalanceResponse(_ApiModel):
    asset: Address
    holder: Address
    balance: Uint256


class ErrorResponse(_ApiModel):
    """Body returned for rejected operations."""

    error: str
    detail: str
