"""Response schemas for the Binance account endpoint.

Remote JSON is validated here so that unexpected shapes fail loudly at the
boundary instead of leaking None fields into the rest of the app.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class RawBalance(BaseModel):
    """One entry of the account ``balances`` array (decimal-as-string fields)."""

    model_config = ConfigDict(extra="ignore")

    asset: str = Field(min_length=1)
    free: Decimal = Field(ge=0)
    locked: Decimal = Field(ge=0)


class AccountResponse(BaseModel):
    """The subset of ``GET /api/v3/account`` this app reads."""

    model_config = ConfigDict(extra="ignore")

    balances: list[RawBalance]
