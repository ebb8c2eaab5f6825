"""
Simulator API Schemas

Pydantic schemas for simulator API requests.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== REQUEST SCHEMAS ====================

class NewSignalRequest(ApiModel):
    """Signal forwarded by the upstream pipeline"""
    token_address: str = Field(..., min_length=1)
    entry_price: float = Field(..., gt=0)
    chain: Optional[str] = "SOL"
    symbol: Optional[str] = None
    score: Optional[float] = None
    signal_msg_id: Optional[Union[int, str]] = None

    @field_validator("token_address")
    @classmethod
    def strip_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("tokenAddress is required")
        return v


class ResetRequest(ApiModel):
    """Reset confirmation; `confirm` must be "RESET"."""
    confirm: Optional[str] = None
