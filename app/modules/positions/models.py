"""
Portfolio Document Models

Pydantic models for the single persisted portfolio document: config,
running stats, the position map and the bounded closed-trade history.

Field names are snake_case in Python and camelCase on the wire, so documents
written by earlier versions of the simulator load unchanged. Unknown keys are
kept and written back.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

from typing import Optional, List, Dict, Any, Union
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.utils.timeutils import now_ms


SCHEMA_VERSION = 1


# ==================== ENUMS ====================

class PositionStatus(str, Enum):
    """Position lifecycle: active -> trailing -> exited (terminal)"""
    ACTIVE = "active"          # Opened, waiting for trail activation
    TRAILING = "trailing"      # Trailing stop armed
    EXITED = "exited"          # Closed, immutable


class ExitReason(str, Enum):
    """Why a position was closed"""
    TRAIL = "trail"
    STOP_LOSS = "stop_loss"


class DocumentModel(BaseModel):
    """Base model for everything stored inside the portfolio document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


# ==================== CONFIG & STATS ====================

class PortfolioConfig(DocumentModel):
    """
    Simulation parameters, fixed when the document is created.

    Attributes:
        position_size: USD notional committed per trade
        score_filter: Minimum signal score the upstream pipeline forwards
        trail_activation: Entry multiple at which the trailing stop arms
        trail_distance: Fractional pullback from peak that exits a trailing position
        stop_loss: Fractional loss from entry that always exits
    """
    position_size: float = 250.0
    score_filter: float = 0.3
    trail_activation: float = 1.5
    trail_distance: float = 0.10
    stop_loss: float = 0.15

    @field_validator("position_size", "trail_activation")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("trail_distance", "stop_loss")
    @classmethod
    def validate_fraction(cls, v: float) -> float:
        if not 0 < v < 1:
            raise ValueError("must be between 0 and 1")
        return v


class PortfolioStats(DocumentModel):
    """Running aggregates, updated incrementally by every engine mutation."""
    total_trades: int = 0
    open_positions: int = 0
    closed_positions: int = 0
    total_pnl: float = Field(default=0.0, alias="totalPnL")
    win_count: int = 0
    loss_count: int = 0
    total_capital_deployed: float = 0.0
    peak_capital_deployed: float = 0.0
    starting_capital: Optional[float] = None


# ==================== POSITION ====================

class Position(DocumentModel):
    """
    One simulated trade.

    `pnl` is unrealized while the position is open and realized once it has
    exited. `trail_price` stays None until the trailing stop arms.
    """

    address: str = ""
    chain: str = "SOL"
    symbol: str = ""
    status: PositionStatus = PositionStatus.ACTIVE

    # Entry
    entry_price: float = Field(..., gt=0)
    signal_price: Optional[float] = None
    size: float = Field(..., gt=0)
    score: float = 0.0
    signal_msg_id: Optional[Union[int, str]] = None
    entry_time: int = Field(default_factory=now_ms)

    # Tracking
    peak_price: float = 0.0
    peak_time: Optional[int] = None
    trail_price: Optional[float] = None
    current_price: Optional[float] = None
    last_update_time: Optional[int] = None
    pnl: float = 0.0

    # Exit
    exit_price: Optional[float] = None
    quoted_exit_price: Optional[float] = None
    slippage_applied: bool = False
    exit_time: Optional[int] = None
    exit_reason: Optional[ExitReason] = None

    @model_validator(mode="after")
    def fill_defaults(self) -> "Position":
        if self.signal_price is None:
            self.signal_price = self.entry_price
        if self.peak_price < self.entry_price:
            self.peak_price = self.entry_price
        if self.peak_time is None:
            self.peak_time = self.entry_time
        return self

    def is_open(self) -> bool:
        """Check if position is still being tracked"""
        return self.status in (PositionStatus.ACTIVE, PositionStatus.TRAILING)

    def is_exited(self) -> bool:
        """Check if position is closed"""
        return self.status == PositionStatus.EXITED

    def multiplier(self, price: Optional[float] = None) -> float:
        """Price multiple relative to entry (current price when none given)."""
        if price is None:
            price = self.current_price if self.current_price is not None else self.entry_price
        return price / self.entry_price


class HistoryEntry(DocumentModel):
    """Closed-trade summary kept in the bounded history log."""
    address: str
    symbol: Optional[str] = None
    chain: Optional[str] = None
    entry: float
    exit: float
    pnl: float
    reason: Optional[str] = None
    duration: Optional[int] = None
    size: Optional[float] = None


# ==================== DOCUMENT ====================

class PortfolioDocument(DocumentModel):
    """
    The whole persisted state.

    Usage:
        document = PortfolioDocument.new()
        payload = document.to_payload()            # JSON-ready dict
        same = PortfolioDocument.from_payload(payload)
    """

    version: int = SCHEMA_VERSION
    created: int = Field(default_factory=now_ms)
    updated: int = Field(default_factory=now_ms)
    config: PortfolioConfig = Field(default_factory=PortfolioConfig)
    stats: PortfolioStats = Field(default_factory=PortfolioStats)
    positions: Dict[str, Position] = Field(default_factory=dict)
    history: List[HistoryEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def bind_position_addresses(self) -> "PortfolioDocument":
        for address, position in self.positions.items():
            if position.address != address:
                position.address = address
        return self

    @classmethod
    def new(cls, config: Optional[PortfolioConfig] = None) -> "PortfolioDocument":
        """Create an empty document."""
        return cls(config=config or PortfolioConfig())

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PortfolioDocument":
        """Validate a decoded JSON payload (raises pydantic.ValidationError)."""
        return cls.model_validate(payload)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize with wire (camelCase) keys."""
        return self.model_dump(by_alias=True, mode="json")
