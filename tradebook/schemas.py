# tradebook/schemas.py

import datetime as dt
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from tradebook.parsing import parse_date, parse_string_list, normalize_string_list

TransactionType = Literal["buy", "sell"]
Direction = Literal["long", "short"]
OrderType = Literal["scalping", "swing"]
TradeStatusFilter = Literal["all", "opening", "closed"]


def _not_blank(value):
    if value is None:
        raise ValueError("must not be null")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
    return value


def _not_null(value):
    if value is None:
        raise ValueError("must not be null")
    return value


def _order_type(value):
    # Older rows were written with the misspelling "scaping"
    if value == "scaping":
        return "scalping"
    if value == "":
        return None
    return value


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

class TransactionCreate(BaseModel):
    name: str
    quantity: float = Field(gt=0)
    price_per_unit: float = Field(gt=0)
    type: TransactionType = "buy"
    date: dt.date
    notes: Optional[str] = None

    check_name = field_validator("name", mode="before")(_not_blank)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "BTC",
                "quantity": 0.5,
                "price_per_unit": 42000.0,
                "type": "buy",
                "date": "2024-01-01",
                "notes": "DCA"
            }
        }


class TransactionUpdate(BaseModel):
    name: Optional[str] = None
    quantity: Optional[float] = Field(default=None, gt=0)
    price_per_unit: Optional[float] = Field(default=None, gt=0)
    type: Optional[TransactionType] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = None

    check_name = field_validator("name", mode="before")(_not_blank)
    check_required = field_validator("quantity", "price_per_unit", "type", mode="before")(_not_null)


class TransactionResponse(BaseModel):
    id: int
    name: str
    quantity: float
    price_per_unit: float
    type: str
    date: Optional[dt.date] = None
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def tolerant_date(cls, value):
        return parse_date(value)

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class StrategyCreate(BaseModel):
    name: str
    description: Optional[str] = None
    image_references: Optional[List[str]] = None

    check_name = field_validator("name", mode="before")(_not_blank)
    normalize_images = field_validator("image_references", mode="before")(normalize_string_list)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Breakout retest",
                "description": "Enter on the first retest of a broken range high.",
                "image_references": ["https://example.com/setup.png"]
            }
        }


class StrategyUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image_references: Optional[List[str]] = None

    check_name = field_validator("name", mode="before")(_not_blank)
    normalize_images = field_validator("image_references", mode="before")(normalize_string_list)


class StrategyResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    image_references: List[str] = []

    parse_images = field_validator("image_references", mode="before")(parse_string_list)

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Logged trades
# ---------------------------------------------------------------------------

class TradeCreate(BaseModel):
    name: str
    open_date: str
    close_date: Optional[str] = None
    open_price: float = Field(gt=0)
    close_price: Optional[float] = Field(default=None, gt=0)
    notes: Optional[str] = None
    source: Optional[str] = None
    order_type: Optional[OrderType] = None
    direction: Direction = "long"
    level: int = Field(ge=1)
    volume: float = Field(gt=0)
    strategy_id: Optional[int] = None
    reference_images: Optional[List[str]] = None

    check_required = field_validator("name", "open_date", mode="before")(_not_blank)
    check_order_type = field_validator("order_type", mode="before")(_order_type)
    normalize_images = field_validator("reference_images", mode="before")(normalize_string_list)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "ETHUSDT",
                "open_date": "2024-03-01T09:30",
                "open_price": 3400.0,
                "direction": "long",
                "level": 10,
                "volume": 100.0,
                "order_type": "swing",
                "source": "Binance",
                "reference_images": ["https://example.com/chart.png"]
            }
        }


class TradeUpdate(BaseModel):
    name: Optional[str] = None
    open_date: Optional[str] = None
    close_date: Optional[str] = None
    open_price: Optional[float] = Field(default=None, gt=0)
    close_price: Optional[float] = Field(default=None, gt=0)
    notes: Optional[str] = None
    source: Optional[str] = None
    order_type: Optional[OrderType] = None
    direction: Optional[Direction] = None
    level: Optional[int] = Field(default=None, ge=1)
    volume: Optional[float] = Field(default=None, gt=0)
    strategy_id: Optional[int] = None
    reference_images: Optional[List[str]] = None

    check_required = field_validator("name", "open_date", mode="before")(_not_blank)
    check_not_null = field_validator("open_price", "direction", "level", "volume", mode="before")(_not_null)
    check_order_type = field_validator("order_type", mode="before")(_order_type)
    normalize_images = field_validator("reference_images", mode="before")(normalize_string_list)


class TradeClose(BaseModel):
    close_price: float = Field(gt=0)
    close_date: Optional[str] = None


class TradePreview(BaseModel):
    close_price: float = Field(gt=0)


class TradeBulkRow(BaseModel):
    name: str
    open_price: float = Field(gt=0)
    volume: float = Field(gt=0)

    check_name = field_validator("name", mode="before")(_not_blank)


class TradeBulkCreate(BaseModel):
    open_date: str
    source: Optional[str] = None
    order_type: Optional[OrderType] = None
    direction: Direction = "long"
    level: int = Field(ge=1)
    strategy_id: Optional[int] = None
    rows: List[TradeBulkRow] = Field(min_length=1)

    check_open_date = field_validator("open_date", mode="before")(_not_blank)
    check_order_type = field_validator("order_type", mode="before")(_order_type)


class TradeResponse(BaseModel):
    id: int
    name: str
    open_date: str
    close_date: Optional[str] = None
    open_price: float
    close_price: Optional[float] = None
    notes: Optional[str] = None
    source: Optional[str] = None
    order_type: Optional[str] = None
    direction: str
    level: int
    volume: float
    strategy_id: Optional[int] = None
    strategy_name: Optional[str] = None
    reference_images: List[str] = []
    status: str
    profit: Optional[float] = None

    parse_images = field_validator("reference_images", mode="before")(parse_string_list)
    check_order_type = field_validator("order_type", mode="before")(_order_type)

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Derived figures
# ---------------------------------------------------------------------------

class PositionSummary(BaseModel):
    name: str
    net_quantity: float
    total_buy_quantity: float
    total_sell_quantity: float
    average_buy_price: Optional[float] = None
    current_reference_price: float
    holdings_value: float
    realized_profit: Optional[float] = None
    realized_profit_percent: Optional[float] = None


class PortfolioSummary(BaseModel):
    initial_capital: float
    total_profit: float
    all_time_profit_percent: Optional[float] = None
    total_usdt: float
    total_usdt_percent: Optional[float] = None
    holdings_value: float
    remaining_capital: float
    remaining_capital_percent: Optional[float] = None


class AllocationSlice(BaseModel):
    name: str
    value: float
    percent: Optional[float] = None


class PositionDetail(BaseModel):
    name: str
    transactions: List[TransactionResponse]
    summary: Optional[PositionSummary] = None


class SymbolTradeStats(BaseModel):
    name: str
    total_orders: int
    total_profit: float
    total_loss: float


class TradeStats(BaseModel):
    open_trades: int
    closed_trades: int
    total_profit: float
    total_loss: float
    net_profit: float
    symbols: List[SymbolTradeStats]


class APIResponse(BaseModel):
    status: str
    data: Optional[dict] = None
    transaction: Optional[TransactionResponse] = None
    transactions: Optional[List[TransactionResponse]] = None
    trade: Optional[TradeResponse] = None
    trades: Optional[List[TradeResponse]] = None
    strategy: Optional[StrategyResponse] = None
    strategies: Optional[List[StrategyResponse]] = None
    positions: Optional[List[PositionSummary]] = None
    summary: Optional[PortfolioSummary] = None
    allocation: Optional[List[AllocationSlice]] = None
    detail: Optional[PositionDetail] = None
    stats: Optional[TradeStats] = None
    message: Optional[str] = None
    error: Optional[str] = None
