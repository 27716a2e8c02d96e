# tradebook/crud.py

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload
from tradebook.models import Transaction, LoggedTrade, Strategy
from tradebook.parsing import dump_string_list
from tradebook.schemas import (
    TransactionCreate,
    TransactionUpdate,
    TradeCreate,
    TradeUpdate,
    TradeBulkCreate,
    TradeClose,
    StrategyCreate,
    StrategyUpdate,
)

# Columns stored as serialized lists
_LIST_COLUMNS = ("reference_images", "image_references")


class UnknownStrategyError(ValueError):
    """Raised when a trade references a strategy id that does not exist."""

    def __init__(self, strategy_id: int):
        super().__init__(f"Strategy {strategy_id} does not exist.")
        self.strategy_id = strategy_id


def _apply_updates(record, changes: dict) -> None:
    for field, value in changes.items():
        if field in _LIST_COLUMNS:
            value = dump_string_list(value)
        setattr(record, field, value)


def _check_strategy(db: Session, strategy_id: Optional[int]) -> None:
    if strategy_id is not None and db.get(Strategy, strategy_id) is None:
        raise UnknownStrategyError(strategy_id)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def create_transaction(db: Session, transaction: TransactionCreate) -> Transaction:
    """
    Creates a new buy/sell transaction.

    Args:
        db (Session): SQLAlchemy session.
        transaction (TransactionCreate): Validated transaction data.

    Returns:
        Transaction: The created transaction with its assigned id.
    """
    record = Transaction(**transaction.model_dump())
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def get_all_transactions(db: Session) -> List[Transaction]:
    """
    Retrieves every transaction, newest first.

    Args:
        db (Session): SQLAlchemy session.

    Returns:
        list[Transaction]: Transactions ordered by date then id, descending.
    """
    return db.query(Transaction).order_by(Transaction.date.desc(), Transaction.id.desc()).all()


def get_transaction(db: Session, transaction_id: int) -> Optional[Transaction]:
    return db.get(Transaction, transaction_id)


def update_transaction(db: Session, transaction_id: int, changes: TransactionUpdate) -> Optional[Transaction]:
    """
    Applies the fields present in the request to an existing transaction.

    Args:
        db (Session): SQLAlchemy session.
        transaction_id (int): Transaction to edit.
        changes (TransactionUpdate): Partial update; unset fields are left alone.

    Returns:
        Optional[Transaction]: The updated transaction, or None if it does not exist.
    """
    record = db.get(Transaction, transaction_id)
    if record is None:
        return None
    _apply_updates(record, changes.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(record)
    return record


def delete_transaction(db: Session, transaction_id: int) -> bool:
    """
    Deletes a transaction.

    Returns:
        bool: False if there was nothing to delete.
    """
    record = db.get(Transaction, transaction_id)
    if record is None:
        return False
    db.delete(record)
    db.commit()
    return True


# ---------------------------------------------------------------------------
# Logged trades
# ---------------------------------------------------------------------------

def _trade_query(db: Session):
    return db.query(LoggedTrade).options(joinedload(LoggedTrade.strategy))


def create_trade(db: Session, trade: TradeCreate) -> LoggedTrade:
    """
    Logs a new trade.

    Args:
        db (Session): SQLAlchemy session.
        trade (TradeCreate): Validated trade data.

    Returns:
        LoggedTrade: The created trade.

    Raises:
        UnknownStrategyError: If strategy_id does not match a strategy.
    """
    _check_strategy(db, trade.strategy_id)
    data = trade.model_dump()
    data["reference_images"] = dump_string_list(data["reference_images"])
    record = LoggedTrade(**data)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def create_trades_bulk(db: Session, bulk: TradeBulkCreate) -> List[LoggedTrade]:
    """
    Opens several trades that share a date, direction, leverage and strategy.

    All rows are committed together.

    Args:
        db (Session): SQLAlchemy session.
        bulk (TradeBulkCreate): Shared settings plus one row per symbol.

    Returns:
        list[LoggedTrade]: The created trades in row order.
    """
    _check_strategy(db, bulk.strategy_id)
    records = [
        LoggedTrade(
            name=row.name,
            open_date=bulk.open_date,
            open_price=row.open_price,
            volume=row.volume,
            source=bulk.source,
            order_type=bulk.order_type,
            direction=bulk.direction,
            level=bulk.level,
            strategy_id=bulk.strategy_id,
            reference_images=dump_string_list([]),
        )
        for row in bulk.rows
    ]
    db.add_all(records)
    db.commit()
    for record in records:
        db.refresh(record)
    return records


def get_all_trades(db: Session) -> List[LoggedTrade]:
    """
    Retrieves every logged trade, newest first, with its strategy loaded.

    Args:
        db (Session): SQLAlchemy session.

    Returns:
        list[LoggedTrade]: Trades ordered by id, descending.
    """
    return _trade_query(db).order_by(LoggedTrade.id.desc()).all()


def get_trade(db: Session, trade_id: int) -> Optional[LoggedTrade]:
    return _trade_query(db).filter(LoggedTrade.id == trade_id).first()


def update_trade(db: Session, trade_id: int, changes: TradeUpdate) -> Optional[LoggedTrade]:
    """
    Applies the fields present in the request to an existing trade.

    Returns:
        Optional[LoggedTrade]: The updated trade, or None if it does not exist.

    Raises:
        UnknownStrategyError: If a new strategy_id does not match a strategy.
    """
    record = db.get(LoggedTrade, trade_id)
    if record is None:
        return None
    data = changes.model_dump(exclude_unset=True)
    if "strategy_id" in data:
        _check_strategy(db, data["strategy_id"])
    _apply_updates(record, data)
    db.commit()
    db.refresh(record)
    return record


def close_trade(db: Session, trade_id: int, close: TradeClose) -> Optional[LoggedTrade]:
    """
    Records the exit of an open trade.

    The close date defaults to today when the request does not give one.

    Returns:
        Optional[LoggedTrade]: The closed trade, or None if it does not exist.
    """
    record = db.get(LoggedTrade, trade_id)
    if record is None:
        return None
    record.close_price = close.close_price
    record.close_date = close.close_date or date.today().isoformat()
    db.commit()
    db.refresh(record)
    return record


def delete_trade(db: Session, trade_id: int) -> bool:
    record = db.get(LoggedTrade, trade_id)
    if record is None:
        return False
    db.delete(record)
    db.commit()
    return True


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def create_strategy(db: Session, strategy: StrategyCreate) -> Strategy:
    """
    Creates a new strategy tag.

    Args:
        db (Session): SQLAlchemy session.
        strategy (StrategyCreate): Validated strategy data.

    Returns:
        Strategy: The created strategy.
    """
    data = strategy.model_dump()
    data["image_references"] = dump_string_list(data["image_references"])
    record = Strategy(**data)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def get_all_strategies(db: Session) -> List[Strategy]:
    return db.query(Strategy).order_by(Strategy.id.desc()).all()


def get_strategy(db: Session, strategy_id: int) -> Optional[Strategy]:
    return db.get(Strategy, strategy_id)


def update_strategy(db: Session, strategy_id: int, changes: StrategyUpdate) -> Optional[Strategy]:
    """
    Applies the fields present in the request to an existing strategy.

    Returns:
        Optional[Strategy]: The updated strategy, or None if it does not exist.
    """
    record = db.get(Strategy, strategy_id)
    if record is None:
        return None
    _apply_updates(record, changes.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(record)
    return record


def delete_strategy(db: Session, strategy_id: int) -> bool:
    """
    Deletes a strategy. Trades that referenced it are kept and left untagged.

    Args:
        db (Session): SQLAlchemy session.
        strategy_id (int): Strategy to delete.

    Returns:
        bool: False if there was nothing to delete.
    """
    record = db.get(Strategy, strategy_id)
    if record is None:
        return False
    db.query(LoggedTrade).filter(LoggedTrade.strategy_id == strategy_id).update(
        {LoggedTrade.strategy_id: None}, synchronize_session=False
    )
    db.delete(record)
    db.commit()
    return True
