# tradebook/routes/trades.py

import datetime as dt
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from tradebook import schemas, crud, logic
from tradebook.database import get_db
from tradebook.logger import logger

router = APIRouter(
    prefix="/trading-history",
    tags=["trading-history"]
)


def serialize_trade(trade) -> schemas.TradeResponse:
    """Builds the API view of a trade, including its realized profit."""
    response = schemas.TradeResponse.model_validate(trade)
    response.profit = logic.calculate_trade_profit(trade)
    return response


@router.get("", response_model=schemas.APIResponse)
async def get_trades(
    name: Optional[str] = None,
    source: Optional[str] = None,
    strategy_id: Optional[int] = None,
    status: schemas.TradeStatusFilter = "all",
    date_from: Optional[dt.date] = Query(default=None, alias="from"),
    date_to: Optional[dt.date] = Query(default=None, alias="to"),
    db: Session = Depends(get_db)
):
    """
    Retrieves logged trades, newest first, optionally filtered.

    Query parameters narrow by symbol or source substring, strategy id, status
    (all, opening, closed) and an inclusive open date range (from, to).
    """
    try:
        logger.info(f"Fetching logged trades (name={name}, source={source}, strategy={strategy_id}, "
                    f"status={status}, from={date_from}, to={date_to}).")
        trades = logic.filter_trades(
            crud.get_all_trades(db),
            name=name,
            source=source,
            strategy_id=strategy_id,
            status=status,
            date_from=date_from,
            date_to=date_to,
        )
        return {"status": "success", "trades": [serialize_trade(trade) for trade in trades]}
    except Exception as e:
        logger.error(f"Error retrieving trades: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve trades.")


@router.get("/stats", response_model=schemas.APIResponse)
async def get_trade_stats(db: Session = Depends(get_db)):
    """
    Totals profit and loss over closed trades, overall and per symbol.
    """
    try:
        trades = crud.get_all_trades(db)
        stats = logic.summarize_trades(trades)
        logger.info(f"Trade stats: {stats.closed_trades} closed, {stats.open_trades} open.")
        return {"status": "success", "stats": stats}
    except Exception as e:
        logger.error(f"Error computing trade stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute trade stats.")


@router.post("", response_model=schemas.APIResponse, status_code=201)
async def add_trade(trade: schemas.TradeCreate, db: Session = Depends(get_db)):
    """
    Logs a new trade.
    """
    try:
        logger.info(f"Received Trade Data: {trade}")
        record = crud.create_trade(db, trade)
        return {"status": "success", "trade": serialize_trade(record)}
    except crud.UnknownStrategyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error saving trade: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save trade.")


@router.post("/bulk", response_model=schemas.APIResponse, status_code=201)
async def add_trades_bulk(bulk: schemas.TradeBulkCreate, db: Session = Depends(get_db)):
    """
    Opens one trade per row, all sharing the same date, direction, leverage and strategy.
    """
    try:
        logger.info(f"Received bulk trade data with {len(bulk.rows)} rows.")
        records = crud.create_trades_bulk(db, bulk)
        return {"status": "success", "trades": [serialize_trade(record) for record in records]}
    except crud.UnknownStrategyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error saving bulk trades: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save trades.")


@router.put("/{trade_id}", response_model=schemas.APIResponse)
async def edit_trade(trade_id: int, changes: schemas.TradeUpdate, db: Session = Depends(get_db)):
    """
    Edits the given fields of a trade.
    """
    if not changes.model_dump(exclude_unset=True):
        raise HTTPException(status_code=400, detail="No fields to update.")
    try:
        logger.info(f"Updating trade {trade_id}: {changes}")
        record = crud.update_trade(db, trade_id, changes)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Trade {trade_id} not found.")
        return {"status": "success", "trade": serialize_trade(record)}
    except HTTPException as http_exc:
        raise http_exc
    except crud.UnknownStrategyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating trade {trade_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update trade.")


@router.post("/{trade_id}/close", response_model=schemas.APIResponse)
async def close_trade(trade_id: int, close: schemas.TradeClose, db: Session = Depends(get_db)):
    """
    Closes an open trade at the given price.
    """
    try:
        logger.info(f"Closing trade {trade_id} at {close.close_price}.")
        record = crud.close_trade(db, trade_id, close)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Trade {trade_id} not found.")
        return {"status": "success", "trade": serialize_trade(record)}
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        logger.error(f"Error closing trade {trade_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to close trade.")


@router.post("/{trade_id}/preview", response_model=schemas.APIResponse)
async def preview_close(trade_id: int, preview: schemas.TradePreview, db: Session = Depends(get_db)):
    """
    Shows the profit a trade would realize at a provisional close price without saving it.
    """
    try:
        record = crud.get_trade(db, trade_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Trade {trade_id} not found.")
        profit = logic.preview_trade_profit(record, preview.close_price)
        return {
            "status": "success",
            "data": {"trade_id": trade_id, "close_price": preview.close_price, "profit": profit}
        }
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        logger.error(f"Error previewing trade {trade_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to preview trade.")


@router.delete("/{trade_id}", response_model=schemas.APIResponse)
async def remove_trade(trade_id: int, db: Session = Depends(get_db)):
    """
    Deletes a logged trade.
    """
    try:
        logger.info(f"Deleting trade {trade_id}.")
        if not crud.delete_trade(db, trade_id):
            raise HTTPException(status_code=404, detail=f"Trade {trade_id} not found.")
        return {"status": "success", "message": f"Trade {trade_id} deleted."}
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        logger.error(f"Error deleting trade {trade_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete trade.")
