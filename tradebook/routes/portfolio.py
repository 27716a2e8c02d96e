# tradebook/routes/portfolio.py

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from tradebook import schemas, crud, logic
from tradebook.database import get_db
from tradebook.logger import logger

router = APIRouter(
    prefix="/portfolio",
    tags=["portfolio"]
)


@router.get("/positions", response_model=schemas.APIResponse)
async def get_positions(db: Session = Depends(get_db)):
    """
    Derives one position per asset from the full transaction list.
    """
    try:
        positions = logic.aggregate_positions(crud.get_all_transactions(db))
        logger.info(f"Computed {len(positions)} positions.")
        return {"status": "success", "positions": positions}
    except Exception as e:
        logger.error(f"Error computing positions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute positions.")


@router.get("/summary", response_model=schemas.APIResponse)
async def get_summary(
    initial_capital: Optional[float] = Query(default=None, ge=0),
    db: Session = Depends(get_db)
):
    """
    Rolls the positions up into account totals against the initial capital.
    """
    try:
        capital = logic.INITIAL_CAPITAL if initial_capital is None else initial_capital
        positions = logic.aggregate_positions(crud.get_all_transactions(db))
        summary = logic.summarize_portfolio(positions, capital)
        logger.info(f"Portfolio summary: total profit {summary.total_profit}, remaining {summary.remaining_capital}")
        return {"status": "success", "positions": positions, "summary": summary}
    except Exception as e:
        logger.error(f"Error computing portfolio summary: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute portfolio summary.")


@router.get("/allocation", response_model=schemas.APIResponse)
async def get_allocation(db: Session = Depends(get_db)):
    """
    Returns pie chart slices for the assets currently held.
    """
    try:
        positions = logic.aggregate_positions(crud.get_all_transactions(db))
        return {"status": "success", "allocation": logic.allocation_slices(positions)}
    except Exception as e:
        logger.error(f"Error computing allocation: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute allocation.")


@router.get("/assets/{name:path}", response_model=schemas.APIResponse)
async def get_position_detail(name: str, db: Session = Depends(get_db)):
    """
    Returns one asset's transactions, newest first, with its position.
    """
    try:
        detail = logic.position_detail(crud.get_all_transactions(db), name)
        if detail.summary is None:
            raise HTTPException(status_code=404, detail=f"No transactions found for asset: {name}")
        return {"status": "success", "detail": detail}
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        logger.error(f"Error computing detail for {name}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute asset detail.")
