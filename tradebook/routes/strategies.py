# tradebook/routes/strategies.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from tradebook import schemas, crud
from tradebook.database import get_db
from tradebook.logger import logger

router = APIRouter(
    prefix="/strategies",
    tags=["strategies"]
)


@router.get("", response_model=schemas.APIResponse)
async def get_strategies(db: Session = Depends(get_db)):
    """
    Retrieves all strategies, newest first.
    """
    try:
        logger.info("Fetching all strategies.")
        strategies = crud.get_all_strategies(db)
        return {
            "status": "success",
            "strategies": [schemas.StrategyResponse.model_validate(s) for s in strategies]
        }
    except Exception as e:
        logger.error(f"Error retrieving strategies: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve strategies.")


@router.post("", response_model=schemas.APIResponse, status_code=201)
async def add_strategy(strategy: schemas.StrategyCreate, db: Session = Depends(get_db)):
    """
    Creates a strategy that trades can be tagged with.
    """
    try:
        logger.info(f"Received Strategy Data: {strategy}")
        record = crud.create_strategy(db, strategy)
        return {"status": "success", "strategy": schemas.StrategyResponse.model_validate(record)}
    except Exception as e:
        logger.error(f"Error saving strategy: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save strategy.")


@router.put("/{strategy_id}", response_model=schemas.APIResponse)
async def edit_strategy(strategy_id: int, changes: schemas.StrategyUpdate, db: Session = Depends(get_db)):
    """
    Edits the given fields of a strategy.
    """
    if not changes.model_dump(exclude_unset=True):
        raise HTTPException(status_code=400, detail="No fields to update.")
    try:
        logger.info(f"Updating strategy {strategy_id}: {changes}")
        record = crud.update_strategy(db, strategy_id, changes)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Strategy {strategy_id} not found.")
        return {"status": "success", "strategy": schemas.StrategyResponse.model_validate(record)}
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        logger.error(f"Error updating strategy {strategy_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update strategy.")


@router.delete("/{strategy_id}", response_model=schemas.APIResponse)
async def remove_strategy(strategy_id: int, db: Session = Depends(get_db)):
    """
    Deletes a strategy. Trades tagged with it are kept and become untagged.
    """
    try:
        logger.info(f"Deleting strategy {strategy_id}.")
        if not crud.delete_strategy(db, strategy_id):
            raise HTTPException(status_code=404, detail=f"Strategy {strategy_id} not found.")
        return {"status": "success", "message": f"Strategy {strategy_id} deleted."}
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        logger.error(f"Error deleting strategy {strategy_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete strategy.")
