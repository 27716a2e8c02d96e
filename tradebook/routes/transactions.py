# tradebook/routes/transactions.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from tradebook import schemas, crud
from tradebook.database import get_db
from tradebook.logger import logger

router = APIRouter(
    prefix="/assets",
    tags=["assets"]
)


@router.get("", response_model=schemas.APIResponse)
async def get_transactions(db: Session = Depends(get_db)):
    """
    Retrieves all buy/sell transactions, newest first.
    """
    try:
        logger.info("Fetching all transactions.")
        transactions = crud.get_all_transactions(db)
        return {
            "status": "success",
            "transactions": [schemas.TransactionResponse.model_validate(tx) for tx in transactions]
        }
    except Exception as e:
        logger.error(f"Error retrieving transactions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve transactions.")


@router.post("", response_model=schemas.APIResponse, status_code=201)
async def add_transaction(transaction: schemas.TransactionCreate, db: Session = Depends(get_db)):
    """
    Records a new buy or sell transaction.
    """
    try:
        logger.info(f"Received Transaction Data: {transaction}")
        record = crud.create_transaction(db, transaction)
        return {"status": "success", "transaction": schemas.TransactionResponse.model_validate(record)}
    except Exception as e:
        logger.error(f"Error saving transaction: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save transaction.")


@router.put("/{transaction_id}", response_model=schemas.APIResponse)
async def edit_transaction(
    transaction_id: int,
    changes: schemas.TransactionUpdate,
    db: Session = Depends(get_db)
):
    """
    Edits the given fields of a transaction.
    """
    if not changes.model_dump(exclude_unset=True):
        raise HTTPException(status_code=400, detail="No fields to update.")
    try:
        logger.info(f"Updating transaction {transaction_id}: {changes}")
        record = crud.update_transaction(db, transaction_id, changes)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Transaction {transaction_id} not found.")
        return {"status": "success", "transaction": schemas.TransactionResponse.model_validate(record)}
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        logger.error(f"Error updating transaction {transaction_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update transaction.")


@router.delete("/{transaction_id}", response_model=schemas.APIResponse)
async def remove_transaction(transaction_id: int, db: Session = Depends(get_db)):
    """
    Deletes a single transaction.
    """
    try:
        logger.info(f"Deleting transaction {transaction_id}.")
        if not crud.delete_transaction(db, transaction_id):
            raise HTTPException(status_code=404, detail=f"Transaction {transaction_id} not found.")
        return {"status": "success", "message": f"Transaction {transaction_id} deleted."}
    except HTTPException as http_exc:
        raise http_exc
    except Exception as e:
        logger.error(f"Error deleting transaction {transaction_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete transaction.")
