# tradebook/main.py

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from tradebook.database import init_db, get_db, ping_database
from tradebook.routes import transactions, trades, strategies, portfolio
from tradebook.logger import logger

# Fetch PORT from environment or default to 8000 for local testing
PORT = int(os.getenv('PORT', 8000))


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Tradebook API",
    description="API for recording asset transactions and logged trades, and deriving positions and profit.",
    version="1.0.0",
    lifespan=lifespan
)

# Include API routers
app.include_router(transactions.router)
app.include_router(portfolio.router)
app.include_router(trades.router)
app.include_router(strategies.router)


@app.middleware("http")
async def log_exceptions_middleware(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return JSONResponse(content={"status": "error", "error": "Internal Server Error"}, status_code=500)


# Root endpoint
@app.get("/", response_model=dict)
async def root():
    return {"message": "Tradebook API is running"}


# Health check endpoint
@app.get("/health", response_model=dict)
def health_check(db: Session = Depends(get_db)):
    try:
        ping_database(db)
        return {"status": "healthy"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return JSONResponse(content={"status": "unhealthy", "error": str(e)}, status_code=500)


# Run the app with Uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
