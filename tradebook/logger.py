# tradebook/logger.py

import logging
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Shared by the routes, the aggregation core and the database lifecycle
logger = logging.getLogger("tradebook")
logger.setLevel(LOG_LEVEL)

console_handler = logging.StreamHandler()
console_handler.setLevel(LOG_LEVEL)
console_handler.setFormatter(logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
))

# Re-importing under uvicorn --reload must not duplicate output
if not logger.hasHandlers():
    logger.addHandler(console_handler)
