import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Set up the logger
logger = logging.getLogger("sip_engine")
logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

# Basic format: time - level - message
formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

# Log directory setup
log_dir = Path(os.getenv("LOG_DIR", Path(__file__).parent.parent.parent / "logs"))
log_dir.mkdir(parents=True, exist_ok=True)

# Rotating file handler (2MB max size, keep 5 backup files)
rotating_handler = RotatingFileHandler(
    log_dir / "scheduler.log",
    maxBytes=2 * 1024 * 1024,  # 2MB
    backupCount=5,
    encoding="utf-8",
)
rotating_handler.setFormatter(formatter)
logger.addHandler(rotating_handler)

# Console handler
console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
logger.addHandler(console_handler)
