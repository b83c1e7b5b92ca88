import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("SANDWICH_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("SANDWICH_LOG_FILE", None)

# JSON object of {class_name: [token, ...]}; the built-in table is used when unset
TOKEN_EQUIVALENCE_FILE = os.getenv("TOKEN_EQUIVALENCE_FILE", None)

SIMULATION_TOLERANCE_PCT = float(os.getenv("SIMULATION_TOLERANCE_PCT", "1.0"))
MAX_VICTIM_LOSS_PCT = float(os.getenv("MAX_VICTIM_LOSS_PCT", "10.0"))

DETECTION_WORKERS = int(os.getenv("DETECTION_WORKERS", "1"))

RESULTS_DIR = Path(os.getenv("RESULTS_DIR", "results"))
