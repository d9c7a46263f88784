"""Server startup - configures logging and serves the API with uvicorn."""
import sys
from pathlib import Path

# Allow running from a checkout without installing the package
src_dir = Path(__file__).parent / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

import uvicorn

from utils.config import load_config
from utils.logging import setup_logging

config = load_config()
setup_logging(config["log_level"], json_output=config["log_json"])

from api.server import app  # noqa: E402  (logging must be configured first)

print(f"[start.py] Starting on port {config['port']}", flush=True)
uvicorn.run(app, host="0.0.0.0", port=config["port"], log_config=None)
