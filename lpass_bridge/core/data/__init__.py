"""Package data shipped next to the code (the askpass helper)."""

from pathlib import Path

DATA_DIR = Path(__file__).resolve().parent
ASKPASS_PATH = DATA_DIR / "askpass.sh"
