"""
Loader for bundled persona content.
"""
from functools import lru_cache
from pathlib import Path

DATA_DIR = Path(__file__).parent

STARTER_PATIENT_NAME = "Philip Walters"
STARTER_PATIENT_AGE = 55


@lru_cache(maxsize=1)
def load_starter_prompt() -> str:
    """Legacy free-text prompt of the starter persona given to new accounts"""
    path = DATA_DIR / "starter_patient.md"
    try:
        return path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        raise FileNotFoundError(f"Starter patient prompt not found at {path}")
