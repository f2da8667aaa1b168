# stdlib
import os
from typing import Optional
# thirdpartylib
from dotenv import load_dotenv

def fetch_var(name: str, default: Optional[str] = None) -> str:
    """
    Fetch an environment variable, falling back to ``default``.

    Fails loudly when the variable is unset or blank and no default
    was given.
    """
    value = os.environ.get(name, "").strip()
    if value:
        return value
    if default is not None:
        return default
    if name in os.environ:
        raise RuntimeError(f"Environment variable '{name}' is empty.")
    raise RuntimeError(
        f"Environment variable '{name}' is not set. "
        "Create a .env file or define the variable."
    )


# Load env variables
load_dotenv()

DATA_ROOT = fetch_var("FORECAST_DATA_ROOT", "data")
OUTPUT_ROOT = fetch_var("FORECAST_OUTPUT_ROOT", "outputs")
