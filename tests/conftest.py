import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

# Register shared Hypothesis profiles for deterministic CI runs and fast local loops.
from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import

from probehash.cli import app  # noqa: E402
from probehash.core import OpenAddressingTable, linear_probing  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep PROBEHASH_* overrides from the outer shell out of the tests."""

    for name in list(os.environ):
        if name.startswith("PROBEHASH_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def linear_table() -> OpenAddressingTable:
    """Size-5 table probing linearly from ``k mod 5``."""

    return OpenAddressingTable(5, linear_probing(5))


@pytest.fixture()
def reset_cli_state() -> Iterator[None]:
    yield
    app.OUTPUT_JSON = False
    app.set_app_config(app.AppConfig())
