import os

import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove STACKUP_* variables inherited from the calling shell."""
    for key in list(os.environ):
        if key.startswith("STACKUP_"):
            monkeypatch.delenv(key)
