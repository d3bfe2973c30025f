import pytest


@pytest.fixture(autouse=True)
def use_200_columns(monkeypatch):
    """Override the COLUMNS environment variable to 200.

    Tables rendered with rich must be wide enough to show whole labels.
    """
    monkeypatch.setenv("COLUMNS", "200")
