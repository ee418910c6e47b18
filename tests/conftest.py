import pytest

from ledes_codec.settings import load_settings
from ledes_codec.store import ConfigurationStore, ExportHistory


@pytest.fixture
def settings(tmp_path):
    return load_settings(tmp_path / "missing.yml", overrides={
        "database": ":memory:",
        "export_dir": str(tmp_path / "exports"),
        "firm": {"name": "Ross AI Legal Services"},
    })


@pytest.fixture
def store():
    s = ConfigurationStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def history():
    h = ExportHistory(":memory:", limit=50)
    yield h
    h.close()
