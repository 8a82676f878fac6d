import os
import random
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from starlette.testclient import TestClient

# Set up test config before any app imports
_tmpdir = tempfile.mkdtemp()
_data_dir = Path(_tmpdir) / "data"
_data_dir.mkdir()

(_data_dir / "math.csv").write_text(
    "Was ist eine Menge?;Eine Zusammenfassung wohlunterschiedener Objekte.\n"
    "\n"
    "Was ist eine Abbildung?;Eine Zuordnung, die jedem x genau ein y zuordnet.\n"
    "Unvollständige Zeile;\n"
    "Was ist ein Körper?;Ein kommutativer Ring, in dem jedes Element außer 0 invertierbar ist.\n",
    encoding="utf-8",
)
(_data_dir / "empty.csv").write_text("", encoding="utf-8")

_test_config_content = f"""\
llm:
  api_key: "test-key"
  base_url: "https://llm.test/v1"
  model: "test-model"
  transcription_base_url: "https://stt.test/v1"
scheduler:
  seed: 7
data:
  questions_dir: "{_data_dir}"
database:
  url: "sqlite:///:memory:"
logging:
  level: "WARNING"
  file: "{_tmpdir}/test.log"
security:
  cors_origins:
    - "http://localhost"
"""

_test_config_path = Path(_tmpdir) / "config.yaml"
_test_config_path.write_text(_test_config_content)
os.environ["APP_CONFIG_PATH"] = str(_test_config_path)

from talklearn.core.config import get_config

get_config.cache_clear()

from talklearn.api.deps import get_clock, get_progress_port, get_rng
from talklearn.main import app
from talklearn.services.progress_port import InMemoryProgressPort

START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def port():
    return InMemoryProgressPort()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture(name="client")
def client_fixture(port, clock, rng):
    app.dependency_overrides[get_progress_port] = lambda: port
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_rng] = lambda: rng
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
