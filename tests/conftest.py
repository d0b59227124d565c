import sys
from pathlib import Path
import os

import pytest


# Ensure project src is on path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for p in (ROOT, SRC):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

# Keep tests offline: no API key means the external classifier stays disabled
os.environ["OPENAI_API_KEY"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")

from reviewtrust.models import Review  # noqa: E402


@pytest.fixture
def make_review():
    counter = {"n": 0}

    def _make(**overrides) -> Review:
        counter["n"] += 1
        fields = {
            "id": f"r{counter['n']}",
            "rating": 5,
            "text": "Great product",
            "author": f"User{counter['n']}",
            "verified": True,
        }
        fields.update(overrides)
        return Review(**fields)

    return _make
