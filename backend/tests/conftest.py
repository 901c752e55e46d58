import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from db import init_db  # noqa: E402
from domain.models import Destination  # noqa: E402


def make_destination(id, name, name_normalized=None, **overrides) -> Destination:
    """Build a Destination with plausible defaults for anything not given."""
    fields = dict(
        id=str(id),
        name=name,
        name_normalized=name_normalized if name_normalized is not None else name.lower(),
        display_name=overrides.pop("display_name", name),
        category="place",
        type="city",
        lat=0.0,
        lon=0.0,
        importance=0.5,
        place_rank=16,
    )
    fields.update(overrides)
    return Destination(**fields)


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a throwaway SQLite file with all tables created."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield factory
    engine.dispose()
