import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('APP_ENV', 'test')
os.environ['DATABASE_URL'] = ''

from workflow_galaxy.models import Base  # noqa: E402
from workflow_galaxy.schemas.workflow import WorkflowCategory, WorkflowMetadata  # noqa: E402

FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_workflow(
    workflow_id: str,
    name: str = "Sample",
    category: WorkflowCategory = WorkflowCategory.OTHER,
    node_count: int = 3,
) -> WorkflowMetadata:
    return WorkflowMetadata(
        id=workflow_id,
        name=name,
        description=f"{name} description",
        node_count=node_count,
        node_types=["n8n-nodes-base.httpRequest"],
        category=category,
        source_url=f"https://github.com/example/{workflow_id}",
        content_url=f"https://raw.example.com/{workflow_id}.json",
        size=1024,
        last_updated=FIXED_NOW,
    )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()
