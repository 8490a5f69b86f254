import os

# Must be set before covapi.settings is first imported
os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('CASCADE_RETRY_DELAY_SECONDS', '0')

import pytest
from covapi.covapp import app
from covapi.cov_database import db
from covapi.models import Base, initialize_sql
from covapi.models.project import Project
from covapi.utils.build_store import SqlBuildStore
from memory_store import InMemoryBuildStore


@pytest.fixture(scope="session")
def test_app():
    """Create application for testing."""
    app.config['TESTING'] = True
    return app

@pytest.fixture(scope="function")
def test_client(test_app):
    """Create test client."""
    with test_app.test_client() as client:
        with test_app.app_context():
            initialize_sql(db.engine)
            yield client
            db.session.remove()
            Base.metadata.drop_all(db.engine)

@pytest.fixture
def sql_store(test_app):
    """SqlBuildStore on a fresh schema."""
    with test_app.app_context():
        initialize_sql(db.engine)
        yield SqlBuildStore()
        db.session.remove()
        Base.metadata.drop_all(db.engine)

@pytest.fixture
def sql_project(sql_store):
    project = Project(name="sql-project")
    db.session.add(project)
    db.session.commit()
    return project

@pytest.fixture
def memory_store():
    return InMemoryBuildStore()

@pytest.fixture
def project(memory_store):
    return memory_store.add_project(Project(id=1, name="demo"))

@pytest.fixture
def sample_payload():
    """Sample ingestion payload, as sent by a coverage reporter."""
    return {
        "service_name": "travis-ci",
        "service_job_id": "1234",
        "git": {
            "branch": "main",
            "head": {
                "id": "abc123",
                "committer_name": "Jane Doe",
                "committer_email": "jane@example.com",
                "message": "Add coverage reporting"
            }
        }
    }
