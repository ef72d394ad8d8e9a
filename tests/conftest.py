import os
import tempfile

# The engine is bound when ``app`` is imported, so the test database has to be
# configured before any test module imports it.
_db_fd, _db_path = tempfile.mkstemp(suffix=".db")
os.close(_db_fd)
os.environ["DATABASE_URL"] = f"sqlite:///{_db_path}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DEV_AUTO_PROVISION_TENANT"] = "false"


def pytest_sessionfinish(session, exitstatus):
    if os.path.exists(_db_path):
        os.unlink(_db_path)
