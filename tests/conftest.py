import os
import tempfile

# the app builds its engine at import time; point it at a throwaway file first
os.environ.setdefault(
    "WELLNESS_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.mkdtemp(prefix='wellness-tests-'), 'api.db')}",
)
