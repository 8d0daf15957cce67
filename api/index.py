"""
Vercel serverless entrypoint for the FastAPI app.

Vercel deploys the repository without installing it, so the backend
directory is put on the import path before importing the package.
"""
import sys
from pathlib import Path

backend_path = Path(__file__).parent.parent / "backend"
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from mangum import Mangum  # noqa: E402

from static_finder.main import app  # noqa: E402

# lifespan="auto" so the app's collaborators are built on cold start
mangum_handler = Mangum(app, lifespan="auto")


def handler(event, context=None):
    """Vercel serverless function handler"""
    return mangum_handler(event, context)
