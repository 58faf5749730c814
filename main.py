"""
Browser Scan API Server Entry Point

Deployment:
  uvicorn main:app --host 0.0.0.0 --port $PORT
"""

from api_server import app  # noqa: F401
from browserscan.config import get_settings


# For local development
if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    print(f"Secure Server Active on Port: {settings.port}")
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port)
