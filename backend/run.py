"""Combustion Trainer Engine — server entry point.

Usage:
    python -m backend.run
"""

import uvicorn

from backend.core.config import settings


def main():
    url = f"http://{settings.HOST}:{settings.PORT}"
    print("=" * 56)
    print(f"  {settings.PROJECT_NAME} v{settings.VERSION}")
    print(f"  Server: {url}")
    print(f"  Docs:   {url}/docs")
    print("=" * 56)

    uvicorn.run(
        "backend.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
