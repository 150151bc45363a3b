"""Run the AMX API server with uvicorn."""

import os

import uvicorn

from amx.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "backend.main:app",
        host=os.environ.get("AMX_HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", settings.port)),
        reload=os.environ.get("AMX_ENV", "development") == "development",
    )


if __name__ == "__main__":
    main()
