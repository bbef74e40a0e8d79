"""Run the API with uvicorn: `python -m piem`."""

import uvicorn

from piem.config import settings


def main() -> None:
    uvicorn.run(
        "piem.main:app",
        host=settings.backend_host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    main()
