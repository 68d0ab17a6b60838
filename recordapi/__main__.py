"""Run the API with uvicorn: ``python -m recordapi``."""

import uvicorn

from recordapi.core.config import settings


def main() -> None:
    uvicorn.run("recordapi.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
