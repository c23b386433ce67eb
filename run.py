"""Convenience runner for the tracking invoice service."""

import uvicorn

from apps.invoicing.settings import settings


def main():
    uvicorn.run(
        "apps.invoicing.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=True,
        reload_dirs=["apps"],
    )


if __name__ == "__main__":
    main()
