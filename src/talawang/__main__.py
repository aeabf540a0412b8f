"""Entrypoint: python -m talawang"""
from __future__ import annotations

import uvicorn

from talawang.config import settings


def main() -> None:
    uvicorn.run(
        "talawang.app:create_app",
        factory=True,
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level=settings.LOG_LEVEL,
        proxy_headers=True,
        forwarded_allow_ips=settings.FORWARDED_ALLOW_IPS,
    )


if __name__ == "__main__":
    main()
