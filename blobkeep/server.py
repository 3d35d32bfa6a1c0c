import uvicorn

from blobkeep.logging import configure_logging
from blobkeep.settings import settings


def main() -> None:
    configure_logging(settings)
    uvicorn.run(
        "web.app:create_app",
        factory=True,
        host=settings.server_host,
        port=settings.server_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
