from blobkeep.cli.app import main_menu
from blobkeep.logging import configure_logging
from blobkeep.settings import settings


def main() -> None:
    configure_logging(settings)
    main_menu()


if __name__ == "__main__":
    main()
