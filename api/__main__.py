import uvicorn

from api.main import create_app
from core.config import AppConfig
from core.logging_config import setup_logging


def main() -> None:
    config = AppConfig.from_env()
    setup_logging(config.log_level)
    uvicorn.run(create_app(), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
