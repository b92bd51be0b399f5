import uvicorn

from career_roadmap.config import Config
from career_roadmap.logging_config import get_logging_config, setup_logging


def main():
    setup_logging()
    uvicorn.run(
        "career_roadmap.main:app",
        host=Config.HOST,
        port=Config.PORT,
        log_config=get_logging_config(),
    )


if __name__ == "__main__":
    main()
