import logging
import re
from pathlib import Path

from sqlmodel import SQLModel, create_engine

from .config import get_config

logger = logging.getLogger(__name__)

config = get_config()

connect_args = {"check_same_thread": False} if "sqlite" in config.database.url else {}
engine = create_engine(config.database.url, echo=False, connect_args=connect_args)


def init_db() -> None:
    # Register table models with SQLModel metadata
    from ..models import progress  # noqa: F401

    if "sqlite" in config.database.url:
        match = re.search(r"sqlite:///(.+)", config.database.url)
        if match and match.group(1) != ":memory:":
            db_path = Path(match.group(1))
            db_path.parent.mkdir(parents=True, exist_ok=True)

    SQLModel.metadata.create_all(engine)
    logger.info("Database ready at %s", config.database.url)
