import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(format=LOG_FORMAT, stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)

    # SQL echo and socket chatter drown out lifecycle logs.
    for noisy in ("sqlalchemy.engine", "engineio", "socketio", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
