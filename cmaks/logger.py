import logging

logger = logging.getLogger("cmaks")


def setup_logger(
    verbose: bool = False,
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    # Set the logging level based on the verbose flag
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(logging.Formatter(format))

    logger.addHandler(ch)


setup_logger()
