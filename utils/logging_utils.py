import logging
from config import config

def setup_logging():
    """
    Configure logging level based on debug mode setting.
    Non-debug mode uses WARNING level to minimize console output.
    Debug mode uses INFO level so every phase transition is traced.
    Safe to call again after the command line has been parsed.
    """
    if config.debug_mode == "non_debug":
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        force=True
    )

    return logging.getLogger("flowlift")

# Global logger instance - import this in other modules
logger = setup_logging()
