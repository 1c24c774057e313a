# logger_setup.py

import logging
import os
import json

LOGGER_NAME = "lab_sim"


def load_config(config_path='config.json') -> dict:
    with open(config_path, 'r') as f:
        return json.load(f)


def setup_logging(config_path='config.json', config: dict = None, to_file: bool = True):
    """
    Configures the dedicated "lab_sim" logger for an interactive session.

    Each run writes to runs/<run_id>/simulation.log (the directory can be
    changed with logging.directory) and echoes to the console. The logger does
    not propagate, so Numba's compiler chatter and pygame's own messages stay
    out of the lab log; numba itself is held at WARNING.

    Data Contract:
    - Inputs: config_path (str), or an already-loaded config dict which takes
      precedence. to_file=False skips the run directory entirely.
    - Outputs: The configured logger.
    - Side Effects: Replaces the logger's handlers; creates the run directory.
    - Invariants: The config holds 'run_id' and a 'logging' dict with
      'level' and 'format'. Calling this twice never duplicates output.
    """
    if config is None:
        config = load_config(config_path)
    run_id = config['run_id']
    log_config = config['logging']

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_config['level'])
    logger.propagate = False
    logging.getLogger("numba").setLevel(logging.WARNING)

    formatter = logging.Formatter(log_config['format'])
    handlers = [logging.StreamHandler()]

    log_file = None
    if to_file:
        log_dir = os.path.join(log_config.get('directory', 'runs'), run_id)
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, 'simulation.log')
        handlers.append(logging.FileHandler(log_file))

    if logger.hasHandlers():
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.info(f"Logging initialized. Run ID: {run_id}. Log file: {log_file or 'console only'}")
    return logger
