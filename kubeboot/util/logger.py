"""This module defines logging capabilities for kubeboot.

kubeboot uses numeric verbosity levels instead of the Python ones:

.. code:: shell

    * 0 - quiet (no output)
    * 1 - error
    * 2 - warning
    * 3 - info
    * 4 - debug

A logger set to a specific level prints everything below (except 0) but
not above.

:func:`get_logger` sets the level on every call, so the module loggers
start at :data:`DEFAULT_LOG_LEVEL` (info) when they are imported. To see
the debug output, e.g. the resolved max pods and node labels, raise the
level afterwards::

    from kubeboot.provision import userdata
    from kubeboot.util.logger import set_level

    set_level(userdata.LOGGER, "debug")
"""

import logging
import sys

LOG_LEVELS = list(range(5))
DEFAULT_LOG_LEVEL = 3

_PYTHON_LEVELS = {
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
}


def get_logger(name, level=DEFAULT_LOG_LEVEL):
    """Returns a Python logger.

    Only a single handler which logs to STDOUT is added to a logger.
    Multiple calls with the same name would otherwise add duplicate
    handlers, which lead to extra prints.

    Args:
        name (str): The name of the Logger.
        level (int): The kubeboot log level, see :data:`LOG_LEVELS`.

    Returns:
        A Python Logger.
    """

    log = logging.getLogger(name)
    set_level(log, level)

    if not log.handlers:
        sh = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter("%(message)s")
        sh.setFormatter(fmt)
        log.addHandler(sh)

    return log


def set_level(logger, level):
    """Sets the logging level.

    Args:
        logger: A Python logger object.
        level (int or str): The logging level, either a number out of
            :data:`LOG_LEVELS` or one of ``quiet``, ``error``, ``warning``,
            ``info``, ``debug``.

    Raises:
        ValueError if log level is unsupported.
    """
    level_to_int = {
        'quiet': 0,
        'error': 1,
        'warning': 2,
        'info': 3,
        'debug': 4}

    if isinstance(level, str):
        try:
            level = level_to_int[level]
        except KeyError:
            raise ValueError(f"log level {level} is not supported") from None

    if level not in LOG_LEVELS:
        raise ValueError(f"log level {level} is not supported")

    if level == 0:
        logger.disabled = True
        return

    logger.disabled = False
    logger.setLevel(_PYTHON_LEVELS[level])
