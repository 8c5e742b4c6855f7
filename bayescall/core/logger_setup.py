#!/usr/bin/env python

"""Logger for bayescall to STDERR and optionally to a LOGFILE.

Genotype results are streamed to STDOUT (or an output file), so all
logging goes to STDERR to keep the JSON lines clean.

logging to STDERR
-----------------
DEBUG: used by developers to examine per-position details.
INFO: info reported to users, run start/end and summary counts. (DEFAULT)
WARNING: rejected allele records and degenerate distributions.
ERROR: printed along with fatal input errors.

Examples
--------
>>> import bayescall as bc
>>> bc.set_log_level("DEBUG")
>>> bc.set_log_level("DEBUG", log_file="/tmp/bc-log.txt")

Note
----
Exceptions written to the logfile have color support, which
can be viewed using `less -R logfile.txt`
"""

from typing import Optional, Iterator, List
import sys
from contextlib import contextmanager
from pathlib import Path
from loguru import logger
import IPython

LOGGERS = [0]


def formatter(record):
    """Custom formatter that allows for a custom line end."""
    end = record["extra"].get("end", "\n")
    fmessage = (
        "{time:hh:mm:ss} | "
        "<level>{level:<8}</level> <white>|</white> "
        "<magenta>{file:<18}</magenta> <white>|</white> "
        "{message}"
    ) + end
    return fmessage


def color_support():
    """Check for color support in stderr as a notebook or terminal/tty."""
    # check if we're in IPython/jupyter
    tty1 = bool(IPython.get_ipython())
    # check if we're in a terminal
    tty2 = sys.stderr.isatty()
    return tty1 or tty2


def set_log_level(log_level: str = "DEBUG", log_file: Optional[Path] = None):
    """Add logger for bayescall to stderr and optionally to file.

    These loggers are bound to the 'extra' keyword 'bayescall'. Thus,
    any module that aims to use this formatted logger should put
    `logger = logger.bind(name="bayescall")` at the top of the module.

    The logger will use EITHER a STDERR or a LOGFILE, but not both.
    """
    # remove any previous loggers created by bayescall
    for idx in LOGGERS:
        try:
            logger.remove(idx)
        except ValueError:
            pass

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(exist_ok=True)
        log_file.touch(exist_ok=True)
        idx = logger.add(
            sink=log_file,
            level=log_level,
            colorize=False,
            format=formatter,
            filter=lambda x: x['extra'].get('name') == "bayescall",
            enqueue=True,
            rotation="50 MB",
        )
    else:
        idx = logger.add(
            sink=sys.stderr,
            level=log_level,
            colorize=color_support(),
            format=formatter,
            filter=lambda x: x['extra'].get("name") == "bayescall",
            enqueue=True,
        )
    LOGGERS.append(idx)

    # activate
    logger.enable("bayescall")
    logger.bind(name='bayescall').debug(f"bayescall logging enabled: {log_level}")


@contextmanager
def capture_logs(log_level: str = "INFO") -> Iterator[List[str]]:
    """Collect bayescall log messages in a list while in context.

    Messages are stored as 'LEVEL:module:message' strings. The sink is
    synchronous so messages are available as soon as they are logged.

    Examples
    --------
    >>> with capture_logs("WARNING") as cap:
    >>>     group_alleles_by_sample(alleles)
    >>> assert any("rejected" in i for i in cap)
    """
    messages: List[str] = []

    def _sink(message):
        record = message.record
        messages.append(
            f"{record['level'].name}:{record['name']}:{record['message']}")

    idx = logger.add(
        sink=_sink,
        level=log_level,
        format="{message}",
        filter=lambda x: x['extra'].get("name") == "bayescall",
    )
    try:
        yield messages
    finally:
        logger.remove(idx)
