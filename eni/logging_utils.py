"""
logging_utils.py

Logging helpers used across the import pipeline.

Two channels are kept separate:

    • Library modules log through the standard `logging` module
      (module-level `logging.getLogger(__name__)`). `setup_logging()`
      installs one stream handler on the `eni` logger.

    • The CLI prints high-level progress lines through `log_verbose()`,
      which uses Typer's echo so output stays consistent with the rest of
      the command-line surface.
"""

import logging

import typer

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger once and return it.

    Calling this again only updates the level; handlers are never stacked.
    """
    global _configured

    logger = logging.getLogger("eni")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        _configured = True

    return logger


def log_verbose(message: str, verbose: bool) -> None:
    """
    Print a high-level progress message when verbose mode is enabled.

    Parameters
    ----------
    message : str
        Short, plain-English description of what the pipeline is doing
        (e.g., "Parsing export...", "Importing note 3/10...").

    verbose : bool
        Whether verbose mode is active. When False, this function does
        nothing.
    """
    if verbose:
        typer.echo(message)
