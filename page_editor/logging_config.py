"""Console logging set-up for the ``page-editor`` command.

Library modules only create loggers with ``logging.getLogger(__name__)``;
nothing is configured on import. Applications embedding the editor core bring
their own configuration, and the CLI calls :func:`setup_logging` on start-up.
"""

from __future__ import annotations

import logging
import logging.config

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | int = "WARNING") -> None:
    """Install a stderr console handler for the ``page_editor`` loggers.

    Parameters
    ----------
    level : str or int, optional
        Level name (``"DEBUG"``, ``"info"``...) or numeric level applied to
        the ``page_editor`` logger. Defaults to ``"WARNING"``.

    Raises
    ------
    ValueError
        If ``level`` is not a known logging level name.
    """
    if isinstance(level, str):
        name = level.strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            msg = f"Unknown log level: {level!r}"
            raise ValueError(msg)
        level = name
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"simple": {"format": DEFAULT_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "simple",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": {
                "page_editor": {
                    "handlers": ["console"],
                    "level": level,
                    "propagate": False,
                },
            },
        }
    )


__all__ = ["DEFAULT_FORMAT", "setup_logging"]
