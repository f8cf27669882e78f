"""structlog configuration.

Learn: JSON lines in production (one event per line, ready for a log
shipper), coloured key=value output everywhere else. Request-scoped
values such as request_id are merged in from structlog.contextvars.
"""

import logging

import structlog


def configure_logging(production: bool = False, debug: bool = False) -> None:
    level = logging.DEBUG if debug or not production else logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if production:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
