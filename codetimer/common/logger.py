import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler
from codetimer.common.setup import PATHS, ensure_directory
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Timeline records only carry the message, they are meant to be read next to the patient chart.
TIMELINE_FORMAT = "%(asctime)s  %(message)s"

# Set on a log record (extra={TIMELINE_FLAG: True}) to also copy it into the per-run timeline record.
TIMELINE_FLAG = "timeline"


# Passes only records flagged as timeline entries.
class _TimelineFilter(logging.Filter):
    def filter(self, record):
        return bool(getattr(record, TIMELINE_FLAG, False))


# Adds the handler built by factory() unless a handler with that name is already attached.
def _attach(logger, handler_name, factory):
    if any(h.get_name() == handler_name for h in logger.handlers):
        return None
    handler = factory()
    handler.set_name(handler_name)
    logger.addHandler(handler)
    return handler

# Keeps only the newest `keep` files matching pattern in folder.
def _prune_runs(folder, pattern, keep):
    runs = sorted(folder.glob(pattern), key=lambda p: p.stat().st_mtime, reverse=True)
    for run in runs[keep:]:
        try:
            run.unlink()
        except OSError:
            logging.getLogger(__name__).debug(f"Could not prune old run log '{run}'", exc_info=True)

def get_logger(
        name = "codetimer",
        level = logging.INFO,
        log_dir: Path | None = None,
        max_bytes = 5 * 1024 * 1024,
        backup_count = 5,
        persistent = True,
        console = False,
        historical_debugs: int = 10,
        timeline_records: int = 30,
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(level)

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)
    run_stamp = f"{datetime.now():%Y-%m-%d_%H-%M-%S}"
    fmt = logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT)

    def _file_handler(path, handler_level, formatter=fmt, mode="a"):
        handler = logging.FileHandler(filename=path, mode=mode, encoding="utf-8", delay=False)
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        return handler

    # Rolling log across every run
    if persistent:
        def _rotating():
            handler = RotatingFileHandler(
                filename=log_dir / f"{name}.log",
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
                delay=False,
            )
            handler.setLevel(level)
            handler.setFormatter(fmt)
            return handler
        _attach(logger, f"{name}:persistent", _rotating)

    # This run only, overwritten on every start
    _attach(logger, f"{name}:latest", lambda: _file_handler(log_dir / "latest.log", level, mode="w"))

    # One full debug file per run, so a code can be reviewed afterwards
    if historical_debugs > 0:
        debug_dir = ensure_directory(log_dir / "debug")
        added = _attach(
            logger, f"{name}:historical_debug",
            lambda: _file_handler(debug_dir / f"{name}_{run_stamp}.log", logging.DEBUG),
        )
        if added is not None:
            _prune_runs(debug_dir, f"{name}_*.log", historical_debugs)

    # Plain timeline of clinical actions for this run, free of engine chatter
    if timeline_records > 0:
        timeline_dir = ensure_directory(log_dir / "timeline")

        def _timeline():
            handler = _file_handler(
                timeline_dir / f"timeline_{run_stamp}.log",
                logging.INFO,
                formatter=logging.Formatter(TIMELINE_FORMAT, LOG_DATE_FORMAT),
            )
            handler.addFilter(_TimelineFilter())
            return handler
        if _attach(logger, f"{name}:timeline", _timeline) is not None:
            _prune_runs(timeline_dir, "timeline_*.log", timeline_records)

    if console:
        def _console():
            handler = logging.StreamHandler()
            handler.setLevel(level)
            handler.setFormatter(fmt)
            return handler
        _attach(logger, f"{name}:console", _console)

    return logger

log = get_logger(level=logging.DEBUG,console=False,historical_debugs=10)
log.info("=== CODE TIMER STARTED ===")
