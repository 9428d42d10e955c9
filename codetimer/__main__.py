import sys
from codetimer.common.logger import log
from codetimer.common.setup import PATHS

# Entry point for `python -m codetimer` and the code-timer gui script
def run() -> None:
    log.info(f"Data folder: '{PATHS.data}', logs in '{PATHS.logs}'")
    try:
        from codetimer.ui.app import main
        main()
    except SystemExit:
        raise
    except Exception:
        # A crash mid-code must leave a trace, full stack trace always
        log.exception("Uncaught exception in code timer, exiting")
        sys.exit(1)

if __name__ == "__main__":
    run()
