import sys
from typing import List, Optional

import typer

from tsexport.commands.export import ConfigError, ExportCommand
from tsexport.logging import setup_logging, get_logger
from tsexport.store import LocalStore
from tsexport.utils.console import error, info


def main(argv: Optional[List[str]] = None) -> int:
    """Run the export command and return the process exit status"""
    # Initialize logging early
    setup_logging()
    logger = get_logger("tsexport.main")
    logger.info("tsexport started")

    if argv is None:
        argv = sys.argv[1:]

    store = LocalStore()
    try:
        ExportCommand(store).run(argv)
        return 0
    except typer.Exit as e:
        return e.exit_code
    except ConfigError as e:
        logger.error(f"Invalid arguments: {e}")
        error(str(e))
        info("Run 'tsexport -h' for usage.")
        return 2
    except Exception as e:
        logger.error(f"Export failed: {e}", exc_info=True)
        error(str(e))
        return 1
    finally:
        store.close()
        logger.info("tsexport finished")


def run():
    """Console script entry point"""
    sys.exit(main())


if __name__ == "__main__":
    run()
