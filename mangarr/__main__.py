# mangarr/__main__.py

# Import the logging setup early so that it applies to all loggers.
from mangarr.cli.config import setup_logging
setup_logging()  # Commands re-apply it with the configured level and log file.

# Now import the main CLI command.
from mangarr.cli.main import main

if __name__ == "__main__":
    main()
