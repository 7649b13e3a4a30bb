"""Allow running charsheet with ``python -m charsheet``."""

from charsheet.main import run

if __name__ == "__main__":
    run()
