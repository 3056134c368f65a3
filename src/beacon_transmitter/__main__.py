"""
Entry point for running the beacon transmitter as a module.

Usage:
    python -m beacon_transmitter
    python -m beacon_transmitter --uuid e2c56db5-dffb-48d2-b060-d0f5a71096e0 --major 1
"""

from .main import main

if __name__ == "__main__":
    main()
