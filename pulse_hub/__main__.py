"""
Allow running Pulse Hub as a module: python -m pulse_hub
"""
from pulse_hub.cli import main


if __name__ == '__main__':
    main()
