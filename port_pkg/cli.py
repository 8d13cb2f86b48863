#!/usr/bin/env python3
"""
Command-line interface for Port - static site generator.
"""

import os
import sys
import argparse
from . import __version__
from .core import Port
from .settings import PortSettings


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Port - Static Site Generator. Builds the site configured in ~/.config/port.yml.'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.parse_args()

    try:
        # Configuration errors abort before any build work
        config = PortSettings().load_settings()

        generator = Port(config, log_dir=os.path.join(os.getcwd(), 'logs'))
        generator.logger.info(f'Building site "{config.name}"')
        generator.build()
        generator.logger.info("Done building.")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
