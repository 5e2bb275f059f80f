#!/usr/bin/env python3
"""
ARQ Link Simulator - source checkout entry point

    python main.py -w 8 -b 1e-5

The installed console script is `arq-simul`; both run arqsim.main.cli.
"""

from arqsim.main import cli


if __name__ == "__main__":
    cli()
