"""Entry point for running eyecamp_intake as a module.

This allows the package to be executed as:
    python -m eyecamp_intake
"""

from eyecamp_intake.cli.main import cli

if __name__ == "__main__":
    cli()
