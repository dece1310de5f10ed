"""Entry point for running the CLI as a module.

Usage:
    python -m swarmroute.interfaces.cli analyze --title "..."
"""

if __name__ == "__main__":
    from swarmroute.interfaces.cli.app import main
    main()
