"""Allow `python -m telemetry_relay serve`."""

from telemetry_relay.cli.main import main

if __name__ == "__main__":
    main()
