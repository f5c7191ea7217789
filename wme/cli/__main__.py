"""Module entry point for `python -m wme.cli`."""

if __name__ == "__main__":  # pragma: no cover (invocation driven)
    from wme.cli import cli

    cli()
