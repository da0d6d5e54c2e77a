"""
error-alerter config - Show effective configuration
"""

from error_alerter.configuration import Configuration


def register(subparsers):
    """Register the config command."""
    parser = subparsers.add_parser(
        'config',
        help='Show effective configuration',
        description='Print the configuration read from ERROR_ALERTER_* environment variables'
    )
    parser.add_argument(
        '--no-connect',
        action='store_true',
        help='Do not connect to the dedup Redis while loading configuration'
    )


def execute(args) -> int:
    """Execute the config command."""
    config = Configuration.from_env(connect_redis=not args.no_connect)

    title = "error_alerter configuration"
    print(title)
    print("-" * len(title))
    for key, value in config.as_dict().items():
        print(f"{key}: {value if value is not None else '<unset>'}")

    warnings = config.validate()
    if warnings:
        print()
        print("Warnings:")
        for warning in warnings:
            print(f"  - {warning}")

    if not config.enabled():
        print("\nAlerting is DISABLED: set ERROR_ALERTER_WEBHOOK_URL to enable it.")
    return 0
