"""
lanclip - Command Line Entry Point

Shares the clipboard with every machine on the LAN. The content is
multicast to the group address; if it exceeds the maximum datagram size a
peer-to-peer TCP connection is used to transfer it instead.

Commands:
    lanclip send [-t SECONDS] [-i NAME]...   Announce the clipboard
    lanclip receive [-t SECONDS]              Adopt the first announcement
    lanclip interfaces                        List local interfaces
    lanclip config                            Show/edit configuration
"""
import sys
import logging
import argparse

from lanclip import config
from lanclip.clipboard import get_clipboard
from lanclip.common.errors import LanClipError, get_error_from_exception
from lanclip.common.interfaces import list_interfaces
from lanclip.common.sync import receive_clipboard, send_clipboard
from lanclip.common.user_config import get_config, get_config_manager, print_config

logger = logging.getLogger(__name__)

# Exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TIMED_OUT = 2


def setup_logging(verbose: bool = False):
    """Log to stdout and to the log file"""
    handlers = [logging.StreamHandler(sys.stdout)]
    try:
        config.ensure_temp_dir()
        handlers.append(logging.FileHandler(config.LOG_FILE))
    except OSError as e:
        print(f"Could not open log file {config.LOG_FILE}: {e}", file=sys.stderr)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def _report(exc: Exception) -> int:
    """Print a user-friendly error and return the exit code"""
    logger.debug("Operation failed", exc_info=exc)
    print(f"\n{get_error_from_exception(exc)}")
    print(f"  Details: {exc}")
    return EXIT_ERROR


def cmd_send(args) -> int:
    """Announce the clipboard until the timeout elapses"""
    transport = get_config()
    timeout = args.timeout if args.timeout is not None else transport.run_timeout
    interfaces = args.interface or config.get_default_interfaces()

    try:
        clipboard = get_clipboard()
        send_clipboard(clipboard, interfaces=interfaces, timeout=timeout, transport=transport)
    except LanClipError as e:
        return _report(e)

    print(f"\n[OK] Broadcast clipboard for {timeout} seconds")
    return EXIT_OK


def cmd_receive(args) -> int:
    """Adopt the first clipboard announcement that arrives"""
    transport = get_config()
    timeout = args.timeout if args.timeout is not None else transport.run_timeout

    try:
        clipboard = get_clipboard()
        result = receive_clipboard(clipboard, timeout=timeout, transport=transport)
    except LanClipError as e:
        return _report(e)

    if result.timed_out:
        print(f"\n[TIMED OUT] Nothing received within {timeout} seconds")
        return EXIT_TIMED_OUT

    received = result.value
    via = " (peer-to-peer)" if received.via_fallback else ""
    print(f"\n[OK] Received {received.envelope.kind.name.lower()} from {received.source[0]}{via}")
    return EXIT_OK


def cmd_interfaces(args) -> int:
    """List local interfaces and their IPv4 addresses"""
    print("\nLocal interfaces:")
    for info in list_interfaces():
        address = info.address or "(no IPv4 address)"
        print(f"  {info.name:<16} {address}")
    print()
    return EXIT_OK


def cmd_config(args) -> int:
    """Show or modify configuration"""
    config_mgr = get_config_manager()

    if args.reset:
        config_mgr.reset()
        print("[OK] Configuration reset to defaults.")
        print_config()
        return EXIT_OK

    # Handle setting a value
    if args.set:
        key, value = args.set
        # Convert value to appropriate type
        if value.lower() in ('true', 'on', 'yes'):
            value = True
        elif value.lower() in ('false', 'off', 'no'):
            value = False
        elif value.isdigit():
            value = int(value)
        elif value.replace('.', '', 1).isdigit():
            value = float(value)

        if config_mgr.set(key, value):
            print(f"[OK] Set {key} = {value}")
            return EXIT_OK

        print(f"[ERROR] Could not set {key} = {value!r}")
        print("\nAvailable keys:")
        for k in vars(config_mgr.get()):
            if not k.startswith('_'):
                print(f"  - {k}")
        return EXIT_ERROR

    # Default: show config
    print_config()
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='lanclip',
        description=(
            f"Share your clipboard over a LAN. The content is multicast to "
            f"{config.MULTICAST_ADDRESS}. If the content exceeds the maximum UDP "
            f"datagram size of {config.MAX_DATAGRAM_SIZE} bytes then a peer-to-peer "
            f"TCP connection is used to send it instead."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lanclip send                         Announce on every interface for 60s
  lanclip send -i eth0 -i wlan0 -t 10  Announce on two interfaces for 10s
  lanclip receive                      Wait for the first announcement
  lanclip config --set run_timeout 30  Change the default timeout
"""
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    timeout_help = (
        "Seconds for which the application will be performing the action (send, receive). "
        "After this exit. (default: from config)"
    )

    send_parser = subparsers.add_parser('send', help='Send clipboard contents')
    send_parser.add_argument('-t', '--timeout', type=int, help=timeout_help)
    send_parser.add_argument(
        '-i', '--interface', action='append', default=[],
        help=f'Interface to multicast on. Can be specified multiple times. (default: "{config.ALL_INTERFACES}")'
    )

    receive_parser = subparsers.add_parser('receive', help='Receive clipboard contents')
    receive_parser.add_argument('-t', '--timeout', type=int, help=timeout_help)

    subparsers.add_parser('interfaces', help='List local network interfaces')

    config_parser = subparsers.add_parser('config', help='Show/edit configuration')
    config_parser.add_argument('--show', action='store_true', help='Show current configuration')
    config_parser.add_argument('--reset', action='store_true', help='Reset to default configuration')
    config_parser.add_argument('--set', nargs=2, metavar=('KEY', 'VALUE'), help='Set a configuration value')

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    setup_logging(args.verbose)

    if getattr(args, 'timeout', None) is not None and args.timeout <= 0:
        parser.error("timeout must be a positive number of seconds")

    handlers = {
        'send': cmd_send,
        'receive': cmd_receive,
        'interfaces': cmd_interfaces,
        'config': cmd_config,
    }

    try:
        return handlers[args.command](args)
    except ValueError as e:
        # Invalid config file
        return _report(e)
    except KeyboardInterrupt:
        print("\nCancelled.")
        return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())
