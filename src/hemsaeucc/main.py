"""
HEMSAEUCC - Command-line client.

Examples:
  hemsaeucc init                       # create an identity in ./keys
  hemsaeucc id                         # print your ID
  hemsaeucc send <to_id> "hello"       # seal and post a message
  hemsaeucc fetch                      # drain and decrypt your mailbox
  hemsaeucc watch                      # poll until Ctrl+C
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from . import __version__
from .client import RelayClient
from .config import Config
from .constants import APP_NAME, APP_DESCRIPTION
from .errors import HemsaeuccError, IdentityAlreadyExistsError, IdentityNotFoundError
from .identity import IdentityManager
from .messenger import Messenger, ReceivedMessage
from .poller import MessagePoller
from .utils import setup_logging, short_id

console = Console()
err_console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hemsaeucc",
        description=f"{APP_NAME} - {APP_DESCRIPTION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:" + __doc__.split("Examples:", 1)[1],
    )
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {__version__}")
    parser.add_argument("--config", type=str, default=None, help="Path to config.toml")
    parser.add_argument("--keys-dir", type=str, default=None, help="Directory holding the identity key files")
    parser.add_argument("--relay-url", type=str, default=None, help="Relay URL (default: http://localhost:8080)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("init", help="Generate a new identity")
    commands.add_parser("id", help="Show your ID")

    send = commands.add_parser("send", help="Send a message")
    send.add_argument("to_id", help="Recipient ID (64 hex characters)")
    send.add_argument("message", help="Message text")

    commands.add_parser("fetch", help="Fetch and decrypt pending messages")

    watch = commands.add_parser("watch", help="Poll for messages until interrupted")
    watch.add_argument("--interval", type=float, default=None, help="Seconds between polls")
    return parser


def print_messages(messages: List[ReceivedMessage]) -> None:
    for message in messages:
        console.print(f"[bold cyan]\\[{escape(short_id(message.from_id))}][/]: {escape(message.text)}")


def _open_messenger(manager: IdentityManager, config: Config, relay_url: Optional[str]) -> Messenger:
    identity = manager.load()
    relay = RelayClient(relay_url or config.get("relay", "url"), timeout=config.get("relay", "timeout"))
    return Messenger(identity, relay)


async def _watch(messenger: Messenger, interval: float) -> None:
    poller = MessagePoller(messenger, interval, on_messages=print_messages)
    await poller.start()
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await poller.stop()


def run(args: argparse.Namespace, config: Config) -> int:
    manager = IdentityManager(args.keys_dir or config.get("client", "keys_dir"))

    if args.command == "init":
        try:
            identity = manager.generate()
        except IdentityAlreadyExistsError:
            err_console.print(
                f"[red]ERROR:[/] Identity already exists. Delete '{escape(str(manager.keys_dir))}' to reset."
            )
            return 1
        console.print(f"Your {APP_NAME} ID: [bold]{identity.public_id}[/]")
        return 0

    try:
        if args.command == "id":
            identity = manager.load()
            console.print(f"Your {APP_NAME} ID: [bold]{identity.public_id}[/]")
            console.print(f"Fingerprint: {identity.fingerprint}")
            return 0

        messenger = _open_messenger(manager, config, args.relay_url)
        try:
            if args.command == "send":
                messenger.send_message(args.to_id, args.message)
                console.print("Message sent.")
            elif args.command == "fetch":
                messages = messenger.fetch_messages()
                if messages:
                    print_messages(messages)
                else:
                    console.print("No new messages.")
            elif args.command == "watch":
                interval = args.interval or config.get("client", "poll_interval")
                console.print(f"Watching for messages to {short_id(messenger.my_id)} (Ctrl+C to stop)")
                try:
                    asyncio.run(_watch(messenger, interval))
                except KeyboardInterrupt:
                    pass
        finally:
            messenger.relay.close()
    except IdentityNotFoundError:
        err_console.print("No identity found. Run `hemsaeucc init` first.")
        return 1
    except ValueError as e:
        err_console.print(f"[red]ERROR:[/] {escape(str(e))}")
        return 1
    except HemsaeuccError as e:
        err_console.print(f"[red]ERROR:[/] {escape(e.message)}")
        return 1

    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the HEMSAEUCC client."""
    args = build_parser().parse_args(argv)

    try:
        config = Config(Path(args.config).expanduser() if args.config else None)
    except HemsaeuccError as e:
        err_console.print(f"[red]ERROR:[/] {escape(e.message)}")
        sys.exit(1)

    setup_logging(
        level="DEBUG" if args.debug else config.get("logging", "level", "INFO"),
        console=config.get("logging", "console_logging", True),
        log_file=config.get_log_file(),
    )

    sys.exit(run(args, config))


if __name__ == "__main__":
    main()
