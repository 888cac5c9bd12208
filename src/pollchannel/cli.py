"""pollchannel CLI: command-line interface."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

import pollchannel
from pollchannel.config import load_config
from pollchannel.errors import ChannelError
from pollchannel.vfs import OSFilesystem, VirtualFilesystem

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _build_fs(config: dict[str, Any]) -> VirtualFilesystem:
    return VirtualFilesystem(OSFilesystem(config["base_dir"]), root=config["root"])


def _refresh_counters(fs: VirtualFilesystem, config: dict[str, Any]) -> dict[str, int]:
    from pollchannel.counters import CounterClient, initial_stats, write_counts

    client = CounterClient(
        proxy_url=config["counter_proxy_url"],
        api_url=config["counter_api_url"],
        timeout=config["request_timeout"],
    )
    stats = client.update_all(initial_stats(config["counter_ids"]))
    write_counts(fs, stats, config["counters_path"])
    return stats


def cmd_start(args: argparse.Namespace) -> None:
    """Bootstrap the channel and run the polling loop."""
    config = load_config(args.config)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=_LOG_FORMAT,
    )
    from pollchannel.dispatcher import ActionDispatcher
    from pollchannel.host import build_navigator
    from pollchannel.scheduler import Scheduler

    fs = _build_fs(config)
    scheduler = Scheduler()
    navigator = build_navigator(args.navigator or config["navigator"])
    dispatcher = ActionDispatcher.from_config(config, fs, navigator, scheduler)

    if args.refresh_counters:
        def _counters_job() -> None:
            try:
                _refresh_counters(fs, config)
            except Exception:
                logging.getLogger(__name__).exception("Failed to update counters")

        scheduler.call_soon(_counters_job)

    print(f"pollchannel v{pollchannel.__version__} watching {config['channel_path']}")
    if not dispatcher.initialize():
        print("Channel could not be initialized.", file=sys.stderr)
        sys.exit(1)
    try:
        if args.duration is not None:
            scheduler.run_for(args.duration)
        else:
            scheduler.run_forever()
    except KeyboardInterrupt:
        print("\npollchannel stopped.")
    finally:
        dispatcher.stop()


def cmd_send(args: argparse.Namespace) -> None:
    """Write a command into the channel, as the sandboxed app would."""
    config = load_config(args.config)
    fs = _build_fs(config)
    if args.url:
        from pollchannel.commands import format_command, parse_location
        text = format_command(parse_location(args.text))
    else:
        text = args.text
    fs.write_file(config["channel_path"], text)
    print(f"Wrote {text!r} to {fs.normalize_path(config['channel_path'])}")


def cmd_cat(args: argparse.Namespace) -> None:
    """Print a file from the virtual filesystem."""
    config = load_config(args.config)
    fs = _build_fs(config)
    sys.stdout.write(fs.read_file(args.path))


def cmd_ls(args: argparse.Namespace) -> None:
    """List a directory of the virtual filesystem."""
    config = load_config(args.config)
    fs = _build_fs(config)
    items = fs.list_directory(args.path)
    if args.json:
        print(json.dumps([item.to_dict() for item in items], indent=2))
        return
    for item in items:
        print(f"{item.type.value:<10} {item.name}")


def cmd_counters(args: argparse.Namespace) -> None:
    """Fetch player counters and write them to the companion file."""
    config = load_config(args.config)
    logging.basicConfig(level=logging.WARNING, format=_LOG_FORMAT)
    fs = _build_fs(config)
    stats = _refresh_counters(fs, config)
    for game_id, count in stats.items():
        print(f"{game_id:<16} {count:>6}")


def cmd_version(args: argparse.Namespace) -> None:
    """Show version."""
    print(f"pollchannel {pollchannel.__version__}")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="pollchannel",
        description="pollchannel: file-mediated command channel for sandboxed apps",
    )
    subparsers = parser.add_subparsers(dest="command")

    # start
    p_start = subparsers.add_parser("start", help="Watch the channel and dispatch commands")
    p_start.add_argument("--config", metavar="FILE", help="Path to config YAML")
    p_start.add_argument("--navigator", choices=["browser", "log"], help="Override the configured navigator")
    p_start.add_argument("--duration", type=float, metavar="SEC", help="Stop after SEC seconds (default: run forever)")
    p_start.add_argument("--refresh-counters", action="store_true", help="Fetch player counters on startup")
    p_start.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p_start.set_defaults(func=cmd_start)

    # send
    p_send = subparsers.add_parser("send", help="Write text into the channel")
    p_send.add_argument("text", help="Raw channel text, or a location with --url")
    p_send.add_argument("--url", action="store_true", help="Wrap TEXT in a gotoURL command")
    p_send.add_argument("--config", metavar="FILE", help="Path to config YAML")
    p_send.set_defaults(func=cmd_send)

    # cat
    p_cat = subparsers.add_parser("cat", help="Print a virtual file")
    p_cat.add_argument("path", help="Virtual path")
    p_cat.add_argument("--config", metavar="FILE", help="Path to config YAML")
    p_cat.set_defaults(func=cmd_cat)

    # ls
    p_ls = subparsers.add_parser("ls", help="List a virtual directory")
    p_ls.add_argument("path", nargs="?", default="/", help="Virtual path (default: /)")
    p_ls.add_argument("--json", action="store_true", help="Print entries as JSON")
    p_ls.add_argument("--config", metavar="FILE", help="Path to config YAML")
    p_ls.set_defaults(func=cmd_ls)

    # counters
    p_counters = subparsers.add_parser("counters", help="Refresh the player counter file")
    p_counters.add_argument("--config", metavar="FILE", help="Path to config YAML")
    p_counters.set_defaults(func=cmd_counters)

    # version
    p_version = subparsers.add_parser("version", help="Show version")
    p_version.set_defaults(func=cmd_version)

    parsed = parser.parse_args(argv)
    if not hasattr(parsed, "func"):
        parser.print_help()
        return
    try:
        parsed.func(parsed)
    except ChannelError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
