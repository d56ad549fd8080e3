"""CLI entry point for the Matryoshka directory."""

import argparse
import json
import sys

from .config import DirectoryConfig, load_config, merge_cli_args
from .heartbeat import run_beacon
from .persistence import JsonSnapshotStore
from .registry import DirectoryClient, RelayStore, build_directory_server
from .sweeper import LivenessSweeper


def _build_config(args) -> DirectoryConfig:
    """Build a DirectoryConfig from a config file + CLI overrides."""
    if args.config:
        config = load_config(args.config)
    else:
        config = DirectoryConfig()
    merge_cli_args(config, args)
    return config


# ---------------------------------------------------------------------------
# matryoshka serve
# ---------------------------------------------------------------------------

def cmd_serve(args) -> None:
    """Run the directory: HTTP API in the foreground, sweeper in the background."""
    config = _build_config(args)

    store = RelayStore.from_snapshot_store(JsonSnapshotStore(config.data_file))
    sweeper = LivenessSweeper(
        store,
        interval=config.sweep_interval,
        timeout_ms=config.heartbeat_timeout_ms,
    )
    server = build_directory_server(
        store,
        host=config.host,
        port=config.port,
        timeout_ms=config.heartbeat_timeout_ms,
        log_requests=config.log_requests,
    )

    sweeper.start()
    print(f"Matryoshka Directory Server running on {config.host}:{config.port}", file=sys.stderr)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("Shutting down", file=sys.stderr)
    finally:
        sweeper.stop(timeout=5)
        server.server_close()


# ---------------------------------------------------------------------------
# matryoshka relays subcommand
# ---------------------------------------------------------------------------

def _client(args) -> DirectoryClient:
    return DirectoryClient(host=args.directory_host, port=args.directory_port)


def _format_relays(relays, fmt: str) -> str:
    """Format a list of relay dicts for output."""
    if fmt == "json":
        return json.dumps(relays, indent=2)
    lines = []
    for r in relays:
        lines.append(f"{r['id']}  {r['ip']}:{r['port']}  {r['public_key']}")
    return "\n".join(lines) if lines else "(no relays)"


def _report(result, fmt: str) -> None:
    """Print a (status, body) result and exit non-zero on failure."""
    if result is None:
        print("Error: directory unreachable.", file=sys.stderr)
        sys.exit(1)
    status, body = result
    if fmt == "json":
        print(json.dumps(body, indent=2))
    elif body.get("success"):
        print(body.get("message", "ok"))
    if not body.get("success"):
        if fmt != "json":
            print(f"Error ({status}): {body.get('error')}", file=sys.stderr)
        sys.exit(1)


def cmd_relays_list(args) -> None:
    print(_format_relays(_client(args).list_relays(), args.format))


def cmd_relays_register(args) -> None:
    result = _client(args).register(args.relay_id, args.ip, args.port, args.public_key)
    _report(result, args.format)


def cmd_relays_heartbeat(args) -> None:
    _report(_client(args).heartbeat(args.relay_id), args.format)


def cmd_relays_remove(args) -> None:
    _report(_client(args).remove(args.relay_id), args.format)


def cmd_relays_health(args) -> None:
    health = _client(args).health()
    if health is None:
        print("Error: directory unreachable.", file=sys.stderr)
        sys.exit(1)
    if args.format == "json":
        print(json.dumps(health, indent=2))
    else:
        print(
            f"relays={health['relayCount']}  active={health['activeRelays']}  "
            f"inactive={health['inactiveRelays']}  uptime={health['uptime_seconds']}s"
        )


def cmd_beacon(args) -> None:
    """Register a relay and keep heartbeating until interrupted."""
    client = _client(args)
    try:
        run_beacon(
            client, args.relay_id, args.ip, args.port, args.public_key,
            interval=args.interval, max_beats=args.count,
        )
    except KeyboardInterrupt:
        pass


def _add_directory_args(parser: argparse.ArgumentParser) -> None:
    """Add --directory-host and --directory-port to a client sub-parser."""
    parser.add_argument(
        "--directory-host", type=str, default="localhost",
        help="Hostname of the directory server (default: localhost)",
    )
    parser.add_argument(
        "--directory-port", type=int, default=5600,
        help="Port of the directory HTTP API (default: 5600)",
    )
    parser.add_argument(
        "--format", choices=["text", "json"], default="text",
        help="Output format (default: text)",
    )


def _add_relay_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("relay_id", type=str, help="Relay identifier")
    parser.add_argument("ip", type=str, help="Relay IPv4 address")
    parser.add_argument("port", type=int, help="Relay port")
    parser.add_argument("public_key", type=str, help="Relay public key")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="matryoshka",
        description="Matryoshka: relay directory server",
    )
    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the directory server")
    serve_parser.add_argument("--config", type=str, help="Path to YAML config file")
    serve_parser.add_argument("--host", type=str, help="Address to bind (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Port to listen on (default: 5600)")
    serve_parser.add_argument(
        "--data-file", type=str, dest="data_file",
        help="Snapshot file (default: relays.json)",
    )
    serve_parser.add_argument(
        "--heartbeat-timeout", type=int, dest="heartbeat_timeout",
        help="Seconds without a heartbeat before a relay is removed (default: 300)",
    )
    serve_parser.add_argument(
        "--sweep-interval", type=float, dest="sweep_interval",
        help="Seconds between liveness sweeps (default: 10)",
    )
    serve_parser.add_argument(
        "--quiet", action="store_false", dest="log_requests", default=None,
        help="Do not log each HTTP request",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # relays
    relays_parser = subparsers.add_parser("relays", help="Query or update a running directory")
    relays_sub = relays_parser.add_subparsers(dest="relays_command")

    rel_list = relays_sub.add_parser("list", help="List registered relays")
    _add_directory_args(rel_list)
    rel_list.set_defaults(func=cmd_relays_list)

    rel_register = relays_sub.add_parser("register", help="Register a relay")
    _add_directory_args(rel_register)
    _add_relay_args(rel_register)
    rel_register.set_defaults(func=cmd_relays_register)

    rel_heartbeat = relays_sub.add_parser("heartbeat", help="Send one heartbeat for a relay")
    _add_directory_args(rel_heartbeat)
    rel_heartbeat.add_argument("relay_id", type=str, help="Relay identifier")
    rel_heartbeat.set_defaults(func=cmd_relays_heartbeat)

    rel_remove = relays_sub.add_parser("remove", help="Remove a relay")
    _add_directory_args(rel_remove)
    rel_remove.add_argument("relay_id", type=str, help="Relay identifier")
    rel_remove.set_defaults(func=cmd_relays_remove)

    rel_health = relays_sub.add_parser("health", help="Show directory health counts")
    _add_directory_args(rel_health)
    rel_health.set_defaults(func=cmd_relays_health)

    # beacon
    beacon_parser = subparsers.add_parser(
        "beacon", help="Register a relay and heartbeat it periodically",
    )
    _add_directory_args(beacon_parser)
    _add_relay_args(beacon_parser)
    beacon_parser.add_argument(
        "--interval", type=float, default=60,
        help="Seconds between heartbeats (default: 60)",
    )
    beacon_parser.add_argument(
        "--count", type=int, default=None,
        help="Stop after this many attempts (default: run forever)",
    )
    beacon_parser.set_defaults(func=cmd_beacon)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "relays" and not args.relays_command:
        relays_parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
