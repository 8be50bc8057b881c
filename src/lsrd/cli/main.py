from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from lsrd.errors import ConfigError, LsrdError, MessageDecodeError
from lsrd.model.messages import ControlMessage, MessageKind, decode_message, encode_message
from lsrd.model.routing import RouteTableEntry
from lsrd.model.state import NeighborRecord
from lsrd.runtime import RouterDaemon, UdpTransport, load_daemon_config
from lsrd.runtime.config import MODES

_log = logging.getLogger("lsrd.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lsrd", description="Link-state router daemon")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Run the daemon in its configured mode")
    p_run.add_argument("--config", required=True, help="YAML config path for this router.")
    p_run.add_argument("--mode", choices=list(MODES), help="Override the configured mode.")
    p_run.add_argument("--print-routes", action="store_true", help="Print every route table update as JSON.")

    p_probe = sub.add_parser("probe", help="Broadcast one discovery request and list who answered")
    p_probe.add_argument("--config", required=True)

    p_ctl = sub.add_parser("ctl", help="Send a control request to a running daemon")
    p_ctl.add_argument("command", choices=["status", "enable", "disable", "routes", "neighbors"])
    p_ctl.add_argument("--host", default="127.0.0.1")
    p_ctl.add_argument("--port", type=int, default=5000)
    p_ctl.add_argument("--timeout", type=float, default=2.0)

    p_validate = sub.add_parser("validate", help="Validate a config file")
    p_validate.add_argument("--config", required=True)

    return parser


def dump_json(obj: Any) -> str:
    return json.dumps(obj, indent=2, sort_keys=True)


def render_routes(routes: List[RouteTableEntry]) -> str:
    return json.dumps({"routes": [route.to_dict() for route in routes]}, sort_keys=True)


def render_neighbor(record: NeighborRecord) -> str:
    return json.dumps({"neighbor": record.to_dict()}, sort_keys=True)


def send_control(host: str, port: int, command: str, timeout: float = 2.0) -> Optional[Dict[str, Any]]:
    transport = UdpTransport(bind_address="0.0.0.0", bind_port=0)
    try:
        request = ControlMessage(
            kind=MessageKind.CONTROL,
            src_router_id="lsrd-ctl",
            seq=1,
            payload={"command": command},
            ts=0.0,
        )
        transport.send(encode_message(request), host, port)
        incoming = transport.recv(timeout_s=timeout)
        if incoming is None:
            return None
        try:
            reply = decode_message(incoming[0])
        except MessageDecodeError as exc:
            _log.warning("unreadable control reply from %s:%s: %s", host, port, exc)
            return None
        return dict(reply.payload)
    finally:
        transport.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "validate":
        try:
            load_daemon_config(args.config)
        except ConfigError as exc:
            print(dump_json({"ok": False, "errors": str(exc).split("; ")}))
            return 1
        print(dump_json({"ok": True}))
        return 0

    if args.cmd == "ctl":
        reply = send_control(args.host, args.port, args.command, timeout=args.timeout)
        if reply is None:
            print(dump_json({"ok": False, "error": f"no reply from {args.host}:{args.port}"}))
            return 1
        print(dump_json(reply))
        return 0 if reply.get("ok") else 1

    try:
        cfg = load_daemon_config(args.config)
        if args.cmd == "probe":
            cfg = replace(cfg, mode="probe")
        elif args.mode:
            cfg = replace(cfg, mode=args.mode)
        daemon = RouterDaemon(cfg)
    except LsrdError as exc:
        _log.error("startup failed: %s", exc)
        return 2

    if cfg.mode == "probe":
        daemon.add_neighbor_listener(lambda record: _log.info("neighbor %s answered", record.router_id))
        neighbors = daemon.probe_once()
        print(dump_json({"neighbors": [record.to_dict() for record in neighbors]}))
        return 0

    if args.print_routes:
        daemon.add_route_listener(lambda routes: print(render_routes(routes), flush=True))
        daemon.add_neighbor_listener(lambda record: print(render_neighbor(record), flush=True))
    daemon.run_forever()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
