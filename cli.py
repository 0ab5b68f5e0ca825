from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Heartbeat Monitor CLI")
    p.add_argument("--api", default="http://localhost:8080", help="Monitor base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("services", help="List monitored services")
    sub.add_parser("health", help="Show health summary")
    sub.add_parser("sweep", help="Run one failure-detection sweep now")

    s_ev = sub.add_parser("events", help="Show recent monitor events")
    s_ev.add_argument("--limit", type=int, default=20)

    for cmd in ("register", "heartbeat"):
        s = sub.add_parser(cmd, help=f"Send a {cmd} for a service")
        s.add_argument("--service", required=True)
        s.add_argument("--host", default="localhost")
        s.add_argument("--port", type=int, default=0)

    for cmd in ("restart", "start", "stop", "container"):
        s = sub.add_parser(cmd, help=f"{cmd.capitalize()} a service's container" if cmd != "container" else "Show container state")
        s.add_argument("service")

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    base = args.api.rstrip("/") + "/monitor"

    if args.cmd in {"services", "health"}:
        r = requests.get(f"{base}/{args.cmd}", timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "events":
        r = requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "sweep":
        r = requests.post(f"{base}/sweep", timeout=120)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd in {"register", "heartbeat"}:
        payload = {"serviceName": args.service, "host": args.host, "port": args.port}
        r = requests.post(f"{base}/{args.cmd}", json=payload, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "container":
        r = requests.get(f"{base}/services/{args.service}/container", timeout=30)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd in {"restart", "start", "stop"}:
        # Restart includes the verification wait on the server side.
        r = requests.post(f"{base}/services/{args.service}/{args.cmd}", timeout=120)
        body = r.json()
        _print(body)
        return 0 if r.ok and body.get("success") else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
