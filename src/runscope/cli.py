#!/usr/bin/env python3
"""
Runscope CLI
Command-line interface for sending agent run traces and inspecting stored runs.
"""

import argparse
import json
import sys
from typing import Any, Dict, Optional

import httpx

from .client import RunscopeAPIError, RunscopeClient
from .config import configure_logging, load_config
from .sample import SAMPLE_TRACES
from .trace.schemas import Framework, RunStatus


class Colors:
    """ANSI color codes for terminal output"""
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'
    GRAY = '\033[90m'


STATUS_COLORS = {
    "SUCCESS": Colors.GREEN,
    "FAILED": Colors.RED,
    "RUNNING": Colors.YELLOW,
}


def _status(value: str) -> str:
    return f"{STATUS_COLORS.get(value, Colors.GRAY)}{value}{Colors.END}"


def _seconds(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:g}s"


def _print_json(data: Any):
    print(json.dumps(data, indent=2, default=str))


def _client(args) -> RunscopeClient:
    return RunscopeClient(api_url=args.api_url, timeout=args.timeout)


def cmd_serve(args):
    """Run the API server"""
    import uvicorn

    uvicorn.run("runscope.api.service:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_ingest(args):
    """Send a trace file to the API"""
    if args.file == "-":
        payload = json.load(sys.stdin)
    else:
        with open(args.file, "r", encoding="utf-8") as f:
            payload = json.load(f)

    with _client(args) as client:
        run_id = client.send_trace(payload)

    if args.format == "json":
        _print_json({"id": run_id})
    else:
        print(f"{Colors.GREEN}Recorded run{Colors.END} {run_id}")
    return 0


def cmd_sample(args):
    """Send a built-in sample trace"""
    payload = SAMPLE_TRACES[args.kind]()
    with _client(args) as client:
        run_id = client.send_trace(payload)

    if args.format == "json":
        _print_json({"id": run_id})
    else:
        print(f"{Colors.GREEN}Sample trace recorded.{Colors.END} Inspect it with: runscope show {run_id}")
    return 0


def cmd_runs(args):
    """List runs"""
    with _client(args) as client:
        runs = client.list_runs(status=args.status, framework=args.framework, q=args.query, limit=args.limit)

    if args.format == "json":
        _print_json(runs)
        return 0

    print(f"\n{Colors.BOLD}Runs{Colors.END} ({len(runs)})")
    print(f"{'='*60}")
    for run in runs:
        tags = ", ".join(t["name"] for t in run["tags"])
        print(f"\n{Colors.BOLD}{run['name'] or 'Untitled run'}{Colors.END}  {_status(run['status'])}")
        print(f"  {Colors.GRAY}ID:{Colors.END} {run['id']}")
        print(f"  {Colors.GRAY}Framework:{Colors.END} {run['framework']}  {Colors.GRAY}Steps:{Colors.END} {run['stepCount']}")
        print(f"  {Colors.GRAY}Started:{Colors.END} {run['startedAt']}")
        if tags:
            print(f"  {Colors.GRAY}Tags:{Colors.END} {tags}")
    return 0


def _print_run(run: Dict[str, Any]):
    print(f"\n{Colors.BOLD}{run['name'] or 'Untitled run'}{Colors.END}  {_status(run['status'])}")
    print(f"  {Colors.GRAY}ID:{Colors.END} {run['id']}")
    print(f"  {Colors.GRAY}Framework:{Colors.END} {run['framework']}")
    print(f"  {Colors.GRAY}Started:{Colors.END} {run['startedAt']}  {Colors.GRAY}Ended:{Colors.END} {run['endedAt'] or 'n/a'}")
    if run["tags"]:
        print(f"  {Colors.GRAY}Tags:{Colors.END} {', '.join(t['name'] for t in run['tags'])}")
    if run["metadata"] is not None:
        print(f"  {Colors.GRAY}Metadata:{Colors.END} {json.dumps(run['metadata'], default=str)}")

    print(f"\n{Colors.BOLD}Steps{Colors.END}")
    print(f"{'='*60}")
    for step in run["steps"]:
        kind = f" [{step['kind']}]" if step["kind"] else ""
        print(f"\n  {step['index']}. {step['name'] or 'Untitled step'}{kind}  {_status(step['status'])}")
        if step["input"] is not None:
            print(f"     {Colors.GRAY}input:{Colors.END} {json.dumps(step['input'], default=str)[:200]}")
        if step["output"] is not None:
            print(f"     {Colors.GRAY}output:{Colors.END} {json.dumps(step['output'], default=str)[:200]}")
        if step["error"]:
            print(f"     {Colors.RED}error:{Colors.END} {step['error']}")
        for tool in step["toolCalls"]:
            print(f"     {Colors.CYAN}->{Colors.END} {tool['name']}  {_status(tool['status'])}")
            if tool["error"]:
                print(f"        {Colors.RED}error:{Colors.END} {tool['error']}")


def cmd_show(args):
    """Show a run with its steps and tool calls"""
    with _client(args) as client:
        run = client.get_run(args.run_id)

    if args.format == "json":
        _print_json(run)
    else:
        _print_run(run)
    return 0


def cmd_analytics(args):
    """Show timing and success analytics for a run"""
    with _client(args) as client:
        result = client.get_analytics(args.run_id)

    if args.format == "json":
        _print_json(result)
        return 0

    run, analytics = result["run"], result["analytics"]
    calls = analytics["toolCalls"]
    rate = "n/a" if calls["successRate"] is None else f"{calls['successRate']}%"

    print(f"\n{Colors.BOLD}Analytics: {run['name'] or run['id']}{Colors.END}")
    print(f"{'='*60}")
    print(f"Run duration: {_seconds(analytics['runDurationSeconds'])}")
    print(f"Tool calls: {calls['total']} (success {calls['success']} · failed {calls['failed']})")
    print(f"Tool success rate: {rate}")

    buckets = analytics["latencyHistogram"]
    widest = max([1] + [b["count"] for b in buckets])
    if any(b["count"] for b in buckets):
        print(f"\n{Colors.BOLD}Latency histogram{Colors.END}")
        for bucket in buckets:
            bar = "#" * round(bucket["count"] / widest * 30)
            print(f"  {bucket['label']:>6} | {Colors.CYAN}{bar}{Colors.END} {bucket['count']}")

    if analytics["toolStats"]:
        print(f"\n{Colors.BOLD}Per-tool breakdown{Colors.END}")
        for stats in analytics["toolStats"]:
            print(
                f"  {stats['name']}: {stats['count']} calls, "
                f"success {stats['success']} · fail {stats['failed']}, "
                f"avg {_seconds(stats['avgDurationSeconds'])}"
            )
    return 0


def cmd_delete(args):
    """Delete a run"""
    with _client(args) as client:
        client.delete_run(args.run_id)

    if args.format == "json":
        _print_json({"ok": True})
    else:
        print(f"Deleted run {args.run_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    config = load_config()
    parser = argparse.ArgumentParser(
        prog="runscope",
        description="Runscope - record and inspect agent runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  runscope serve                          # Start the API server
  runscope ingest trace.json              # Send a trace file
  runscope sample                         # Send a built-in sample trace
  runscope runs -s FAILED                 # Failed runs, newest first
  runscope runs -q checkout               # Search ids, names and tags
  runscope show <run-id>                  # Steps and tool calls
  runscope analytics <run-id>             # Durations, success rate, latency
  runscope delete <run-id>                # Remove a run
"""
    )

    parser.add_argument("--api-url", default=config.api_url, help="Runscope API URL")
    parser.add_argument("--timeout", type=float, default=10.0, help="HTTP timeout in seconds")
    parser.add_argument("--format", "-f", choices=["text", "json"], default="text", help="Output format")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=config.host, help="Bind address")
    serve_parser.add_argument("--port", "-p", type=int, default=config.port, help="Port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve_parser.set_defaults(func=cmd_serve)

    ingest_parser = subparsers.add_parser("ingest", help="Send a trace JSON file ('-' for stdin)")
    ingest_parser.add_argument("file", help="Path to the trace JSON")
    ingest_parser.set_defaults(func=cmd_ingest)

    sample_parser = subparsers.add_parser("sample", help="Send a built-in sample trace")
    sample_parser.add_argument("--kind", "-k", choices=sorted(SAMPLE_TRACES), default="billing", help="Which sample")
    sample_parser.set_defaults(func=cmd_sample)

    runs_parser = subparsers.add_parser("runs", help="List runs")
    runs_parser.add_argument("--status", "-s", choices=[s.value for s in RunStatus], help="Filter by status")
    runs_parser.add_argument("--framework", choices=[f.value for f in Framework], help="Filter by framework")
    runs_parser.add_argument("--query", "-q", help="Search run id, name and tags")
    runs_parser.add_argument("--limit", "-l", type=int, help="Max results")
    runs_parser.set_defaults(func=cmd_runs)

    show_parser = subparsers.add_parser("show", help="Show a run")
    show_parser.add_argument("run_id")
    show_parser.set_defaults(func=cmd_show)

    analytics_parser = subparsers.add_parser("analytics", help="Show run analytics")
    analytics_parser.add_argument("run_id")
    analytics_parser.set_defaults(func=cmd_analytics)

    delete_parser = subparsers.add_parser("delete", help="Delete a run")
    delete_parser.add_argument("run_id")
    delete_parser.set_defaults(func=cmd_delete)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(load_config().log_level)

    if not args.command:
        # Default to listing runs
        args.func = cmd_runs
        args.status = args.framework = args.query = args.limit = None

    try:
        return args.func(args)
    except RunscopeAPIError as e:
        print(f"{Colors.RED}Error:{Colors.END} {e.message}", file=sys.stderr)
        for detail in e.details:
            print(f"  {Colors.RED}!{Colors.END} {detail.get('path') or '<root>'}: {detail.get('message')}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"{Colors.RED}Could not reach {args.api_url}:{Colors.END} {e}", file=sys.stderr)
        return 1
    except (OSError, json.JSONDecodeError) as e:
        print(f"{Colors.RED}Error:{Colors.END} {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
